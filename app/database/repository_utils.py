"""Conversões entre schemas pydantic e linhas (models SQLAlchemy ou dicts do backend local)."""
import uuid
from typing import Iterable

from pydantic import BaseModel


def novo_id() -> str:
    return uuid.uuid4().hex


def para_colunas(obj: BaseModel, campos_json: Iterable[str] = ()) -> dict:
    """
    Valores prontos para as colunas do model.

    Campos guardados em colunas JSON (listas de itens, pagamentos) são
    serializados em modo JSON para que Decimal e Enum virem texto.
    """
    campos_json = set(campos_json)
    dados = obj.model_dump(exclude=set(type(obj).model_computed_fields) | campos_json)
    if campos_json:
        dados.update(obj.model_dump(mode="json", include=campos_json))
    return dados


def aplicar_colunas(model, obj: BaseModel, campos_json: Iterable[str] = ()) -> None:
    for campo, valor in para_colunas(obj, campos_json).items():
        setattr(model, campo, valor)


def para_registro(obj: BaseModel) -> dict:
    """Forma armazenada no backend local."""
    return obj.model_dump(mode="json", exclude=set(type(obj).model_computed_fields))
