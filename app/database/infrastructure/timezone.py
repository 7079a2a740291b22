"""Coluna de data/hora sempre no fuso de São Paulo."""
from sqlalchemy import DateTime, TypeDecorator

from app.utils.database_utils import TZ_SP


class DataHoraSP(TypeDecorator):
    """
    DateTime com timezone que devolve valores "aware" em America/Sao_Paulo.

    O SQLite não guarda fuso; valores lidos sem tzinfo são interpretados
    como horário de São Paulo.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=TZ_SP)
        if dialect.name == "sqlite":
            return value.astimezone(TZ_SP).replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=TZ_SP)
        return value.astimezone(TZ_SP)
