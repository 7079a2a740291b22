"""
Eventos de alteração emitidos pelos repositórios após cada gravação.

É o fluxo "push" consumido pelo ``RealtimeEventBus``; o polling de fallback
produz os mesmos ``EventoAlteracao`` a partir de ``listar_alterados_desde``.
"""
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, List, Optional, Union

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class TipoEntidadeEnum(str, Enum):
    PEDIDO = "pedido"
    MESA = "mesa"
    VENDA_MESA = "venda_mesa"


class TipoEventoEnum(str, Enum):
    INSERT = "insert"
    UPDATE = "update"


@dataclass
class EventoAlteracao:
    tipo_entidade: TipoEntidadeEnum
    id: str
    payload: BaseModel
    tipo_evento: TipoEventoEnum = TipoEventoEnum.UPDATE

    @property
    def chave(self) -> tuple:
        return (self.tipo_entidade, self.id)


Listener = Callable[[EventoAlteracao], Union[Awaitable[None], None]]


async def chamar_callback(callback: Callable, *args: Any) -> None:
    """Executa callback síncrono ou assíncrono."""
    resultado = callback(*args)
    if inspect.isawaitable(resultado):
        await resultado


class FluxoAlteracoes:
    """Lista de listeners notificados depois do commit de cada gravação."""

    def __init__(self, origem: str):
        self.origem = origem
        self._listeners: List[Listener] = []

    def assinar(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def cancelar() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return cancelar

    async def emitir(self, *eventos: Optional[EventoAlteracao]) -> None:
        for evento in eventos:
            if evento is None:
                continue
            for listener in list(self._listeners):
                try:
                    await chamar_callback(listener, evento)
                except Exception as e:
                    # Gravação já confirmada; listener não pode desfazê-la
                    logger.error(
                        f"[Realtime] Listener de {self.origem} falhou para "
                        f"{evento.tipo_entidade.value}:{evento.id}: {e}"
                    )
