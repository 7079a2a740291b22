"""
Alerta repetido de pedidos pendentes.

Cada pedido pendente tem um ``TokenCancelamento`` guardado pelo
``ControladorAlertas``; o alerta só para quando o token do próprio pedido é
cancelado (pedido saiu de ``pending``) e nunca por efeito colateral de outro
pedido.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from app.api.notifications.core.eventos import chamar_callback

logger = logging.getLogger(__name__)

Alerta = Callable[[str], Optional[Awaitable[None]]]


class TokenCancelamento:
    def __init__(self, chave: str):
        self.chave = chave
        self._evento = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def cancelado(self) -> bool:
        return self._evento.is_set()

    def cancelar(self) -> None:
        self._evento.set()
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def aguardar(self, segundos: float) -> bool:
        """Espera o intervalo; retorna True se o token foi cancelado nesse meio tempo."""
        try:
            await asyncio.wait_for(self._evento.wait(), timeout=segundos)
        except asyncio.TimeoutError:
            return False
        return True


class ControladorAlertas:
    def __init__(self, intervalo_segundos: float = 5):
        self.intervalo_segundos = intervalo_segundos
        self._tokens: Dict[str, TokenCancelamento] = {}
        self._alertas: List[Alerta] = []

    def ao_alertar(self, callback: Alerta) -> None:
        self._alertas.append(callback)

    def ativo(self, chave: str) -> bool:
        token = self._tokens.get(chave)
        return token is not None and not token.cancelado

    @property
    def ativos(self) -> List[str]:
        return [chave for chave, token in self._tokens.items() if not token.cancelado]

    def iniciar(self, chave: str) -> TokenCancelamento:
        existente = self._tokens.get(chave)
        if existente is not None and not existente.cancelado:
            return existente

        token = TokenCancelamento(chave)
        token._task = asyncio.create_task(self._repetir(token), name=f"alerta-{chave}")
        self._tokens[chave] = token
        logger.info(f"[Realtime] 🔔 Alerta iniciado para {chave}")
        return token

    def cancelar(self, chave: str) -> bool:
        token = self._tokens.pop(chave, None)
        if token is None:
            return False
        token.cancelar()
        logger.info(f"[Realtime] 🔕 Alerta cancelado para {chave}")
        return True

    def encerrar(self) -> None:
        for chave in list(self._tokens):
            self.cancelar(chave)

    async def _repetir(self, token: TokenCancelamento) -> None:
        while not token.cancelado:
            for callback in list(self._alertas):
                try:
                    await chamar_callback(callback, token.chave)
                except Exception as e:
                    logger.error(f"[Realtime] Erro no alerta de {token.chave}: {e}")
            if await token.aguardar(self.intervalo_segundos):
                break
