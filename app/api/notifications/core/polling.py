import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from app.api.notifications.core.event_bus import RealtimeEventBus
from app.api.notifications.core.eventos import EventoAlteracao

logger = logging.getLogger(__name__)

ConsultaAlterados = Callable[[Optional[datetime]], Awaitable[List[EventoAlteracao]]]


class FontePolling:
    """
    Fonte de fallback do tempo real: consulta periodicamente o que mudou desde
    o último cursor e entrega ao barramento, que descarta o que já conhece.
    """

    def __init__(self, barramento: RealtimeEventBus, consultas: List[ConsultaAlterados], intervalo_segundos: float = 15):
        self.barramento = barramento
        self.consultas = consultas
        self.intervalo_segundos = intervalo_segundos
        self._cursores: List[Optional[datetime]] = [None] * len(consultas)
        self._task: Optional[asyncio.Task] = None

    @property
    def rodando(self) -> bool:
        return self._task is not None and not self._task.done()

    def iniciar(self) -> None:
        if self.intervalo_segundos <= 0 or self.rodando:
            return
        self._task = asyncio.create_task(self._loop(), name="realtime-polling")
        logger.info(f"[Realtime] Polling iniciado a cada {self.intervalo_segundos}s")

    async def parar(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("[Realtime] Polling parado")

    async def executar_uma_vez(self) -> int:
        """Roda um ciclo de todas as consultas; retorna quantos eventos foram aceitos."""
        aceitos = 0
        for indice, consulta in enumerate(self.consultas):
            try:
                eventos = await consulta(self._cursores[indice])
            except Exception as e:
                logger.warning(f"[Realtime] Falha no polling (segue no próximo ciclo): {e}")
                continue
            for evento in eventos:
                if await self.barramento.receber(evento):
                    aceitos += 1
                marca = getattr(evento.payload, "updated_at", None)
                cursor = self._cursores[indice]
                if marca is not None and (cursor is None or marca > cursor):
                    self._cursores[indice] = marca
        return aceitos

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.intervalo_segundos)
            await self.executar_uma_vez()
