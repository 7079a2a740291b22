"""
Montagem da aplicação: escolhe o backend de persistência uma única vez e
liga repositórios, services e o barramento de tempo real.

Com ``PERSISTENCIA_BACKEND=sql`` e o banco inacessível na partida, a
aplicação sobe no backend local (modo reduzido) em vez de não subir.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from app.api.caixas.repositories.repo_caixa import CaixaRepository
from app.api.caixas.repositories.repo_caixa_local import CaixaRepositoryLocal
from app.api.caixas.services.service_caixa import CaixaService
from app.api.cashback.repositories.repo_cashback import CashbackRepository
from app.api.cashback.repositories.repo_cashback_local import CashbackRepositoryLocal
from app.api.cashback.services.service_cashback import CashbackService
from app.api.mesas.repositories.repo_mesas import MesaRepository
from app.api.mesas.repositories.repo_mesas_local import MesaRepositoryLocal
from app.api.mesas.services.service_vendas_mesa import VendaMesaService
from app.api.notifications.core.alertas import ControladorAlertas
from app.api.notifications.core.event_bus import RealtimeEventBus
from app.api.notifications.core.eventos import TipoEntidadeEnum
from app.api.notifications.core.polling import FontePolling
from app.api.notifications.core.websocket_manager import ConnectionManager
from app.api.notifications.repositories.notification_repository import (
    NotificacaoRepository,
    NotificacaoRepositoryLocal,
)
from app.api.notifications.services.notification_service import NotificacaoService
from app.api.pedidos.repositories.repo_pedidos import PedidoRepository
from app.api.pedidos.repositories.repo_pedidos_local import PedidoRepositoryLocal
from app.api.pedidos.services.service_pedidos import PedidoService
from app.config import settings
from app.core.exceptions import VendaError
from app.database.db_connection import criar_engine, criar_sessionmaker, criar_tabelas
from app.database.local_store import LocalStore

logger = logging.getLogger(__name__)

BACKEND_SQL = "sql"
BACKEND_LOCAL = "local"


class Container:
    def __init__(
        self,
        backend: Optional[str] = None,
        database_url: Optional[str] = None,
        local_cache_path: Optional[str] = None,
        timeout: Optional[float] = None,
        polling_intervalo: Optional[float] = None,
        alerta_intervalo: Optional[float] = None,
        cashback_percentual=None,
    ):
        self.backend_solicitado = backend or settings.PERSISTENCIA_BACKEND
        self.database_url = database_url or settings.DATABASE_URL or None
        self.local_cache_path = settings.LOCAL_CACHE_PATH if local_cache_path is None else local_cache_path
        self.timeout = settings.PERSISTENCIA_TIMEOUT_SEGUNDOS if timeout is None else timeout
        self.polling_intervalo = settings.POLLING_INTERVALO_SEGUNDOS if polling_intervalo is None else polling_intervalo
        self.alerta_intervalo = settings.ALERTA_INTERVALO_SEGUNDOS if alerta_intervalo is None else alerta_intervalo
        self.cashback_percentual = cashback_percentual or settings.CASHBACK_PERCENTUAL

        self.backend: Optional[str] = None
        self.modo_reduzido = False
        self.engine = None
        self._cancelamentos: List[Callable[[], None]] = []

        self.realtime = RealtimeEventBus(ControladorAlertas(self.alerta_intervalo))
        self.websocket_manager = ConnectionManager()

    # ------------------------------------------------------------------
    # Backends
    # ------------------------------------------------------------------
    async def _montar_sql(self) -> None:
        self.engine = criar_engine(self.database_url)
        await criar_tabelas(self.engine)
        sessionmaker = criar_sessionmaker(self.engine)
        self.repo_pedidos = PedidoRepository(sessionmaker, self.timeout)
        self.repo_mesas = MesaRepository(sessionmaker, self.timeout)
        self.repo_caixa = CaixaRepository(sessionmaker, self.timeout)
        self.repo_cashback = CashbackRepository(sessionmaker, self.timeout)
        self.repo_notificacoes = NotificacaoRepository(sessionmaker, self.timeout)
        self.backend = BACKEND_SQL

    def _montar_local(self) -> None:
        store = LocalStore(self.local_cache_path or None)
        store.carregar_snapshot()
        self.store = store
        self.repo_pedidos = PedidoRepositoryLocal(store, self.timeout)
        self.repo_mesas = MesaRepositoryLocal(store, self.timeout)
        self.repo_caixa = CaixaRepositoryLocal(store, self.timeout)
        self.repo_cashback = CashbackRepositoryLocal(store, self.timeout)
        self.repo_notificacoes = NotificacaoRepositoryLocal(store, self.timeout)
        self.backend = BACKEND_LOCAL

    async def _montar_persistencia(self) -> None:
        if self.backend_solicitado == BACKEND_SQL:
            try:
                await self._montar_sql()
                logger.info("[Container] Persistência SQL pronta")
                return
            except (SQLAlchemyError, OSError, RuntimeError) as e:
                logger.error(f"[Container] Banco indisponível, usando backend local (modo reduzido): {e}")
                if self.engine is not None:
                    await self.engine.dispose()
                    self.engine = None
                self.modo_reduzido = True
        elif self.backend_solicitado != BACKEND_LOCAL:
            logger.warning(f"[Container] Backend desconhecido '{self.backend_solicitado}', usando local")
        self._montar_local()
        logger.info("[Container] Persistência local pronta")

    # ------------------------------------------------------------------
    # Ciclo de vida
    # ------------------------------------------------------------------
    async def iniciar(self) -> None:
        await self._montar_persistencia()

        self.notificacoes = NotificacaoService(self.repo_notificacoes)
        self.caixa = CaixaService(self.repo_caixa)
        self.cashback = CashbackService(self.repo_cashback, self.cashback_percentual)
        self.pedidos = PedidoService(self.repo_pedidos, self.caixa, self.cashback, self.notificacoes, self.realtime)
        self.mesas = VendaMesaService(self.repo_mesas, self.caixa, self.cashback, self.notificacoes)

        self.caixa.ao_abrir(self._vincular_orfaos)

        # Push: cada gravação confirmada entra no barramento
        self._cancelamentos.append(self.repo_pedidos.assinar(self.realtime.receber))
        self._cancelamentos.append(self.repo_mesas.assinar(self.realtime.receber))
        self.websocket_manager.conectar_barramento(self.realtime)

        await self._carregar_colecoes()

        # Fallback: polling com cursor por repositório
        self.polling = FontePolling(
            self.realtime,
            [self.repo_pedidos.listar_alterados_desde, self.repo_mesas.listar_alterados_desde],
            self.polling_intervalo,
        )
        self.polling.iniciar()
        logger.info(f"[Container] Pronto - backend={self.backend} modo_reduzido={self.modo_reduzido}")

    async def _vincular_orfaos(self, caixa) -> None:
        await self.pedidos.reconciliar_orfaos(caixa.id)

    async def _carregar_colecoes(self) -> None:
        try:
            await self.pedidos.carregar()
            mesas = await self.mesas.listar_mesas()
            self.realtime.semear(TipoEntidadeEnum.MESA, mesas)
            vendas = []
            for mesa in mesas:
                if mesa.venda_atual_id:
                    venda = await self.repo_mesas.obter_venda(mesa.venda_atual_id)
                    if venda is not None:
                        vendas.append(venda)
            self.realtime.semear(TipoEntidadeEnum.VENDA_MESA, vendas)
        except VendaError as e:
            # Coleções se completam pelo polling
            logger.warning(f"[Container] Carga inicial incompleta: {e}")

    async def encerrar(self) -> None:
        polling = getattr(self, "polling", None)
        if polling is not None:
            await polling.parar()
        self.websocket_manager.desconectar_barramento()
        for cancelar in self._cancelamentos:
            cancelar()
        self._cancelamentos.clear()
        self.realtime.encerrar()
        if self.engine is not None:
            await self.engine.dispose()
        logger.info("[Container] Encerrado")
