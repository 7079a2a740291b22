from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api.notifications.contracts.repository_contracts import INotificacaoRepository
from app.api.notifications.models.notification import NotificacaoModel
from app.api.notifications.schemas.schema_notificacao import NotificacaoOut
from app.database.local_store import LocalStore
from app.database.repository_utils import para_colunas, para_registro
from app.utils.timeout import com_timeout


class NotificacaoRepository(INotificacaoRepository):
    """Repositório de notificações sobre SQLAlchemy assíncrono"""

    def __init__(self, sessionmaker: async_sessionmaker, timeout: Optional[float] = None):
        self.sessionmaker = sessionmaker
        self.timeout = timeout

    async def inserir(self, notificacao: NotificacaoOut) -> NotificacaoOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                session.add(NotificacaoModel(**para_colunas(notificacao)))
            return notificacao

        return await com_timeout(_op(), "registrar a notificação", self.timeout)

    async def listar_recentes(self, limite: int = 50) -> List[NotificacaoOut]:
        async def _op():
            stmt = select(NotificacaoModel).order_by(NotificacaoModel.created_at.desc()).limit(limite)
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [NotificacaoOut.model_validate(m) for m in result.scalars().all()]

        return await com_timeout(_op(), "listar notificações", self.timeout)


class NotificacaoRepositoryLocal(INotificacaoRepository):
    """Repositório de notificações no cache local"""

    def __init__(self, store: LocalStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    async def inserir(self, notificacao: NotificacaoOut) -> NotificacaoOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                tabelas["notificacoes"][notificacao.id] = para_registro(notificacao)
            return notificacao

        return await com_timeout(_op(), "registrar a notificação", self.timeout)

    async def listar_recentes(self, limite: int = 50) -> List[NotificacaoOut]:
        notificacoes = [NotificacaoOut.model_validate(n) for n in self.store.tabela("notificacoes").values()]
        notificacoes = sorted(reversed(notificacoes), key=lambda n: n.created_at, reverse=True)
        return notificacoes[:limite]
