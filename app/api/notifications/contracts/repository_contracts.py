from abc import ABC, abstractmethod
from typing import List

from app.api.notifications.schemas.schema_notificacao import NotificacaoOut


class INotificacaoRepository(ABC):
    """Interface para o repositório de notificações"""

    @abstractmethod
    async def inserir(self, notificacao: NotificacaoOut) -> NotificacaoOut:
        raise NotImplementedError

    @abstractmethod
    async def listar_recentes(self, limite: int = 50) -> List[NotificacaoOut]:
        raise NotImplementedError
