"""
Contract (Interface) de persistência de pedidos.

Implementado pelo backend SQL e pelo backend local; o serviço de pedidos não
conhece qual dos dois está ativo.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional

from app.api.notifications.core.eventos import EventoAlteracao, Listener
from app.api.pedidos.schemas.schema_pedido import PedidoOut
from app.api.pedidos.schemas.schema_pedido_status_historico import PedidoStatusHistoricoOut
from app.api.shared.schemas.schema_shared_enums import PedidoStatusEnum

# Recebe o pedido atual e levanta erro se a transição não for permitida
ValidadorStatus = Callable[[PedidoOut, PedidoStatusEnum], None]


class IPedidoRepository(ABC):
    """Contrato para acesso a pedidos do bounded context de Pedidos."""

    @abstractmethod
    async def criar(self, pedido: PedidoOut) -> PedidoOut:
        """Insere o pedido e o primeiro registro de histórico na mesma unidade."""
        raise NotImplementedError

    @abstractmethod
    async def obter(self, pedido_id: str) -> Optional[PedidoOut]:
        raise NotImplementedError

    @abstractmethod
    async def listar_visiveis(self, caixa_id: Optional[str]) -> List[PedidoOut]:
        """Pedidos sem caixa, mais os do caixa informado; mais recentes primeiro."""
        raise NotImplementedError

    @abstractmethod
    async def atualizar_status(
        self,
        pedido_id: str,
        novo_status: PedidoStatusEnum,
        validar: ValidadorStatus,
    ) -> PedidoOut:
        """Grava status, ``updated_at`` e histórico juntos; ``validar`` roda dentro da unidade."""
        raise NotImplementedError

    @abstractmethod
    async def vincular_orfaos(self, caixa_id: str) -> int:
        """Vincula ao caixa todo pedido sem caixa e retorna quantos foram vinculados."""
        raise NotImplementedError

    @abstractmethod
    async def historico(self, pedido_id: str) -> List[PedidoStatusHistoricoOut]:
        raise NotImplementedError

    @abstractmethod
    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        raise NotImplementedError

    @abstractmethod
    def assinar(self, listener: Listener) -> Callable[[], None]:
        raise NotImplementedError
