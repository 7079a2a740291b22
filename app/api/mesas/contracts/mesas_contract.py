"""
Contract de persistência de mesas e vendas de mesa.

Toda alteração de venda recebe uma função pura que é aplicada sobre o estado
lido dentro da própria unidade de gravação; assim duas alterações
concorrentes na mesma venda nunca se sobrescrevem.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from app.api.mesas.schemas.schema_mesa import MesaOut, StatusMesaEnum, VendaMesaOut
from app.api.notifications.core.eventos import EventoAlteracao, Listener

MutacaoVenda = Callable[[VendaMesaOut], VendaMesaOut]


class IMesaRepository(ABC):

    @abstractmethod
    async def criar_mesa(self, mesa: MesaOut) -> MesaOut:
        """Insere a mesa; número repetido levanta ``StateConflictError``."""
        raise NotImplementedError

    @abstractmethod
    async def obter_mesa(self, mesa_id: str) -> Optional[MesaOut]:
        raise NotImplementedError

    @abstractmethod
    async def listar_mesas(self) -> List[MesaOut]:
        raise NotImplementedError

    @abstractmethod
    async def obter_venda(self, venda_id: str) -> Optional[VendaMesaOut]:
        raise NotImplementedError

    @abstractmethod
    async def abrir_venda(self, mesa_id: str, venda: VendaMesaOut) -> Tuple[MesaOut, VendaMesaOut]:
        """
        Insere a venda e ocupa a mesa numa única unidade.

        A ocupação é condicional a ``status == livre``; se outra abertura
        chegou antes levanta ``StateConflictError`` e nada é gravado.
        """
        raise NotImplementedError

    @abstractmethod
    async def alterar_status_mesa(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        novo_status: StatusMesaEnum,
    ) -> MesaOut:
        raise NotImplementedError

    @abstractmethod
    async def alterar_venda(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        mutacao: MutacaoVenda,
    ) -> VendaMesaOut:
        """Aplica ``mutacao`` sobre a venda atual da mesa e grava o resultado."""
        raise NotImplementedError

    @abstractmethod
    async def encerrar_venda(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        mutacao: MutacaoVenda,
        novo_status_mesa: StatusMesaEnum,
    ) -> Tuple[MesaOut, VendaMesaOut]:
        """Grava a venda encerrada, muda a mesa e limpa ``venda_atual_id`` juntos."""
        raise NotImplementedError

    @abstractmethod
    async def liberar_mesa(self, mesa_id: str) -> MesaOut:
        raise NotImplementedError

    @abstractmethod
    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        raise NotImplementedError

    @abstractmethod
    def assinar(self, listener: Listener) -> Callable[[], None]:
        raise NotImplementedError
