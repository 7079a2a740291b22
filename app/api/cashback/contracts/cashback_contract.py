from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from app.api.cashback.schemas.schema_cashback import CashbackTransacaoOut


class ICashbackContract(ABC):
    """Conta de cashback do cliente, identificada pelo telefone."""

    @abstractmethod
    async def obter_saldo(self, telefone: str) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    async def resgatar(self, telefone: str, valor: Decimal, referencia: Optional[str] = None) -> CashbackTransacaoOut:
        raise NotImplementedError

    @abstractmethod
    async def estornar(self, transacao: CashbackTransacaoOut) -> None:
        raise NotImplementedError

    @abstractmethod
    async def acumular(self, telefone: str, valor_compra: Decimal, referencia: Optional[str] = None) -> Optional[CashbackTransacaoOut]:
        raise NotImplementedError


class ICashbackRepository(ABC):

    @abstractmethod
    async def inserir(self, transacao: CashbackTransacaoOut) -> CashbackTransacaoOut:
        raise NotImplementedError

    @abstractmethod
    async def registrar_resgate(self, transacao: CashbackTransacaoOut, desde: datetime) -> CashbackTransacaoOut:
        """Grava o resgate só se o saldo aprovado desde `desde` cobrir o valor (checagem e gravação juntas)."""
        raise NotImplementedError

    @abstractmethod
    async def cancelar(self, transacao_id: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def listar_por_telefone(self, telefone: str, desde: Optional[datetime] = None) -> List[CashbackTransacaoOut]:
        raise NotImplementedError
