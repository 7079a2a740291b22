"""
Contracts do caixa.

``ICaixaContract`` é tudo o que pedidos e mesas enxergam do caixa: qual está
aberto (ou nenhum). ``ICaixaRepository`` é a persistência usada pelo
próprio serviço de caixa.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from app.api.caixas.schemas.schema_caixa import CaixaResponse


class ICaixaContract(ABC):
    """Contrato somente leitura para os demais bounded contexts."""

    @abstractmethod
    async def obter_caixa_aberto(self) -> Optional[CaixaResponse]:
        raise NotImplementedError


class ICaixaRepository(ABC):

    @abstractmethod
    async def abrir(self, caixa: CaixaResponse) -> CaixaResponse:
        """Insere o caixa; já havendo um aberto levanta ``StateConflictError``."""
        raise NotImplementedError

    @abstractmethod
    async def obter(self, caixa_id: str) -> Optional[CaixaResponse]:
        raise NotImplementedError

    @abstractmethod
    async def obter_aberto(self) -> Optional[CaixaResponse]:
        raise NotImplementedError

    @abstractmethod
    async def fechar(self, caixa_id: str) -> CaixaResponse:
        raise NotImplementedError
