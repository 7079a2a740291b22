from decimal import Decimal
from typing import Awaitable, Callable, List, Optional

from app.api.caixas.contracts.caixa_contract import ICaixaContract, ICaixaRepository
from app.api.caixas.schemas.schema_caixa import CaixaResponse, CaixaStatusEnum
from app.api.notifications.core.eventos import chamar_callback
from app.core.exceptions import NotFoundError
from app.database.repository_utils import novo_id
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger

AoAbrirCaixa = Callable[[CaixaResponse], Optional[Awaitable[None]]]


class CaixaService(ICaixaContract):
    """Service para sessões de caixa"""

    def __init__(self, repo: ICaixaRepository):
        self.repo = repo
        self._ao_abrir: List[AoAbrirCaixa] = []

    def ao_abrir(self, callback: AoAbrirCaixa) -> None:
        """Registra rotina executada logo após a abertura (ex.: vincular pedidos órfãos)."""
        self._ao_abrir.append(callback)

    async def obter_caixa_aberto(self) -> Optional[CaixaResponse]:
        return await self.repo.obter_aberto()

    async def obter_caixa(self, caixa_id: str) -> CaixaResponse:
        caixa = await self.repo.obter(caixa_id)
        if caixa is None:
            raise NotFoundError(f"Caixa {caixa_id} não encontrado.")
        return caixa

    async def abrir_caixa(self, valor_inicial: Decimal = Decimal("0"), operador: Optional[str] = None) -> CaixaResponse:
        """Abre o caixa; só pode haver um aberto por vez"""
        caixa = await self.repo.abrir(
            CaixaResponse(
                id=novo_id(),
                status=CaixaStatusEnum.ABERTO,
                valor_inicial=valor_inicial,
                operador=operador,
                aberto_em=now_trimmed(),
            )
        )
        logger.info(f"[Caixa] Aberto - caixa_id={caixa.id} operador={operador}")

        for callback in list(self._ao_abrir):
            try:
                await chamar_callback(callback, caixa)
            except Exception as e:
                logger.error(f"[Caixa] Rotina pós-abertura falhou para caixa_id={caixa.id}: {e}")
        return caixa

    async def fechar_caixa(self, caixa_id: str) -> CaixaResponse:
        caixa = await self.repo.fechar(caixa_id)
        logger.info(f"[Caixa] Fechado - caixa_id={caixa.id}")
        return caixa
