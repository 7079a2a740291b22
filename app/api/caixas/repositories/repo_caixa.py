from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api.caixas.contracts.caixa_contract import ICaixaRepository
from app.api.caixas.models.model_caixa import CaixaModel
from app.api.caixas.schemas.schema_caixa import CaixaResponse, CaixaStatusEnum
from app.core.exceptions import NotFoundError, StateConflictError
from app.database.repository_utils import para_colunas
from app.utils.database_utils import now_trimmed
from app.utils.timeout import com_timeout


class CaixaRepository(ICaixaRepository):
    """Repository para sessões de caixa"""

    def __init__(self, sessionmaker: async_sessionmaker, timeout: Optional[float] = None):
        self.sessionmaker = sessionmaker
        self.timeout = timeout

    async def abrir(self, caixa: CaixaResponse) -> CaixaResponse:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                aberto = await session.scalar(
                    select(CaixaModel.id).where(CaixaModel.status == CaixaStatusEnum.ABERTO).with_for_update()
                )
                if aberto:
                    raise StateConflictError("Já existe um caixa aberto.", detalhes={"caixa_id": aberto})
                session.add(CaixaModel(**para_colunas(caixa)))
            return caixa

        return await com_timeout(_op(), "abrir o caixa", self.timeout)

    async def obter(self, caixa_id: str) -> Optional[CaixaResponse]:
        async def _op():
            async with self.sessionmaker() as session:
                model = await session.get(CaixaModel, caixa_id)
                return CaixaResponse.model_validate(model) if model else None

        return await com_timeout(_op(), "buscar o caixa", self.timeout)

    async def obter_aberto(self) -> Optional[CaixaResponse]:
        async def _op():
            stmt = (
                select(CaixaModel)
                .where(CaixaModel.status == CaixaStatusEnum.ABERTO)
                .order_by(CaixaModel.aberto_em.desc())
                .limit(1)
            )
            async with self.sessionmaker() as session:
                model = (await session.execute(stmt)).scalar_one_or_none()
                return CaixaResponse.model_validate(model) if model else None

        return await com_timeout(_op(), "consultar o caixa aberto", self.timeout)

    async def fechar(self, caixa_id: str) -> CaixaResponse:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                model = await session.get(CaixaModel, caixa_id, with_for_update=True)
                if model is None:
                    raise NotFoundError(f"Caixa {caixa_id} não encontrado.")
                if model.status != CaixaStatusEnum.ABERTO:
                    raise StateConflictError("Caixa já está fechado.")
                model.status = CaixaStatusEnum.FECHADO
                model.fechado_em = now_trimmed()
                await session.flush()
                return CaixaResponse.model_validate(model)

        return await com_timeout(_op(), "fechar o caixa", self.timeout)
