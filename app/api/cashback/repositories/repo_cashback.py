import asyncio
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.api.cashback.contracts.cashback_contract import ICashbackRepository
from app.api.cashback.models.model_cashback import CashbackTransacaoModel
from app.api.cashback.schemas.schema_cashback import CashbackTransacaoOut, StatusTransacaoCashbackEnum
from app.api.cashback.services.service_cashback import saldo_insuficiente
from app.api.precificacao.services.service_precificacao import ZERO, _dec
from app.core.exceptions import NotFoundError
from app.database.repository_utils import para_colunas
from app.utils.timeout import com_timeout


class CashbackRepository(ICashbackRepository):

    def __init__(self, sessionmaker: async_sessionmaker, timeout: Optional[float] = None):
        self.sessionmaker = sessionmaker
        self.timeout = timeout
        # Serializa os resgates deste processo; entre processos vale o lock do PostgreSQL
        self._trava_resgate = asyncio.Lock()

    async def inserir(self, transacao: CashbackTransacaoOut) -> CashbackTransacaoOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                session.add(CashbackTransacaoModel(**para_colunas(transacao)))
            return transacao

        return await com_timeout(_op(), "registrar transação de cashback", self.timeout)

    async def registrar_resgate(self, transacao: CashbackTransacaoOut, desde: datetime) -> CashbackTransacaoOut:
        async def _op():
            async with self._trava_resgate:
                async with self.sessionmaker() as session, session.begin():
                    conexao = await session.connection()
                    if conexao.dialect.name == "postgresql":
                        await session.execute(
                            text("SELECT pg_advisory_xact_lock(hashtext(:telefone))"),
                            {"telefone": transacao.telefone},
                        )
                    soma = await session.scalar(
                        select(func.coalesce(func.sum(CashbackTransacaoModel.valor_cashback), 0)).where(
                            CashbackTransacaoModel.telefone == transacao.telefone,
                            CashbackTransacaoModel.status == StatusTransacaoCashbackEnum.APROVADO,
                            CashbackTransacaoModel.created_at >= desde,
                        )
                    )
                    saldo = max(ZERO, _dec(soma))
                    if -transacao.valor_cashback > saldo:
                        raise saldo_insuficiente(saldo, -transacao.valor_cashback)
                    session.add(CashbackTransacaoModel(**para_colunas(transacao)))
            return transacao

        return await com_timeout(_op(), "registrar resgate de cashback", self.timeout)

    async def cancelar(self, transacao_id: str) -> None:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                result = await session.execute(
                    update(CashbackTransacaoModel)
                    .where(CashbackTransacaoModel.id == transacao_id)
                    .values(status=StatusTransacaoCashbackEnum.CANCELADO)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f"Transação de cashback {transacao_id} não encontrada.")

        await com_timeout(_op(), "estornar transação de cashback", self.timeout)

    async def listar_por_telefone(self, telefone: str, desde: Optional[datetime] = None) -> List[CashbackTransacaoOut]:
        async def _op():
            stmt = (
                select(CashbackTransacaoModel)
                .where(CashbackTransacaoModel.telefone == telefone)
                .order_by(CashbackTransacaoModel.created_at)
            )
            if desde is not None:
                stmt = stmt.where(CashbackTransacaoModel.created_at >= desde)
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [CashbackTransacaoOut.model_validate(m) for m in result.scalars().all()]

        return await com_timeout(_op(), "consultar o cashback", self.timeout)
