from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.notifications.core.eventos import (
    EventoAlteracao,
    FluxoAlteracoes,
    TipoEntidadeEnum,
    TipoEventoEnum,
)
from app.api.pedidos.contracts.pedidos_contract import IPedidoRepository, ValidadorStatus
from app.api.pedidos.models.model_pedido import PedidoHistoricoModel, PedidoModel
from app.api.pedidos.schemas.schema_pedido import PedidoOut
from app.api.pedidos.schemas.schema_pedido_status_historico import PedidoStatusHistoricoOut
from app.api.shared.schemas.schema_shared_enums import PEDIDO_STATUS_DESCRICAO, PedidoStatusEnum
from app.core.exceptions import NotFoundError
from app.database.repository_utils import novo_id, para_colunas
from app.utils.database_utils import now_trimmed
from app.utils.timeout import com_timeout

CAMPOS_JSON = {"itens", "pagamentos", "avisos_pagamento"}


def _evento(pedido: PedidoOut, tipo: TipoEventoEnum) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.PEDIDO, pedido.id, pedido, tipo)


class PedidoRepository(IPedidoRepository):
    """Repository de pedidos sobre SQLAlchemy assíncrono"""

    def __init__(self, sessionmaker: async_sessionmaker, timeout: Optional[float] = None):
        self.sessionmaker = sessionmaker
        self.timeout = timeout
        self.alteracoes = FluxoAlteracoes("pedidos")

    def assinar(self, listener):
        return self.alteracoes.assinar(listener)

    @staticmethod
    def _historico(session: AsyncSession, pedido_id: str, ordem: int,
                   anterior: Optional[PedidoStatusEnum], novo: PedidoStatusEnum, quando: datetime):
        session.add(
            PedidoHistoricoModel(
                id=novo_id(),
                pedido_id=pedido_id,
                ordem=ordem,
                status_anterior=anterior,
                status_novo=novo,
                descricao=PEDIDO_STATUS_DESCRICAO[novo],
                created_at=quando,
            )
        )

    # ------------------------------------------------------------------
    async def criar(self, pedido: PedidoOut) -> PedidoOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                session.add(PedidoModel(**para_colunas(pedido, CAMPOS_JSON)))
                self._historico(session, pedido.id, 1, None, pedido.status, pedido.created_at)
            return pedido

        criado = await com_timeout(_op(), "gravar o pedido", self.timeout)
        await self.alteracoes.emitir(_evento(criado, TipoEventoEnum.INSERT))
        return criado

    async def obter(self, pedido_id: str) -> Optional[PedidoOut]:
        async def _op():
            async with self.sessionmaker() as session:
                model = await session.get(PedidoModel, pedido_id)
                return PedidoOut.model_validate(model) if model else None

        return await com_timeout(_op(), "buscar o pedido", self.timeout)

    async def listar_visiveis(self, caixa_id: Optional[str]) -> List[PedidoOut]:
        async def _op():
            filtro = PedidoModel.caixa_id.is_(None)
            if caixa_id:
                filtro = or_(PedidoModel.caixa_id == caixa_id, PedidoModel.caixa_id.is_(None))
            stmt = select(PedidoModel).where(filtro).order_by(PedidoModel.created_at.desc())
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [PedidoOut.model_validate(m) for m in result.scalars().all()]

        return await com_timeout(_op(), "carregar os pedidos", self.timeout)

    async def atualizar_status(
        self,
        pedido_id: str,
        novo_status: PedidoStatusEnum,
        validar: ValidadorStatus,
    ) -> PedidoOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                stmt = select(PedidoModel).where(PedidoModel.id == pedido_id).with_for_update()
                model = (await session.execute(stmt)).scalar_one_or_none()
                if model is None:
                    raise NotFoundError(f"Pedido {pedido_id} não encontrado.")

                validar(PedidoOut.model_validate(model), novo_status)

                ordem = await session.scalar(
                    select(func.coalesce(func.max(PedidoHistoricoModel.ordem), 0))
                    .where(PedidoHistoricoModel.pedido_id == pedido_id)
                )
                anterior = model.status
                agora = now_trimmed()
                model.status = novo_status
                model.updated_at = agora
                model.versao += 1
                self._historico(session, pedido_id, ordem + 1, anterior, novo_status, agora)
                await session.flush()
                return PedidoOut.model_validate(model)

        atualizado = await com_timeout(_op(), "atualizar o status do pedido", self.timeout)
        await self.alteracoes.emitir(_evento(atualizado, TipoEventoEnum.UPDATE))
        return atualizado

    async def vincular_orfaos(self, caixa_id: str) -> int:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                stmt = select(PedidoModel).where(PedidoModel.caixa_id.is_(None)).with_for_update()
                orfaos = (await session.execute(stmt)).scalars().all()
                agora = now_trimmed()
                for model in orfaos:
                    model.caixa_id = caixa_id
                    model.updated_at = agora
                    model.versao += 1
                await session.flush()
                return [PedidoOut.model_validate(m) for m in orfaos]

        vinculados = await com_timeout(_op(), "vincular pedidos ao caixa", self.timeout)
        await self.alteracoes.emitir(*(_evento(p, TipoEventoEnum.UPDATE) for p in vinculados))
        return len(vinculados)

    async def historico(self, pedido_id: str) -> List[PedidoStatusHistoricoOut]:
        async def _op():
            stmt = (
                select(PedidoHistoricoModel)
                .where(PedidoHistoricoModel.pedido_id == pedido_id)
                .order_by(PedidoHistoricoModel.ordem)
            )
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [PedidoStatusHistoricoOut.model_validate(m) for m in result.scalars().all()]

        return await com_timeout(_op(), "buscar o histórico do pedido", self.timeout)

    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        async def _op():
            stmt = select(PedidoModel).order_by(PedidoModel.updated_at)
            if cursor is not None:
                stmt = stmt.where(PedidoModel.updated_at >= cursor)
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [PedidoOut.model_validate(m) for m in result.scalars().all()]

        pedidos = await com_timeout(_op(), "consultar pedidos alterados", self.timeout)
        return [_evento(p, TipoEventoEnum.UPDATE) for p in pedidos]
