from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.api.mesas.contracts.mesas_contract import IMesaRepository, MutacaoVenda
from app.api.mesas.models.model_mesa import MesaModel, VendaMesaModel
from app.api.mesas.schemas.schema_mesa import (
    MESA_STATUS_DESCRICAO,
    MesaOut,
    StatusMesaEnum,
    VendaMesaOut,
)
from app.api.notifications.core.eventos import (
    EventoAlteracao,
    FluxoAlteracoes,
    TipoEntidadeEnum,
    TipoEventoEnum,
)
from app.core.exceptions import NotFoundError, StateConflictError
from app.database.repository_utils import aplicar_colunas, para_colunas
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.timeout import com_timeout

CAMPOS_JSON_VENDA = {"itens", "pagamentos", "avisos_pagamento"}


def _evento_mesa(mesa: MesaOut, tipo=TipoEventoEnum.UPDATE) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.MESA, mesa.id, mesa, tipo)


def _evento_venda(venda: VendaMesaOut, tipo=TipoEventoEnum.UPDATE) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.VENDA_MESA, venda.id, venda, tipo)


def _conflito_status(mesa: MesaModel, permitidos: Iterable[StatusMesaEnum]) -> StateConflictError:
    return StateConflictError(
        f"Mesa {mesa.numero} está '{MESA_STATUS_DESCRICAO[mesa.status]}'.",
        detalhes={"status_atual": mesa.status.value, "permitidos": sorted(s.value for s in permitidos)},
    )


class MesaRepository(IMesaRepository):
    """Repository de mesas e vendas de mesa sobre SQLAlchemy assíncrono"""

    def __init__(self, sessionmaker: async_sessionmaker, timeout: Optional[float] = None):
        self.sessionmaker = sessionmaker
        self.timeout = timeout
        self.alteracoes = FluxoAlteracoes("mesas")

    def assinar(self, listener):
        return self.alteracoes.assinar(listener)

    @staticmethod
    async def _mesa_para_escrita(session: AsyncSession, mesa_id: str) -> MesaModel:
        stmt = select(MesaModel).where(MesaModel.id == mesa_id).with_for_update()
        mesa = (await session.execute(stmt)).scalar_one_or_none()
        if mesa is None:
            raise NotFoundError(f"Mesa {mesa_id} não encontrada.")
        return mesa

    @staticmethod
    async def _venda_atual(session: AsyncSession, mesa: MesaModel) -> VendaMesaModel:
        venda = await session.get(VendaMesaModel, mesa.venda_atual_id) if mesa.venda_atual_id else None
        if venda is None:
            raise StateConflictError(f"Mesa {mesa.numero} não possui venda aberta.")
        return venda

    # ------------------------------------------------------------------
    # Mesas
    # ------------------------------------------------------------------
    async def criar_mesa(self, mesa: MesaOut) -> MesaOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                existente = await session.scalar(select(MesaModel.id).where(MesaModel.numero == mesa.numero))
                if existente:
                    raise StateConflictError(f"Já existe uma mesa com o número {mesa.numero}.")
                session.add(MesaModel(**para_colunas(mesa)))
            return mesa

        criada = await com_timeout(_op(), "cadastrar a mesa", self.timeout)
        logger.info(f"[Mesas] Mesa criada - id={criada.id} numero={criada.numero}")
        await self.alteracoes.emitir(_evento_mesa(criada, TipoEventoEnum.INSERT))
        return criada

    async def obter_mesa(self, mesa_id: str) -> Optional[MesaOut]:
        async def _op():
            async with self.sessionmaker() as session:
                model = await session.get(MesaModel, mesa_id)
                return MesaOut.model_validate(model) if model else None

        return await com_timeout(_op(), "buscar a mesa", self.timeout)

    async def listar_mesas(self) -> List[MesaOut]:
        async def _op():
            stmt = select(MesaModel).where(MesaModel.ativa.is_(True)).order_by(MesaModel.numero)
            async with self.sessionmaker() as session:
                result = await session.execute(stmt)
                return [MesaOut.model_validate(m) for m in result.scalars().all()]

        return await com_timeout(_op(), "listar as mesas", self.timeout)

    async def obter_venda(self, venda_id: str) -> Optional[VendaMesaOut]:
        async def _op():
            async with self.sessionmaker() as session:
                model = await session.get(VendaMesaModel, venda_id)
                return VendaMesaOut.model_validate(model) if model else None

        return await com_timeout(_op(), "buscar a venda da mesa", self.timeout)

    # ------------------------------------------------------------------
    # Transições
    # ------------------------------------------------------------------
    async def abrir_venda(self, mesa_id: str, venda: VendaMesaOut) -> Tuple[MesaOut, VendaMesaOut]:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                agora = now_trimmed()
                # Escrita condicional: só ocupa se ainda estiver livre
                result = await session.execute(
                    update(MesaModel)
                    .where(MesaModel.id == mesa_id, MesaModel.status == StatusMesaEnum.LIVRE)
                    .values(
                        status=StatusMesaEnum.OCUPADA,
                        venda_atual_id=venda.id,
                        updated_at=agora,
                        versao=MesaModel.versao + 1,
                    )
                )
                if result.rowcount == 0:
                    mesa = await session.get(MesaModel, mesa_id)
                    if mesa is None:
                        raise NotFoundError(f"Mesa {mesa_id} não encontrada.")
                    raise _conflito_status(mesa, [StatusMesaEnum.LIVRE])

                numero = await session.scalar(select(func.coalesce(func.max(VendaMesaModel.numero_venda), 0)))
                nova = venda.model_copy(update={"mesa_id": mesa_id, "numero_venda": numero + 1})
                session.add(VendaMesaModel(**para_colunas(nova, CAMPOS_JSON_VENDA)))
                await session.flush()

                mesa = await session.get(MesaModel, mesa_id, populate_existing=True)
                return MesaOut.model_validate(mesa), nova

        mesa, venda = await com_timeout(_op(), "abrir a mesa", self.timeout)
        await self.alteracoes.emitir(_evento_venda(venda, TipoEventoEnum.INSERT), _evento_mesa(mesa))
        return mesa, venda

    async def alterar_status_mesa(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        novo_status: StatusMesaEnum,
    ) -> MesaOut:
        permitidos = frozenset(permitidos)

        async def _op():
            async with self.sessionmaker() as session, session.begin():
                mesa = await self._mesa_para_escrita(session, mesa_id)
                if mesa.status not in permitidos:
                    raise _conflito_status(mesa, permitidos)
                mesa.status = novo_status
                mesa.updated_at = now_trimmed()
                mesa.versao += 1
                await session.flush()
                return MesaOut.model_validate(mesa)

        mesa = await com_timeout(_op(), "alterar o status da mesa", self.timeout)
        await self.alteracoes.emitir(_evento_mesa(mesa))
        return mesa

    async def alterar_venda(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        mutacao: MutacaoVenda,
    ) -> VendaMesaOut:
        permitidos = frozenset(permitidos)

        async def _op():
            async with self.sessionmaker() as session, session.begin():
                mesa = await self._mesa_para_escrita(session, mesa_id)
                if mesa.status not in permitidos:
                    raise _conflito_status(mesa, permitidos)
                venda_model = await self._venda_atual(session, mesa)

                nova = mutacao(VendaMesaOut.model_validate(venda_model))
                nova = nova.model_copy(update={"updated_at": now_trimmed(), "versao": venda_model.versao + 1})
                aplicar_colunas(venda_model, nova, CAMPOS_JSON_VENDA)
                await session.flush()
                return nova

        venda = await com_timeout(_op(), "atualizar a venda da mesa", self.timeout)
        await self.alteracoes.emitir(_evento_venda(venda))
        return venda

    async def encerrar_venda(
        self,
        mesa_id: str,
        permitidos: Iterable[StatusMesaEnum],
        mutacao: MutacaoVenda,
        novo_status_mesa: StatusMesaEnum,
    ) -> Tuple[MesaOut, VendaMesaOut]:
        permitidos = frozenset(permitidos)

        async def _op():
            async with self.sessionmaker() as session, session.begin():
                mesa = await self._mesa_para_escrita(session, mesa_id)
                if mesa.status not in permitidos:
                    raise _conflito_status(mesa, permitidos)
                venda_model = await self._venda_atual(session, mesa)

                agora = now_trimmed()
                nova = mutacao(VendaMesaOut.model_validate(venda_model))
                nova = nova.model_copy(update={"updated_at": agora, "versao": venda_model.versao + 1})
                aplicar_colunas(venda_model, nova, CAMPOS_JSON_VENDA)

                mesa.status = novo_status_mesa
                mesa.venda_atual_id = None
                mesa.updated_at = agora
                mesa.versao += 1
                await session.flush()
                return MesaOut.model_validate(mesa), nova

        mesa, venda = await com_timeout(_op(), "encerrar a venda da mesa", self.timeout)
        await self.alteracoes.emitir(_evento_venda(venda), _evento_mesa(mesa))
        return mesa, venda

    async def liberar_mesa(self, mesa_id: str) -> MesaOut:
        async def _op():
            async with self.sessionmaker() as session, session.begin():
                mesa = await self._mesa_para_escrita(session, mesa_id)
                mesa.status = StatusMesaEnum.LIVRE
                mesa.venda_atual_id = None
                mesa.updated_at = now_trimmed()
                mesa.versao += 1
                await session.flush()
                return MesaOut.model_validate(mesa)

        mesa = await com_timeout(_op(), "liberar a mesa", self.timeout)
        await self.alteracoes.emitir(_evento_mesa(mesa))
        return mesa

    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        async def _op():
            mesas_stmt = select(MesaModel).order_by(MesaModel.updated_at)
            vendas_stmt = select(VendaMesaModel).order_by(VendaMesaModel.updated_at)
            if cursor is not None:
                mesas_stmt = mesas_stmt.where(MesaModel.updated_at >= cursor)
                vendas_stmt = vendas_stmt.where(VendaMesaModel.updated_at >= cursor)
            async with self.sessionmaker() as session:
                mesas = (await session.execute(mesas_stmt)).scalars().all()
                vendas = (await session.execute(vendas_stmt)).scalars().all()
                return (
                    [MesaOut.model_validate(m) for m in mesas],
                    [VendaMesaOut.model_validate(v) for v in vendas],
                )

        mesas, vendas = await com_timeout(_op(), "consultar mesas alteradas", self.timeout)
        return [_evento_venda(v) for v in vendas] + [_evento_mesa(m) for m in mesas]
