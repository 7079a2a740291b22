from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from app.api.mesas.contracts.mesas_contract import IMesaRepository, MutacaoVenda
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
from app.database.local_store import LocalStore
from app.database.repository_utils import para_registro
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.timeout import com_timeout


def _evento_mesa(mesa: MesaOut, tipo=TipoEventoEnum.UPDATE) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.MESA, mesa.id, mesa, tipo)


def _evento_venda(venda: VendaMesaOut, tipo=TipoEventoEnum.UPDATE) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.VENDA_MESA, venda.id, venda, tipo)


def _mesa_para_escrita(tabelas, mesa_id: str, permitidos: Optional[frozenset] = None) -> MesaOut:
    registro = tabelas["mesas"].get(mesa_id)
    if registro is None:
        raise NotFoundError(f"Mesa {mesa_id} não encontrada.")
    mesa = MesaOut.model_validate(registro)
    if permitidos is not None and mesa.status not in permitidos:
        raise StateConflictError(
            f"Mesa {mesa.numero} está '{MESA_STATUS_DESCRICAO[mesa.status]}'.",
            detalhes={"status_atual": mesa.status.value, "permitidos": sorted(s.value for s in permitidos)},
        )
    return mesa


def _venda_atual(tabelas, mesa: MesaOut) -> VendaMesaOut:
    registro = tabelas["vendas_mesa"].get(mesa.venda_atual_id) if mesa.venda_atual_id else None
    if registro is None:
        raise StateConflictError(f"Mesa {mesa.numero} não possui venda aberta.")
    return VendaMesaOut.model_validate(registro)


class MesaRepositoryLocal(IMesaRepository):
    """Repository de mesas e vendas de mesa no cache local"""

    def __init__(self, store: LocalStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout
        self.alteracoes = FluxoAlteracoes("mesas")

    def assinar(self, listener):
        return self.alteracoes.assinar(listener)

    # ------------------------------------------------------------------
    # Mesas
    # ------------------------------------------------------------------
    async def criar_mesa(self, mesa: MesaOut) -> MesaOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                if any(m["numero"] == mesa.numero for m in tabelas["mesas"].values()):
                    raise StateConflictError(f"Já existe uma mesa com o número {mesa.numero}.")
                tabelas["mesas"][mesa.id] = para_registro(mesa)
            return mesa

        criada = await com_timeout(_op(), "cadastrar a mesa", self.timeout)
        logger.info(f"[Mesas] Mesa criada - id={criada.id} numero={criada.numero}")
        await self.alteracoes.emitir(_evento_mesa(criada, TipoEventoEnum.INSERT))
        return criada

    async def obter_mesa(self, mesa_id: str) -> Optional[MesaOut]:
        registro = self.store.tabela("mesas").get(mesa_id)
        return MesaOut.model_validate(registro) if registro else None

    async def listar_mesas(self) -> List[MesaOut]:
        mesas = [MesaOut.model_validate(m) for m in self.store.tabela("mesas").values()]
        return sorted((m for m in mesas if m.ativa), key=lambda m: m.numero)

    async def obter_venda(self, venda_id: str) -> Optional[VendaMesaOut]:
        registro = self.store.tabela("vendas_mesa").get(venda_id)
        return VendaMesaOut.model_validate(registro) if registro else None

    # ------------------------------------------------------------------
    # Transições
    # ------------------------------------------------------------------
    async def abrir_venda(self, mesa_id: str, venda: VendaMesaOut) -> Tuple[MesaOut, VendaMesaOut]:
        async def _op():
            async with self.store.transacao() as tabelas:
                mesa = _mesa_para_escrita(tabelas, mesa_id, frozenset({StatusMesaEnum.LIVRE}))
                numero = 1 + max((v["numero_venda"] for v in tabelas["vendas_mesa"].values()), default=0)
                nova = venda.model_copy(update={"mesa_id": mesa_id, "numero_venda": numero})
                mesa = mesa.model_copy(update={
                    "status": StatusMesaEnum.OCUPADA,
                    "venda_atual_id": nova.id,
                    "updated_at": now_trimmed(),
                    "versao": mesa.versao + 1,
                })
                tabelas["vendas_mesa"][nova.id] = para_registro(nova)
                tabelas["mesas"][mesa_id] = para_registro(mesa)
            return mesa, nova

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
            async with self.store.transacao() as tabelas:
                mesa = _mesa_para_escrita(tabelas, mesa_id, permitidos)
                mesa = mesa.model_copy(update={
                    "status": novo_status,
                    "updated_at": now_trimmed(),
                    "versao": mesa.versao + 1,
                })
                tabelas["mesas"][mesa_id] = para_registro(mesa)
            return mesa

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
            async with self.store.transacao() as tabelas:
                mesa = _mesa_para_escrita(tabelas, mesa_id, permitidos)
                nova = mutacao(_venda_atual(tabelas, mesa))
                nova = nova.model_copy(update={"updated_at": now_trimmed(), "versao": nova.versao + 1})
                tabelas["vendas_mesa"][nova.id] = para_registro(nova)
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
            async with self.store.transacao() as tabelas:
                mesa = _mesa_para_escrita(tabelas, mesa_id, permitidos)
                agora = now_trimmed()
                nova = mutacao(_venda_atual(tabelas, mesa))
                nova = nova.model_copy(update={"updated_at": agora, "versao": nova.versao + 1})
                mesa = mesa.model_copy(update={
                    "status": novo_status_mesa,
                    "venda_atual_id": None,
                    "updated_at": agora,
                    "versao": mesa.versao + 1,
                })
                tabelas["vendas_mesa"][nova.id] = para_registro(nova)
                tabelas["mesas"][mesa_id] = para_registro(mesa)
            return mesa, nova

        mesa, venda = await com_timeout(_op(), "encerrar a venda da mesa", self.timeout)
        await self.alteracoes.emitir(_evento_venda(venda), _evento_mesa(mesa))
        return mesa, venda

    async def liberar_mesa(self, mesa_id: str) -> MesaOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                mesa = _mesa_para_escrita(tabelas, mesa_id)
                mesa = mesa.model_copy(update={
                    "status": StatusMesaEnum.LIVRE,
                    "venda_atual_id": None,
                    "updated_at": now_trimmed(),
                    "versao": mesa.versao + 1,
                })
                tabelas["mesas"][mesa_id] = para_registro(mesa)
            return mesa

        mesa = await com_timeout(_op(), "liberar a mesa", self.timeout)
        await self.alteracoes.emitir(_evento_mesa(mesa))
        return mesa

    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        mesas = [MesaOut.model_validate(m) for m in self.store.tabela("mesas").values()]
        vendas = [VendaMesaOut.model_validate(v) for v in self.store.tabela("vendas_mesa").values()]
        if cursor is not None:
            mesas = [m for m in mesas if m.updated_at >= cursor]
            vendas = [v for v in vendas if v.updated_at >= cursor]
        mesas.sort(key=lambda m: m.updated_at)
        vendas.sort(key=lambda v: v.updated_at)
        return [_evento_venda(v) for v in vendas] + [_evento_mesa(m) for m in mesas]
