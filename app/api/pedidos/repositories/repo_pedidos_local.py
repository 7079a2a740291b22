from datetime import datetime
from typing import List, Optional

from app.api.notifications.core.eventos import (
    EventoAlteracao,
    FluxoAlteracoes,
    TipoEntidadeEnum,
    TipoEventoEnum,
)
from app.api.pedidos.contracts.pedidos_contract import IPedidoRepository, ValidadorStatus
from app.api.pedidos.schemas.schema_pedido import PedidoOut
from app.api.pedidos.schemas.schema_pedido_status_historico import PedidoStatusHistoricoOut
from app.api.shared.schemas.schema_shared_enums import PEDIDO_STATUS_DESCRICAO, PedidoStatusEnum
from app.core.exceptions import NotFoundError
from app.database.local_store import LocalStore
from app.database.repository_utils import novo_id, para_registro
from app.utils.database_utils import now_trimmed
from app.utils.timeout import com_timeout


def _evento(pedido: PedidoOut, tipo: TipoEventoEnum) -> EventoAlteracao:
    return EventoAlteracao(TipoEntidadeEnum.PEDIDO, pedido.id, pedido, tipo)


def _mais_recentes_primeiro(pedidos: List[PedidoOut]) -> List[PedidoOut]:
    return sorted(reversed(pedidos), key=lambda p: p.created_at, reverse=True)


class PedidoRepositoryLocal(IPedidoRepository):
    """Repository de pedidos no cache local"""

    def __init__(self, store: LocalStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout
        self.alteracoes = FluxoAlteracoes("pedidos")

    def assinar(self, listener):
        return self.alteracoes.assinar(listener)

    def _todos(self) -> List[PedidoOut]:
        return [PedidoOut.model_validate(d) for d in self.store.tabela("pedidos").values()]

    @staticmethod
    def _historico(tabelas, pedido_id: str, anterior: Optional[PedidoStatusEnum],
                   novo: PedidoStatusEnum, quando: datetime) -> None:
        ordem = 1 + sum(1 for h in tabelas["pedidos_historico"].values() if h["pedido_id"] == pedido_id)
        registro = PedidoStatusHistoricoOut(
            id=novo_id(),
            pedido_id=pedido_id,
            ordem=ordem,
            status_anterior=anterior,
            status_novo=novo,
            descricao=PEDIDO_STATUS_DESCRICAO[novo],
            created_at=quando,
        )
        tabelas["pedidos_historico"][registro.id] = para_registro(registro)

    # ------------------------------------------------------------------
    async def criar(self, pedido: PedidoOut) -> PedidoOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                tabelas["pedidos"][pedido.id] = para_registro(pedido)
                self._historico(tabelas, pedido.id, None, pedido.status, pedido.created_at)
            return pedido

        criado = await com_timeout(_op(), "gravar o pedido", self.timeout)
        await self.alteracoes.emitir(_evento(criado, TipoEventoEnum.INSERT))
        return criado

    async def obter(self, pedido_id: str) -> Optional[PedidoOut]:
        registro = self.store.tabela("pedidos").get(pedido_id)
        return PedidoOut.model_validate(registro) if registro else None

    async def listar_visiveis(self, caixa_id: Optional[str]) -> List[PedidoOut]:
        visiveis = [p for p in self._todos() if p.caixa_id is None or (caixa_id and p.caixa_id == caixa_id)]
        return _mais_recentes_primeiro(visiveis)

    async def atualizar_status(
        self,
        pedido_id: str,
        novo_status: PedidoStatusEnum,
        validar: ValidadorStatus,
    ) -> PedidoOut:
        async def _op():
            async with self.store.transacao() as tabelas:
                registro = tabelas["pedidos"].get(pedido_id)
                if registro is None:
                    raise NotFoundError(f"Pedido {pedido_id} não encontrado.")
                atual = PedidoOut.model_validate(registro)
                validar(atual, novo_status)

                agora = now_trimmed()
                atualizado = atual.model_copy(
                    update={"status": novo_status, "updated_at": agora, "versao": atual.versao + 1}
                )
                tabelas["pedidos"][pedido_id] = para_registro(atualizado)
                self._historico(tabelas, pedido_id, atual.status, novo_status, agora)
            return atualizado

        atualizado = await com_timeout(_op(), "atualizar o status do pedido", self.timeout)
        await self.alteracoes.emitir(_evento(atualizado, TipoEventoEnum.UPDATE))
        return atualizado

    async def vincular_orfaos(self, caixa_id: str) -> int:
        async def _op():
            vinculados = []
            async with self.store.transacao() as tabelas:
                agora = now_trimmed()
                for pedido_id, registro in tabelas["pedidos"].items():
                    if registro.get("caixa_id") is not None:
                        continue
                    orfao = PedidoOut.model_validate(registro)
                    pedido = orfao.model_copy(
                        update={"caixa_id": caixa_id, "updated_at": agora, "versao": orfao.versao + 1}
                    )
                    tabelas["pedidos"][pedido_id] = para_registro(pedido)
                    vinculados.append(pedido)
            return vinculados

        vinculados = await com_timeout(_op(), "vincular pedidos ao caixa", self.timeout)
        await self.alteracoes.emitir(*(_evento(p, TipoEventoEnum.UPDATE) for p in vinculados))
        return len(vinculados)

    async def historico(self, pedido_id: str) -> List[PedidoStatusHistoricoOut]:
        registros = [
            PedidoStatusHistoricoOut.model_validate(h)
            for h in self.store.tabela("pedidos_historico").values()
            if h["pedido_id"] == pedido_id
        ]
        return sorted(registros, key=lambda h: h.ordem)

    async def listar_alterados_desde(self, cursor: Optional[datetime]) -> List[EventoAlteracao]:
        pedidos = [p for p in self._todos() if cursor is None or p.updated_at >= cursor]
        pedidos.sort(key=lambda p: p.updated_at)
        return [_evento(p, TipoEventoEnum.UPDATE) for p in pedidos]
