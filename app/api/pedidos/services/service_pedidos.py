"""
Service de pedidos (delivery, manual e PDV).

Dono do ciclo de vida do pedido: criação com totais vindos do motor de
precificação, transições de status com histórico e vínculo de pedidos
órfãos ao caixa aberto.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from app.api.caixas.contracts.caixa_contract import ICaixaContract
from app.api.cashback.contracts.cashback_contract import ICashbackContract
from app.api.notifications.core.event_bus import RealtimeEventBus
from app.api.notifications.core.eventos import TipoEntidadeEnum
from app.api.notifications.services.notification_service import NotificacaoService
from app.api.pedidos.contracts.pedidos_contract import IPedidoRepository
from app.api.pedidos.schemas.schema_pedido import PedidoCreate, PedidoOut
from app.api.pedidos.schemas.schema_pedido_status_historico import PedidoStatusHistoricoOut
from app.api.pedidos.services.service_pedido_helpers import validar_rascunho, validar_transicao_status
from app.api.precificacao.services.service_precificacao import ZERO, liquidar, precificar_item
from app.api.shared.schemas.schema_shared_enums import PedidoStatusEnum, TipoEntregaEnum
from app.core.exceptions import NotFoundError, VendaError
from app.database.repository_utils import novo_id
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.prometheus_metrics import registrar_pedido_criado
from app.utils.telefone import normalizar_telefone


class PedidoService:
    def __init__(
        self,
        repo: IPedidoRepository,
        caixa: ICaixaContract,
        cashback: Optional[ICashbackContract] = None,
        notificacoes: Optional[NotificacaoService] = None,
        realtime: Optional[RealtimeEventBus] = None,
    ):
        self.repo = repo
        self.caixa = caixa
        self.cashback = cashback
        self.notificacoes = notificacoes
        self.realtime = realtime

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------
    async def _caixa_aberto_id(self) -> Optional[str]:
        caixa = await self.caixa.obter_caixa_aberto()
        return caixa.id if caixa is not None else None

    async def listar_visiveis(self) -> List[PedidoOut]:
        """Com caixa aberto: pedidos dele e os sem caixa. Sem caixa: só os sem caixa."""
        return await self.repo.listar_visiveis(await self._caixa_aberto_id())

    async def obter_pedido(self, pedido_id: str) -> PedidoOut:
        pedido = await self.repo.obter(pedido_id)
        if pedido is None:
            raise NotFoundError(f"Pedido {pedido_id} não encontrado.")
        return pedido

    async def historico(self, pedido_id: str) -> List[PedidoStatusHistoricoOut]:
        await self.obter_pedido(pedido_id)
        return await self.repo.historico(pedido_id)

    async def carregar(self) -> List[PedidoOut]:
        """(Re)carrega a coleção visível, vinculando órfãos se houver caixa aberto."""
        caixa_id = await self._caixa_aberto_id()
        if caixa_id is not None:
            await self.reconciliar_orfaos(caixa_id)

        pedidos = await self.repo.listar_visiveis(caixa_id)
        if self.realtime is not None:
            self.realtime.semear(TipoEntidadeEnum.PEDIDO, pedidos)
        logger.info(f"[Pedidos] Carregados {len(pedidos)} pedidos visíveis (caixa_id={caixa_id})")
        return pedidos

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------
    async def _saldo_cashback(self, telefone: Optional[str], solicitado: Decimal) -> Decimal:
        if solicitado <= ZERO or self.cashback is None:
            return ZERO
        return await self.cashback.obter_saldo(telefone)

    async def criar_pedido(self, draft: PedidoCreate) -> PedidoOut:
        validar_rascunho(draft)

        telefone = normalizar_telefone(draft.cliente_telefone) or None
        taxa_entrega = draft.taxa_entrega if draft.tipo_entrega == TipoEntregaEnum.DELIVERY else ZERO
        saldo = await self._saldo_cashback(telefone, draft.cashback_solicitado)

        resultado = liquidar(
            draft.itens,
            desconto=draft.desconto,
            cashback_solicitado=draft.cashback_solicitado,
            cashback_disponivel=saldo,
            taxa_entrega=taxa_entrega,
            pagamento=draft.pagamento,
        )
        conciliacao = resultado.pagamento
        agora = now_trimmed()

        pedido = PedidoOut(
            id=novo_id(),
            cliente_nome=draft.cliente_nome.strip(),
            cliente_telefone=telefone,
            cliente_endereco=draft.cliente_endereco,
            cliente_bairro=draft.cliente_bairro,
            cliente_complemento=draft.cliente_complemento,
            tipo_entrega=draft.tipo_entrega,
            canal=draft.canal,
            itens=[precificar_item(item) for item in draft.itens],
            meio_pagamento=conciliacao.meio,
            pagamentos=conciliacao.pagamentos,
            troco_para=conciliacao.troco_para,
            troco=conciliacao.troco,
            avisos_pagamento=conciliacao.avisos,
            subtotal=resultado.subtotal,
            desconto=resultado.desconto,
            cashback_aplicado=resultado.cashback_aplicado,
            taxa_entrega=resultado.taxa_entrega,
            valor_total=resultado.valor_total,
            observacao=draft.observacao,
            status=PedidoStatusEnum.PENDENTE,
            caixa_id=await self._caixa_aberto_id(),
            created_at=agora,
            updated_at=agora,
        )

        # Resgate antes da gravação: saldo consumido por outro pedido barra este com ValidationError
        resgate = None
        if pedido.cashback_aplicado > ZERO:
            resgate = await self.cashback.resgatar(telefone, pedido.cashback_aplicado, pedido.id)

        # Falha aqui é crítica e sobe como DependencyUnavailableError
        try:
            pedido = await self.repo.criar(pedido)
        except VendaError:
            if resgate is not None:
                await self._estornar_resgate(resgate)
            raise
        logger.info(
            f"[Pedidos] Criado - pedido_id={pedido.id} canal={pedido.canal.value} "
            f"total={pedido.valor_total} caixa_id={pedido.caixa_id}"
        )
        registrar_pedido_criado(pedido.canal.value)

        await self._acumular_cashback(pedido, base_compra=resultado.subtotal_com_desconto + resultado.taxa_entrega)
        if self.notificacoes is not None:
            await self.notificacoes.pedido_criado(pedido)
        return pedido

    async def _estornar_resgate(self, resgate) -> None:
        try:
            await self.cashback.estornar(resgate)
        except VendaError as e:
            logger.error(
                f"[Pedidos] Estorno de cashback falhou - transacao_id={resgate.id} "
                f"referencia={resgate.referencia}: {e}"
            )

    async def _acumular_cashback(self, pedido: PedidoOut, base_compra: Decimal) -> None:
        if self.cashback is None or not pedido.cliente_telefone:
            return
        try:
            await self.cashback.acumular(pedido.cliente_telefone, base_compra, pedido.id)
        except Exception as e:
            logger.warning(f"[Pedidos] Cashback não acumulado para pedido_id={pedido.id} (não crítico): {e}")

    async def atualizar_status(self, pedido_id: str, novo_status: PedidoStatusEnum) -> PedidoOut:
        pedido = await self.repo.atualizar_status(pedido_id, novo_status, validar_transicao_status)
        logger.info(f"[Pedidos] Status atualizado - pedido_id={pedido_id} status={novo_status.value}")
        if self.notificacoes is not None:
            await self.notificacoes.status_atualizado(pedido)
        return pedido

    async def reconciliar_orfaos(self, caixa_id: str) -> int:
        """Vincula ao caixa os pedidos criados sem caixa aberto; idempotente."""
        vinculados = await self.repo.vincular_orfaos(caixa_id)
        if vinculados:
            logger.info(f"[Pedidos] {vinculados} pedidos órfãos vinculados ao caixa_id={caixa_id}")
        return vinculados
