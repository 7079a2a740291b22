"""
Service de mesas e vendas de mesa.

Ciclo da mesa: livre → ocupada → aguardando_conta → limpeza → livre.
Cancelar a venda leva direto de ocupada/aguardando_conta para livre.
``Mesa.venda_atual_id`` é a única referência para a venda aberta.
"""
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from app.api.caixas.contracts.caixa_contract import ICaixaContract
from app.api.cashback.contracts.cashback_contract import ICashbackContract
from app.api.mesas.contracts.mesas_contract import IMesaRepository
from app.api.mesas.schemas.schema_mesa import (
    MESA_STATUS_COM_VENDA,
    MesaDetalheOut,
    MesaEstatisticasOut,
    MesaIn,
    MesaOut,
    StatusMesaEnum,
    StatusVendaMesaEnum,
    VendaMesaOut,
)
from app.api.notifications.services.notification_service import NotificacaoService
from app.api.precificacao.schemas.schema_precificacao import DescontoIn, ItemVendaIn, PagamentoIn
from app.api.precificacao.services.service_precificacao import ZERO, liquidar, precificar_item
from app.core.exceptions import (
    CaixaFechadoError,
    NotFoundError,
    StateConflictError,
    ValidationError,
    VendaError,
)
from app.database.repository_utils import novo_id
from app.utils.database_utils import now_trimmed
from app.utils.logger import logger
from app.utils.prometheus_metrics import registrar_venda_mesa_fechada
from app.utils.telefone import normalizar_telefone


def _desconto(venda: VendaMesaOut) -> DescontoIn:
    return DescontoIn(tipo=venda.desconto_tipo, valor=venda.desconto_valor)


def recalcular(venda: VendaMesaOut) -> VendaMesaOut:
    """Recalcula subtotal, desconto e total a partir do conjunto completo de itens."""
    itens = [precificar_item(item, item.id) for item in venda.itens]
    resultado = liquidar(itens, desconto=_desconto(venda), cashback_solicitado=venda.cashback_aplicado,
                         cashback_disponivel=venda.cashback_aplicado)
    return venda.model_copy(update={
        "itens": itens,
        "subtotal": resultado.subtotal,
        "desconto": resultado.desconto,
        "cashback_aplicado": resultado.cashback_aplicado,
        "valor_total": resultado.valor_total,
    })


def _validar_fechamento(venda: VendaMesaOut) -> None:
    if not venda.itens:
        raise ValidationError("Adicione ao menos um item antes de fechar a mesa.")
    recalculada = recalcular(venda)
    if recalculada.subtotal - recalculada.desconto <= ZERO:
        raise ValidationError("O total da venda deve ser maior que zero para fechar a mesa.")


class VendaMesaService:
    def __init__(
        self,
        repo: IMesaRepository,
        caixa: ICaixaContract,
        cashback: Optional[ICashbackContract] = None,
        notificacoes: Optional[NotificacaoService] = None,
    ):
        self.repo = repo
        self.caixa = caixa
        self.cashback = cashback
        self.notificacoes = notificacoes

    # ------------------------------------------------------------------
    # Mesas
    # ------------------------------------------------------------------
    async def criar_mesa(self, dados: MesaIn) -> MesaOut:
        agora = now_trimmed()
        return await self.repo.criar_mesa(
            MesaOut(
                id=novo_id(),
                numero=dados.numero,
                capacidade=dados.capacidade,
                created_at=agora,
                updated_at=agora,
            )
        )

    async def listar_mesas(self) -> List[MesaOut]:
        return await self.repo.listar_mesas()

    async def obter_mesa(self, mesa_id: str) -> MesaOut:
        mesa = await self.repo.obter_mesa(mesa_id)
        if mesa is None:
            raise NotFoundError(f"Mesa {mesa_id} não encontrada.")
        return mesa

    async def obter_venda(self, venda_id: str) -> VendaMesaOut:
        venda = await self.repo.obter_venda(venda_id)
        if venda is None:
            raise NotFoundError(f"Venda {venda_id} não encontrada.")
        return venda

    async def obter_detalhe(self, mesa_id: str) -> MesaDetalheOut:
        mesa = await self.obter_mesa(mesa_id)
        venda = await self.repo.obter_venda(mesa.venda_atual_id) if mesa.venda_atual_id else None
        return MesaDetalheOut(mesa=mesa, venda=venda)

    async def estatisticas(self) -> MesaEstatisticasOut:
        mesas = await self.repo.listar_mesas()

        def contar(status: StatusMesaEnum) -> int:
            return sum(1 for m in mesas if m.status == status)

        return MesaEstatisticasOut(
            total=len(mesas),
            livres=contar(StatusMesaEnum.LIVRE),
            ocupadas=contar(StatusMesaEnum.OCUPADA),
            aguardando_conta=contar(StatusMesaEnum.AGUARDANDO_CONTA),
            limpeza=contar(StatusMesaEnum.LIMPEZA),
        )

    # ------------------------------------------------------------------
    # Ciclo da venda
    # ------------------------------------------------------------------
    async def abrir_mesa(self, mesa_id: str, cliente_nome: Optional[str] = None, qtd_clientes: int = 1) -> MesaDetalheOut:
        mesa = await self.obter_mesa(mesa_id)
        if qtd_clientes > mesa.capacidade:
            raise ValidationError(
                f"Mesa {mesa.numero} comporta no máximo {mesa.capacidade} pessoas.",
                detalhes={"capacidade": mesa.capacidade, "qtd_clientes": qtd_clientes},
            )

        caixa = await self.caixa.obter_caixa_aberto()
        agora = now_trimmed()
        venda = VendaMesaOut(
            id=novo_id(),
            mesa_id=mesa_id,
            numero_venda=0,
            cliente_nome=cliente_nome,
            qtd_clientes=qtd_clientes,
            caixa_id=caixa.id if caixa is not None else None,
            aberta_em=agora,
            updated_at=agora,
        )
        mesa, venda = await self.repo.abrir_venda(mesa_id, venda)
        logger.info(f"[Mesas] Mesa {mesa.numero} aberta - venda_id={venda.id} numero_venda={venda.numero_venda}")
        return MesaDetalheOut(mesa=mesa, venda=venda)

    async def solicitar_conta(self, mesa_id: str) -> MesaOut:
        mesa = await self.repo.alterar_status_mesa(
            mesa_id, {StatusMesaEnum.OCUPADA}, StatusMesaEnum.AGUARDANDO_CONTA
        )
        logger.info(f"[Mesas] Mesa {mesa.numero} aguardando conta")
        return mesa

    async def adicionar_item(self, mesa_id: str, item: ItemVendaIn) -> VendaMesaOut:
        linha = precificar_item(item, novo_id())

        def _mutacao(venda: VendaMesaOut) -> VendaMesaOut:
            return recalcular(venda.model_copy(update={"itens": [*venda.itens, linha]}))

        return await self.repo.alterar_venda(mesa_id, MESA_STATUS_COM_VENDA, _mutacao)

    async def remover_item(self, mesa_id: str, item_id: str) -> VendaMesaOut:
        def _mutacao(venda: VendaMesaOut) -> VendaMesaOut:
            restantes = [i for i in venda.itens if i.id != item_id]
            if len(restantes) == len(venda.itens):
                raise NotFoundError(f"Item {item_id} não encontrado na venda.")
            return recalcular(venda.model_copy(update={"itens": restantes}))

        return await self.repo.alterar_venda(mesa_id, MESA_STATUS_COM_VENDA, _mutacao)

    async def definir_desconto(self, mesa_id: str, desconto: DescontoIn) -> VendaMesaOut:
        def _mutacao(venda: VendaMesaOut) -> VendaMesaOut:
            return recalcular(venda.model_copy(update={
                "desconto_tipo": desconto.tipo,
                "desconto_valor": desconto.valor,
            }))

        return await self.repo.alterar_venda(mesa_id, MESA_STATUS_COM_VENDA, _mutacao)

    async def fechar_venda(
        self,
        mesa_id: str,
        pagamento: PagamentoIn,
        cliente_telefone: Optional[str] = None,
        cashback_solicitado: Decimal = ZERO,
    ) -> MesaDetalheOut:
        """
        Fecha a venda e manda a mesa para limpeza.

        Ordem das guardas: estado da mesa, itens/total, caixa aberto. Qualquer
        falha deixa mesa e venda exatamente como estavam.
        """
        mesa = await self.obter_mesa(mesa_id)
        if mesa.status not in MESA_STATUS_COM_VENDA or not mesa.venda_atual_id:
            raise StateConflictError(
                f"Mesa {mesa.numero} não possui venda para fechar.",
                detalhes={"status_atual": mesa.status.value},
            )
        atual = await self.obter_venda(mesa.venda_atual_id)
        _validar_fechamento(atual)

        caixa = await self.caixa.obter_caixa_aberto()
        if caixa is None:
            raise CaixaFechadoError("Abra o caixa antes de fechar a mesa.")

        telefone = normalizar_telefone(cliente_telefone) or atual.cliente_telefone
        resgate = None
        if cashback_solicitado > ZERO:
            if self.cashback is None:
                raise ValidationError("Cashback indisponível.")
            saldo = await self.cashback.obter_saldo(telefone)
            previa = liquidar(
                atual.itens,
                desconto=_desconto(atual),
                cashback_solicitado=cashback_solicitado,
                cashback_disponivel=saldo,
                pagamento=pagamento,
            )
            if previa.cashback_aplicado > ZERO:
                resgate = await self.cashback.resgatar(telefone, previa.cashback_aplicado, atual.id)
        resgatado = -resgate.valor_cashback if resgate is not None else ZERO

        def _mutacao(venda: VendaMesaOut) -> VendaMesaOut:
            _validar_fechamento(venda)
            resultado = liquidar(
                venda.itens,
                desconto=_desconto(venda),
                cashback_solicitado=cashback_solicitado,
                cashback_disponivel=resgatado,
                pagamento=pagamento,
            )
            if resultado.cashback_aplicado != resgatado:
                raise StateConflictError("Venda alterada durante o fechamento; tente novamente.")
            conciliacao = resultado.pagamento
            return venda.model_copy(update={
                "status": StatusVendaMesaEnum.FECHADA,
                "cliente_telefone": telefone,
                "subtotal": resultado.subtotal,
                "desconto": resultado.desconto,
                "cashback_aplicado": resultado.cashback_aplicado,
                "valor_total": resultado.valor_total,
                "meio_pagamento": conciliacao.meio,
                "pagamentos": conciliacao.pagamentos,
                "troco_para": conciliacao.troco_para,
                "troco": conciliacao.troco,
                "avisos_pagamento": conciliacao.avisos,
                "caixa_id": caixa.id,
                "fechada_em": now_trimmed(),
            })

        try:
            mesa, venda = await self.repo.encerrar_venda(
                mesa_id, MESA_STATUS_COM_VENDA, _mutacao, StatusMesaEnum.LIMPEZA
            )
        except VendaError:
            if resgate is not None:
                await self._estornar_resgate(resgate)
            raise
        logger.info(
            f"[Mesas] Mesa {mesa.numero} fechada - venda_id={venda.id} total={venda.valor_total} "
            f"troco={venda.troco} caixa_id={venda.caixa_id}"
        )
        registrar_venda_mesa_fechada()

        await self._acumular_cashback(venda)
        if self.notificacoes is not None:
            await self.notificacoes.venda_mesa_fechada(mesa, venda)
        return MesaDetalheOut(mesa=mesa, venda=venda)

    async def _estornar_resgate(self, resgate) -> None:
        try:
            await self.cashback.estornar(resgate)
        except VendaError as e:
            logger.error(
                f"[Mesas] Estorno de cashback falhou - transacao_id={resgate.id} "
                f"referencia={resgate.referencia}: {e}"
            )

    async def _acumular_cashback(self, venda: VendaMesaOut) -> None:
        if self.cashback is None or not venda.cliente_telefone:
            return
        try:
            await self.cashback.acumular(venda.cliente_telefone, venda.subtotal - venda.desconto, venda.id)
        except Exception as e:
            logger.warning(f"[Mesas] Cashback não acumulado para venda_id={venda.id} (não crítico): {e}")

    async def liberar_mesa(self, mesa_id: str) -> MesaOut:
        """Liberação administrativa: sempre permitida, volta a mesa para livre."""
        anterior = await self.obter_mesa(mesa_id)
        if anterior.status in MESA_STATUS_COM_VENDA and anterior.venda_atual_id:
            logger.warning(
                f"[Mesas] Mesa {anterior.numero} liberada com venda aberta - venda_id={anterior.venda_atual_id}"
            )
        mesa = await self.repo.liberar_mesa(mesa_id)
        logger.info(f"[Mesas] Mesa {mesa.numero} liberada")
        return mesa

    async def cancelar_venda(self, mesa_id: str, motivo: str) -> MesaDetalheOut:
        def _mutacao(venda: VendaMesaOut) -> VendaMesaOut:
            return venda.model_copy(update={
                "status": StatusVendaMesaEnum.CANCELADA,
                "motivo_cancelamento": motivo,
                "fechada_em": now_trimmed(),
            })

        mesa, venda = await self.repo.encerrar_venda(
            mesa_id, MESA_STATUS_COM_VENDA, _mutacao, StatusMesaEnum.LIVRE
        )
        logger.info(f"[Mesas] Venda cancelada - mesa={mesa.numero} venda_id={venda.id} motivo={motivo}")
        return MesaDetalheOut(mesa=mesa, venda=venda)
