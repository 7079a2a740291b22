"""
Motor de precificação e liquidação.

Funções puras (sem I/O e sem estado) usadas igualmente por pedidos de
delivery/manuais e por vendas de mesa, garantindo uma única regra de preço
para os três canais. Todo valor monetário passa por ``_dec`` (meio-para-cima
no centavo) antes de qualquer comparação.
"""
from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.api.precificacao.schemas.schema_precificacao import (
    ConciliacaoPagamentoOut,
    DescontoIn,
    ItemVendaIn,
    ItemVendaOut,
    PagamentoIn,
    PagamentoParcialIn,
    ResultadoLiquidacaoOut,
)
from app.api.shared.schemas.schema_shared_enums import (
    MEIOS_DINHEIRO,
    MeioPagamentoEnum,
    ModoPrecoEnum,
    TipoDescontoEnum,
)
from app.core.exceptions import ValidationError

CENTAVO = Decimal("0.01")
EPSILON = Decimal("0.01")
ZERO = Decimal("0.00")


def _dec(value: float | Decimal | int | str | None) -> Decimal:
    """Converte valor para Decimal com precisão de 2 casas decimais."""
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(CENTAVO, rounding=ROUND_HALF_UP)


def _bruto(value) -> Decimal:
    return Decimal(str(value))


def formatar_valor(valor: Decimal) -> str:
    return f"R$ {_dec(valor):.2f}".replace(".", ",")


# ----------------------------------------------------------------------
# Itens
# ----------------------------------------------------------------------
def calcular_subtotal_item(item: ItemVendaIn) -> Decimal:
    """Subtotal da linha: (quantidade ou peso) × preço − desconto, nunca negativo."""
    complementos = sum((_bruto(c.preco) for c in item.complementos), Decimal("0"))

    if item.modo_preco == ModoPrecoEnum.UNIDADE:
        if item.peso_gramas is not None or item.preco_por_grama is not None:
            raise ValidationError(
                f"Produto '{item.produto_nome}' é vendido por unidade; peso não se aplica."
            )
        if item.quantidade is None:
            raise ValidationError(f"Informe a quantidade de '{item.produto_nome}'.")
        if item.preco_unitario is None:
            raise ValidationError(f"Produto '{item.produto_nome}' sem preço unitário.")
        bruto = Decimal(item.quantidade) * (_bruto(item.preco_unitario) + complementos)
    elif item.modo_preco == ModoPrecoEnum.PESO:
        if item.quantidade is not None or item.preco_unitario is not None:
            raise ValidationError(
                f"Produto '{item.produto_nome}' é vendido por peso; quantidade não se aplica."
            )
        if item.peso_gramas is None:
            raise ValidationError(f"Informe o peso de '{item.produto_nome}'.")
        if item.preco_por_grama is None:
            raise ValidationError(f"Produto '{item.produto_nome}' sem preço por grama.")
        bruto = _bruto(item.peso_gramas) * _bruto(item.preco_por_grama) + complementos
    else:
        raise ValidationError(f"Modo de preço desconhecido: {item.modo_preco}")

    return max(ZERO, _dec(bruto) - _dec(item.desconto))


def precificar_item(item: ItemVendaIn, item_id: Optional[str] = None) -> ItemVendaOut:
    """Gera a linha persistível com o subtotal derivado."""
    dados = item.model_dump(exclude={"id", "subtotal"})
    if item_id is None:
        item_id = getattr(item, "id", None) or uuid.uuid4().hex
    return ItemVendaOut(**dados, id=item_id, subtotal=calcular_subtotal_item(item))


def calcular_subtotal(itens: Iterable[ItemVendaIn]) -> Decimal:
    """Soma dos subtotais, sempre rederivados das entradas de cada linha."""
    return _dec(sum((calcular_subtotal_item(i) for i in itens), ZERO))


# ----------------------------------------------------------------------
# Descontos e cashback
# ----------------------------------------------------------------------
def calcular_desconto(subtotal: Decimal, desconto: Optional[DescontoIn]) -> Decimal:
    subtotal = _dec(subtotal)
    if desconto is None or desconto.tipo == TipoDescontoEnum.NENHUM:
        return ZERO
    if desconto.tipo == TipoDescontoEnum.PERCENTUAL:
        if desconto.valor > 100:
            raise ValidationError("Desconto percentual não pode passar de 100%.")
        return min(subtotal, _dec(subtotal * _bruto(desconto.valor) / Decimal(100)))
    if desconto.tipo == TipoDescontoEnum.VALOR:
        return min(_dec(desconto.valor), subtotal)
    raise ValidationError(f"Tipo de desconto desconhecido: {desconto.tipo}")


def calcular_cashback(solicitado, disponivel, base) -> Decimal:
    """Cashback efetivamente aplicado: min(solicitado, saldo, base), nunca negativo."""
    aplicado = min(_dec(solicitado), _dec(disponivel), _dec(base))
    return max(ZERO, aplicado)


def calcular_cashback_compra(valor_compra, percentual) -> Decimal:
    """Cashback creditado por uma compra."""
    return max(ZERO, _dec(_bruto(valor_compra) * _bruto(percentual)))


# ----------------------------------------------------------------------
# Pagamento
# ----------------------------------------------------------------------
def calcular_troco(total: Decimal, troco_para) -> Decimal:
    total = _dec(total)
    troco_para = _dec(troco_para)
    if troco_para < total:
        raise ValidationError(
            f"O valor para troco ({formatar_valor(troco_para)}) deve ser maior ou igual "
            f"ao total ({formatar_valor(total)}).",
            detalhes={"total": str(total), "troco_para": str(troco_para)},
        )
    return max(ZERO, troco_para - total)


def _conciliar_misto(pagamento: PagamentoIn, total: Decimal) -> ConciliacaoPagamentoOut:
    if not pagamento.pagamentos:
        raise ValidationError("Configure as formas de pagamento misto.")

    parcelas: list[PagamentoParcialIn] = []
    for parcela in pagamento.pagamentos:
        if parcela.meio == MeioPagamentoEnum.MISTO:
            raise ValidationError("Parcela de pagamento misto não pode ser 'misto'.")
        valor = _dec(parcela.valor)
        if valor <= ZERO:
            raise ValidationError("Cada parcela do pagamento misto deve ter valor positivo.")
        parcelas.append(PagamentoParcialIn(meio=parcela.meio, valor=valor))

    total_pago = _dec(sum((p.valor for p in parcelas), ZERO))
    diferenca = total_pago - total

    if diferenca < -EPSILON:
        raise ValidationError(
            f"Valor pago insuficiente: faltam {formatar_valor(-diferenca)}.",
            detalhes={"total": str(total), "total_pago": str(total_pago)},
        )

    troco = ZERO
    avisos: list[str] = []
    if diferenca > EPSILON:
        em_dinheiro = sum((p.valor for p in parcelas if p.meio in MEIOS_DINHEIRO), ZERO)
        if em_dinheiro >= diferenca:
            troco = diferenca
        else:
            avisos.append(
                f"Excedente de {formatar_valor(diferenca)} pago em meio sem troco."
            )

    return ConciliacaoPagamentoOut(
        meio=MeioPagamentoEnum.MISTO,
        total_devido=total,
        total_pago=total_pago,
        troco=troco,
        pagamentos=parcelas,
        avisos=avisos,
    )


def conciliar_pagamento(pagamento: PagamentoIn, total) -> ConciliacaoPagamentoOut:
    """Valida a declaração de pagamento contra o total devido."""
    total = _dec(total)

    if pagamento.meio == MeioPagamentoEnum.MISTO:
        return _conciliar_misto(pagamento, total)

    if pagamento.pagamentos:
        raise ValidationError("Parcelas só se aplicam ao pagamento misto.")

    avisos: list[str] = []
    troco = ZERO
    troco_para = None
    total_pago = total
    if pagamento.troco_para is not None:
        if pagamento.meio in MEIOS_DINHEIRO:
            troco_para = _dec(pagamento.troco_para)
            troco = calcular_troco(total, troco_para)
            total_pago = troco_para
        else:
            avisos.append("Troco ignorado: só se aplica a pagamento em dinheiro.")

    return ConciliacaoPagamentoOut(
        meio=pagamento.meio,
        total_devido=total,
        total_pago=total_pago,
        troco_para=troco_para,
        troco=troco,
        pagamentos=[PagamentoParcialIn(meio=pagamento.meio, valor=total)],
        avisos=avisos,
    )


# ----------------------------------------------------------------------
# Liquidação completa
# ----------------------------------------------------------------------
def liquidar(
    itens: Iterable[ItemVendaIn],
    *,
    desconto: Optional[DescontoIn] = None,
    cashback_solicitado=ZERO,
    cashback_disponivel=ZERO,
    taxa_entrega=ZERO,
    pagamento: Optional[PagamentoIn] = None,
) -> ResultadoLiquidacaoOut:
    """
    Calcula o que o cliente deve e concilia como ele pagou.

    total = max(0, subtotal − desconto − cashback) + taxa de entrega
    """
    subtotal = calcular_subtotal(list(itens))
    valor_desconto = calcular_desconto(subtotal, desconto)
    subtotal_com_desconto = max(ZERO, subtotal - valor_desconto)
    cashback_aplicado = calcular_cashback(cashback_solicitado, cashback_disponivel, subtotal_com_desconto)
    taxa = _dec(taxa_entrega)
    valor_total = max(ZERO, subtotal_com_desconto - cashback_aplicado) + taxa

    conciliacao = conciliar_pagamento(pagamento, valor_total) if pagamento is not None else None

    return ResultadoLiquidacaoOut(
        subtotal=subtotal,
        desconto=valor_desconto,
        subtotal_com_desconto=subtotal_com_desconto,
        cashback_aplicado=cashback_aplicado,
        taxa_entrega=taxa,
        valor_total=valor_total,
        pagamento=conciliacao,
    )
