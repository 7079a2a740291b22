from decimal import Decimal

import pytest

from app.api.precificacao.schemas.schema_precificacao import (
    DescontoIn,
    PagamentoIn,
    PagamentoParcialIn,
)
from app.api.precificacao.services.service_precificacao import (
    calcular_cashback,
    calcular_cashback_compra,
    calcular_desconto,
    calcular_subtotal,
    calcular_subtotal_item,
    conciliar_pagamento,
    liquidar,
    precificar_item,
)
from app.api.shared.schemas.schema_shared_enums import MeioPagamentoEnum, ModoPrecoEnum, TipoDescontoEnum
from app.core.exceptions import ValidationError
from fabricas import item_peso, item_unidade


def _misto(*parcelas):
    return PagamentoIn(
        meio=MeioPagamentoEnum.MISTO,
        pagamentos=[PagamentoParcialIn(meio=meio, valor=Decimal(valor)) for meio, valor in parcelas],
    )


def test_subtotal_do_carrinho_com_unidade_e_peso(carrinho):
    assert calcular_subtotal_item(carrinho[0]) == Decimal("31.80")
    assert calcular_subtotal_item(carrinho[1]) == Decimal("13.50")
    assert calcular_subtotal(carrinho) == Decimal("45.30")


def test_subtotal_independe_da_ordem(carrinho):
    assert calcular_subtotal(list(reversed(carrinho))) == calcular_subtotal(carrinho)


def test_desconto_do_item_nunca_deixa_subtotal_negativo():
    assert calcular_subtotal_item(item_unidade(quantidade=1, preco="5.00", desconto=Decimal("8"))) == Decimal("0.00")
    assert calcular_subtotal_item(item_peso(desconto=Decimal("3.50"))) == Decimal("10.00")


def test_complementos_entram_no_preco_da_unidade():
    item = item_unidade(quantidade=2, preco="10.00", complementos=[{"nome": "Granola", "preco": "1.50"}])
    assert calcular_subtotal_item(item) == Decimal("23.00")


def test_peso_em_item_por_unidade_e_rejeitado():
    item = item_unidade()
    item = item.model_copy(update={"peso_gramas": Decimal("100")})
    with pytest.raises(ValidationError):
        calcular_subtotal_item(item)


def test_item_por_unidade_sem_quantidade_e_rejeitado():
    item = item_unidade().model_copy(update={"quantidade": None})
    with pytest.raises(ValidationError):
        calcular_subtotal_item(item)


def test_item_por_peso_sem_preco_por_grama_e_rejeitado():
    item = item_peso().model_copy(update={"preco_por_grama": None})
    with pytest.raises(ValidationError):
        calcular_subtotal_item(item)


def test_precificar_item_deriva_subtotal_e_preserva_id():
    linha = precificar_item(item_unidade(), "abc")
    assert linha.id == "abc"
    assert linha.subtotal == Decimal("31.80")
    assert linha.modo_preco == ModoPrecoEnum.UNIDADE


@pytest.mark.parametrize(
    "desconto, esperado",
    [
        (DescontoIn(), Decimal("0.00")),
        (DescontoIn(tipo=TipoDescontoEnum.PERCENTUAL, valor=Decimal("10")), Decimal("4.53")),
        (DescontoIn(tipo=TipoDescontoEnum.PERCENTUAL, valor=Decimal("100")), Decimal("45.30")),
        (DescontoIn(tipo=TipoDescontoEnum.VALOR, valor=Decimal("5")), Decimal("5.00")),
        (DescontoIn(tipo=TipoDescontoEnum.VALOR, valor=Decimal("80")), Decimal("45.30")),
    ],
)
def test_calcular_desconto(desconto, esperado):
    assert calcular_desconto(Decimal("45.30"), desconto) == esperado


def test_desconto_percentual_acima_de_100_e_rejeitado():
    with pytest.raises(ValidationError):
        calcular_desconto(Decimal("10"), DescontoIn(tipo=TipoDescontoEnum.PERCENTUAL, valor=Decimal("101")))


def test_cashback_limitado_ao_menor_valor():
    assert calcular_cashback(Decimal("10"), Decimal("3.20"), Decimal("50")) == Decimal("3.20")
    assert calcular_cashback(Decimal("10"), Decimal("100"), Decimal("4")) == Decimal("4.00")
    assert calcular_cashback(Decimal("2"), Decimal("100"), Decimal("50")) == Decimal("2.00")
    assert calcular_cashback(Decimal("0"), Decimal("100"), Decimal("50")) == Decimal("0.00")


def test_cashback_de_compra_e_cinco_por_cento():
    assert calcular_cashback_compra(Decimal("36.80"), Decimal("0.05")) == Decimal("1.84")


# ----------------------------------------------------------------------
# Cenários completos
# ----------------------------------------------------------------------
def test_liquidacao_sem_desconto(carrinho):
    resultado = liquidar(carrinho)
    assert resultado.subtotal == Decimal("45.30")
    assert resultado.valor_total == Decimal("45.30")
    assert resultado.pagamento is None


def test_desconto_de_dez_por_cento_com_troco_para_cinquenta(carrinho):
    resultado = liquidar(
        carrinho,
        desconto=DescontoIn(tipo=TipoDescontoEnum.PERCENTUAL, valor=Decimal("10")),
        pagamento=PagamentoIn(meio=MeioPagamentoEnum.DINHEIRO, troco_para=Decimal("50.00")),
    )
    assert resultado.valor_total == Decimal("40.77")
    assert resultado.pagamento.troco == Decimal("9.23")
    assert resultado.pagamento.troco_para == Decimal("50.00")


def test_cashback_cobre_a_compra_inteira(carrinho):
    resultado = liquidar(carrinho, cashback_solicitado=Decimal("45.30"), cashback_disponivel=Decimal("100.00"))
    assert resultado.cashback_aplicado == Decimal("45.30")
    assert resultado.valor_total == Decimal("0.00")


def test_taxa_de_entrega_fica_fora_do_cashback(carrinho):
    resultado = liquidar(
        carrinho,
        cashback_solicitado=Decimal("100"),
        cashback_disponivel=Decimal("100"),
        taxa_entrega=Decimal("6.00"),
    )
    assert resultado.cashback_aplicado == Decimal("45.30")
    assert resultado.valor_total == Decimal("6.00")


def test_pagamento_misto_exato_e_aceito(carrinho):
    resultado = liquidar(
        carrinho,
        pagamento=_misto((MeioPagamentoEnum.DINHEIRO, "20.00"), (MeioPagamentoEnum.PIX, "25.30")),
    )
    assert resultado.pagamento.total_pago == Decimal("45.30")
    assert resultado.pagamento.troco == Decimal("0.00")
    assert resultado.pagamento.avisos == []


def test_pagamento_misto_faltando_dois_centavos_e_rejeitado():
    with pytest.raises(ValidationError):
        conciliar_pagamento(
            _misto((MeioPagamentoEnum.DINHEIRO, "20.00"), (MeioPagamentoEnum.PIX, "25.28")),
            Decimal("45.30"),
        )


def test_pagamento_misto_dentro_da_tolerancia_e_aceito():
    conciliacao = conciliar_pagamento(
        _misto((MeioPagamentoEnum.DINHEIRO, "20.00"), (MeioPagamentoEnum.PIX, "25.29")),
        Decimal("45.30"),
    )
    assert conciliacao.troco == Decimal("0.00")


def test_excedente_em_dinheiro_vira_troco():
    conciliacao = conciliar_pagamento(
        _misto((MeioPagamentoEnum.DINHEIRO, "25.00"), (MeioPagamentoEnum.PIX, "25.30")),
        Decimal("45.30"),
    )
    assert conciliacao.troco == Decimal("5.00")
    assert conciliacao.avisos == []


def test_excedente_sem_dinheiro_vira_aviso():
    conciliacao = conciliar_pagamento(
        _misto((MeioPagamentoEnum.CARTAO_CREDITO, "30.00"), (MeioPagamentoEnum.PIX, "20.30")),
        Decimal("45.30"),
    )
    assert conciliacao.troco == Decimal("0.00")
    assert len(conciliacao.avisos) == 1


def test_pagamento_misto_sem_parcelas_e_rejeitado():
    with pytest.raises(ValidationError):
        conciliar_pagamento(PagamentoIn(meio=MeioPagamentoEnum.MISTO), Decimal("10"))


def test_parcela_com_valor_zero_e_rejeitada():
    with pytest.raises(ValidationError):
        conciliar_pagamento(_misto((MeioPagamentoEnum.PIX, "0")), Decimal("10"))


def test_troco_para_menor_que_total_e_rejeitado():
    with pytest.raises(ValidationError):
        conciliar_pagamento(
            PagamentoIn(meio=MeioPagamentoEnum.DINHEIRO, troco_para=Decimal("40.00")),
            Decimal("40.77"),
        )


def test_meio_unico_sem_dinheiro_quita_o_total():
    conciliacao = conciliar_pagamento(PagamentoIn(meio=MeioPagamentoEnum.PIX), Decimal("45.30"))
    assert conciliacao.total_pago == Decimal("45.30")
    assert conciliacao.pagamentos[0].valor == Decimal("45.30")


def test_troco_em_meio_sem_dinheiro_e_ignorado_com_aviso():
    conciliacao = conciliar_pagamento(
        PagamentoIn(meio=MeioPagamentoEnum.CARTAO_DEBITO, troco_para=Decimal("50")),
        Decimal("45.30"),
    )
    assert conciliacao.troco == Decimal("0.00")
    assert conciliacao.troco_para is None
    assert conciliacao.avisos
