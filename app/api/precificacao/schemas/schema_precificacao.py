from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.api.shared.schemas.schema_shared_enums import (
    MeioPagamentoEnum,
    ModoPrecoEnum,
    TipoDescontoEnum,
)


class ComplementoIn(BaseModel):
    nome: str = Field(..., min_length=1, max_length=120)
    preco: Decimal = Field(default=Decimal("0"), ge=0)


class ItemVendaIn(BaseModel):
    """Linha de venda antes da precificação.

    Um produto é configurado em exatamente um modo de preço: por unidade
    (``quantidade`` × ``preco_unitario``) ou por peso (``peso_gramas`` ×
    ``preco_por_grama``).
    """

    produto_id: str = Field(..., min_length=1)
    produto_nome: str = Field(..., min_length=1, max_length=200)
    modo_preco: ModoPrecoEnum = ModoPrecoEnum.UNIDADE
    quantidade: Optional[int] = Field(default=None, ge=1)
    peso_gramas: Optional[Decimal] = Field(default=None, gt=0)
    preco_unitario: Optional[Decimal] = Field(default=None, ge=0)
    preco_por_grama: Optional[Decimal] = Field(default=None, ge=0)
    desconto: Decimal = Field(default=Decimal("0"), ge=0)
    complementos: List[ComplementoIn] = Field(default_factory=list)
    observacao: Optional[str] = Field(default=None, max_length=255)

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "produto_id": "acai-500",
                    "produto_nome": "Açaí 500ml",
                    "modo_preco": "unidade",
                    "quantidade": 2,
                    "preco_unitario": "15.90",
                },
                {
                    "produto_id": "acai-kg",
                    "produto_nome": "Açaí no peso",
                    "modo_preco": "peso",
                    "peso_gramas": "300",
                    "preco_por_grama": "0.045",
                },
            ]
        }
    )


class ItemVendaOut(ItemVendaIn):
    id: str
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class DescontoIn(BaseModel):
    tipo: TipoDescontoEnum = TipoDescontoEnum.NENHUM
    valor: Decimal = Field(default=Decimal("0"), ge=0)


class PagamentoParcialIn(BaseModel):
    meio: MeioPagamentoEnum
    valor: Decimal


class PagamentoIn(BaseModel):
    """Declaração de pagamento: um meio único ou ``misto`` com as parcelas."""

    meio: MeioPagamentoEnum = MeioPagamentoEnum.DINHEIRO
    troco_para: Optional[Decimal] = Field(default=None, ge=0)
    pagamentos: List[PagamentoParcialIn] = Field(default_factory=list)


class ConciliacaoPagamentoOut(BaseModel):
    meio: MeioPagamentoEnum
    total_devido: Decimal
    total_pago: Decimal
    troco_para: Optional[Decimal] = None
    troco: Decimal = Decimal("0")
    pagamentos: List[PagamentoParcialIn] = Field(default_factory=list)
    avisos: List[str] = Field(default_factory=list)


class ResultadoLiquidacaoOut(BaseModel):
    subtotal: Decimal
    desconto: Decimal
    subtotal_com_desconto: Decimal
    cashback_aplicado: Decimal
    taxa_entrega: Decimal
    valor_total: Decimal
    pagamento: Optional[ConciliacaoPagamentoOut] = None


class SimulacaoRequest(BaseModel):
    itens: List[ItemVendaIn] = Field(default_factory=list)
    desconto: DescontoIn = Field(default_factory=DescontoIn)
    cashback_solicitado: Decimal = Field(default=Decimal("0"), ge=0)
    cashback_disponivel: Decimal = Field(default=Decimal("0"), ge=0)
    taxa_entrega: Decimal = Field(default=Decimal("0"), ge=0)
    pagamento: Optional[PagamentoIn] = None


class SimulacaoResponse(BaseModel):
    itens: List[ItemVendaOut]
    resultado: ResultadoLiquidacaoOut
