from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.api.precificacao.schemas.schema_precificacao import (
    DescontoIn,
    ItemVendaIn,
    ItemVendaOut,
    PagamentoIn,
    PagamentoParcialIn,
)
from app.api.shared.schemas.schema_shared_enums import (
    CanalPedidoEnum,
    MeioPagamentoEnum,
    PedidoStatusEnum,
    TipoEntregaEnum,
)


class PedidoCreate(BaseModel):
    """Rascunho de pedido vindo da vitrine de delivery, do PDV ou de lançamento manual."""

    cliente_nome: Optional[str] = Field(default=None, max_length=120)
    cliente_telefone: Optional[str] = Field(default=None, max_length=30)
    cliente_endereco: Optional[str] = Field(default=None, max_length=255)
    cliente_bairro: Optional[str] = Field(default=None, max_length=120)
    cliente_complemento: Optional[str] = Field(default=None, max_length=255)
    tipo_entrega: TipoEntregaEnum = TipoEntregaEnum.DELIVERY
    canal: CanalPedidoEnum = CanalPedidoEnum.DELIVERY
    itens: List[ItemVendaIn] = Field(default_factory=list)
    desconto: DescontoIn = Field(default_factory=DescontoIn)
    cashback_solicitado: Decimal = Field(default=Decimal("0"), ge=0, description="Cashback que o cliente quer usar")
    taxa_entrega: Decimal = Field(default=Decimal("0"), ge=0)
    pagamento: PagamentoIn = Field(default_factory=PagamentoIn)
    observacao: Optional[str] = Field(default=None, max_length=500)


class PedidoOut(BaseModel):
    id: str
    cliente_nome: Optional[str] = None
    cliente_telefone: Optional[str] = None
    cliente_endereco: Optional[str] = None
    cliente_bairro: Optional[str] = None
    cliente_complemento: Optional[str] = None
    tipo_entrega: TipoEntregaEnum
    canal: CanalPedidoEnum
    itens: List[ItemVendaOut]
    meio_pagamento: MeioPagamentoEnum
    pagamentos: List[PagamentoParcialIn] = Field(default_factory=list)
    troco_para: Optional[Decimal] = None
    troco: Decimal = Decimal("0")
    avisos_pagamento: List[str] = Field(default_factory=list)
    subtotal: Decimal
    desconto: Decimal = Decimal("0")
    cashback_aplicado: Decimal = Decimal("0")
    taxa_entrega: Decimal = Decimal("0")
    valor_total: Decimal
    observacao: Optional[str] = None
    status: PedidoStatusEnum = PedidoStatusEnum.PENDENTE
    caixa_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    versao: int = 1

    model_config = ConfigDict(from_attributes=True)


class ReconciliacaoOut(BaseModel):
    caixa_id: str
    vinculados: int
