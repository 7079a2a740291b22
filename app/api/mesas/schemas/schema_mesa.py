from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from app.api.precificacao.schemas.schema_precificacao import (
    DescontoIn,
    ItemVendaOut,
    PagamentoIn,
    PagamentoParcialIn,
)
from app.api.shared.schemas.schema_shared_enums import MeioPagamentoEnum, TipoDescontoEnum


class StatusMesaEnum(str, Enum):
    LIVRE = "livre"
    OCUPADA = "ocupada"
    AGUARDANDO_CONTA = "aguardando_conta"
    LIMPEZA = "limpeza"


class StatusVendaMesaEnum(str, Enum):
    ABERTA = "aberta"
    FECHADA = "fechada"
    CANCELADA = "cancelada"


MESA_STATUS_DESCRICAO = {
    StatusMesaEnum.LIVRE: "Livre",
    StatusMesaEnum.OCUPADA: "Ocupada",
    StatusMesaEnum.AGUARDANDO_CONTA: "Aguardando conta",
    StatusMesaEnum.LIMPEZA: "Em limpeza",
}

# Estados em que a venda da mesa aceita alterações
MESA_STATUS_COM_VENDA = frozenset({StatusMesaEnum.OCUPADA, StatusMesaEnum.AGUARDANDO_CONTA})


class MesaIn(BaseModel):
    """Schema para criação de mesa"""
    numero: int = Field(..., ge=1, description="Número exibido da mesa (único)")
    capacidade: int = Field(default=4, ge=1, le=50)


class MesaOut(BaseModel):
    id: str
    numero: int
    capacidade: int
    status: StatusMesaEnum = StatusMesaEnum.LIVRE
    venda_atual_id: Optional[str] = None
    ativa: bool = True
    created_at: datetime
    updated_at: datetime
    versao: int = 1

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def status_descricao(self) -> str:
        return MESA_STATUS_DESCRICAO[self.status]


class AbrirMesaRequest(BaseModel):
    cliente_nome: Optional[str] = Field(default=None, max_length=120)
    qtd_clientes: int = Field(default=1, ge=1)


class VendaMesaOut(BaseModel):
    id: str
    mesa_id: str
    numero_venda: int
    status: StatusVendaMesaEnum = StatusVendaMesaEnum.ABERTA
    cliente_nome: Optional[str] = None
    cliente_telefone: Optional[str] = None
    qtd_clientes: int = 1
    itens: List[ItemVendaOut] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    desconto_tipo: TipoDescontoEnum = TipoDescontoEnum.NENHUM
    desconto_valor: Decimal = Decimal("0")
    desconto: Decimal = Decimal("0")
    cashback_aplicado: Decimal = Decimal("0")
    valor_total: Decimal = Decimal("0")
    meio_pagamento: Optional[MeioPagamentoEnum] = None
    pagamentos: List[PagamentoParcialIn] = Field(default_factory=list)
    troco_para: Optional[Decimal] = None
    troco: Decimal = Decimal("0")
    avisos_pagamento: List[str] = Field(default_factory=list)
    motivo_cancelamento: Optional[str] = None
    caixa_id: Optional[str] = None
    aberta_em: datetime
    fechada_em: Optional[datetime] = None
    updated_at: datetime
    versao: int = 1

    model_config = ConfigDict(from_attributes=True)


class MesaDetalheOut(BaseModel):
    mesa: MesaOut
    venda: Optional[VendaMesaOut] = None


class DefinirDescontoRequest(DescontoIn):
    pass


class FecharVendaRequest(BaseModel):
    pagamento: PagamentoIn = Field(default_factory=PagamentoIn)
    cliente_telefone: Optional[str] = Field(default=None, max_length=30)
    cashback_solicitado: Decimal = Field(default=Decimal("0"), ge=0)


class CancelarVendaRequest(BaseModel):
    motivo: str = Field(..., min_length=1, max_length=255)


class MesaEstatisticasOut(BaseModel):
    total: int
    livres: int
    ocupadas: int
    aguardando_conta: int
    limpeza: int
