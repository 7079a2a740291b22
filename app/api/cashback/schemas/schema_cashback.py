from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TipoTransacaoCashbackEnum(str, Enum):
    COMPRA = "compra"
    RESGATE = "resgate"
    AJUSTE = "ajuste"


class StatusTransacaoCashbackEnum(str, Enum):
    APROVADO = "aprovado"
    PENDENTE = "pendente"
    CANCELADO = "cancelado"


class CashbackTransacaoOut(BaseModel):
    id: str
    telefone: str
    tipo: TipoTransacaoCashbackEnum
    valor_compra: Decimal = Decimal("0")
    # Positivo no acúmulo, negativo no resgate
    valor_cashback: Decimal
    status: StatusTransacaoCashbackEnum = StatusTransacaoCashbackEnum.APROVADO
    referencia: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SaldoCashbackResponse(BaseModel):
    telefone: str
    saldo: Decimal


class ResgateCashbackRequest(BaseModel):
    valor: Decimal = Field(..., gt=0)
    referencia: Optional[str] = None
