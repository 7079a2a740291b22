from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CaixaStatusEnum(str, Enum):
    ABERTO = "aberto"
    FECHADO = "fechado"


class CaixaAberturaCreate(BaseModel):
    """Schema para abrir o caixa"""
    valor_inicial: Decimal = Field(default=Decimal("0"), ge=0, description="Valor inicial em dinheiro no caixa")
    operador: Optional[str] = Field(default=None, max_length=120)


class CaixaResponse(BaseModel):
    id: str
    status: CaixaStatusEnum
    valor_inicial: Decimal
    operador: Optional[str] = None
    aberto_em: datetime
    fechado_em: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def aberto(self) -> bool:
        return self.status == CaixaStatusEnum.ABERTO
