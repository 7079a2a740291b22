from sqlalchemy import Column, Index, Numeric, String

from app.api.cashback.schemas.schema_cashback import (
    StatusTransacaoCashbackEnum,
    TipoTransacaoCashbackEnum,
)
from app.database.db_connection import Base
from app.database.infrastructure.enums import EnumValueType
from app.database.infrastructure.timezone import DataHoraSP
from app.utils.database_utils import now_trimmed


class CashbackTransacaoModel(Base):
    __tablename__ = "cashback_transacoes"
    __table_args__ = (
        Index("idx_cashback_telefone_data", "telefone", "created_at"),
        {"schema": "cashback"},
    )

    id = Column(String(32), primary_key=True)
    telefone = Column(String(20), nullable=False)
    tipo = Column(EnumValueType(TipoTransacaoCashbackEnum), nullable=False)
    valor_compra = Column(Numeric(18, 2), nullable=False, default=0)
    valor_cashback = Column(Numeric(18, 2), nullable=False)
    status = Column(
        EnumValueType(StatusTransacaoCashbackEnum),
        nullable=False,
        default=StatusTransacaoCashbackEnum.APROVADO,
    )
    referencia = Column(String(32), nullable=True)
    created_at = Column(DataHoraSP, default=now_trimmed, nullable=False)
