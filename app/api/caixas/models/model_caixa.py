from sqlalchemy import Column, Index, Numeric, String

from app.api.caixas.schemas.schema_caixa import CaixaStatusEnum
from app.database.db_connection import Base
from app.database.infrastructure.enums import EnumValueType
from app.database.infrastructure.timezone import DataHoraSP
from app.utils.database_utils import now_trimmed


class CaixaModel(Base):
    __tablename__ = "caixas"
    __table_args__ = (
        Index("idx_caixa_status", "status"),
        {"schema": "caixas"},
    )

    id = Column(String(32), primary_key=True)
    status = Column(EnumValueType(CaixaStatusEnum), nullable=False, default=CaixaStatusEnum.ABERTO)
    valor_inicial = Column(Numeric(18, 2), nullable=False, default=0)  # Valor em dinheiro no caixa
    operador = Column(String(120), nullable=True)

    aberto_em = Column(DataHoraSP, default=now_trimmed, nullable=False)
    fechado_em = Column(DataHoraSP, nullable=True)
