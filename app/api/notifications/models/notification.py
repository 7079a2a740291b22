from sqlalchemy import Boolean, Column, String, Text

from app.database.db_connection import Base
from app.database.infrastructure.timezone import DataHoraSP
from app.utils.database_utils import now_trimmed


class NotificacaoModel(Base):
    __tablename__ = "notificacoes"
    __table_args__ = {"schema": "notifications"}

    id = Column(String(32), primary_key=True)
    tipo = Column(String(50), nullable=False, index=True)
    titulo = Column(String(120), nullable=False)
    mensagem = Column(Text, nullable=False)
    # Pedido ou venda que gerou a notificação
    referencia = Column(String(32), nullable=True, index=True)
    lida = Column(Boolean, nullable=False, default=False)
    created_at = Column(DataHoraSP, default=now_trimmed, nullable=False)
