# app/api/mesas/models/model_mesa.py
from sqlalchemy import JSON, Boolean, Column, ForeignKey, Index, Integer, Numeric, String

from app.api.mesas.schemas.schema_mesa import StatusMesaEnum, StatusVendaMesaEnum
from app.api.shared.schemas.schema_shared_enums import MeioPagamentoEnum, TipoDescontoEnum
from app.database.db_connection import Base
from app.database.infrastructure.enums import EnumValueType
from app.database.infrastructure.timezone import DataHoraSP
from app.utils.database_utils import now_trimmed


class MesaModel(Base):
    __tablename__ = "mesas"
    __table_args__ = (
        Index("idx_mesas_status", "status"),
        {"schema": "mesas"},
    )

    id = Column(String(32), primary_key=True)
    numero = Column(Integer, nullable=False, unique=True)
    capacidade = Column(Integer, nullable=False, default=4)
    status = Column(EnumValueType(StatusMesaEnum), nullable=False, default=StatusMesaEnum.LIVRE)
    # Única fonte da venda ativa da mesa
    venda_atual_id = Column(String(32), nullable=True)
    ativa = Column(Boolean, nullable=False, default=True)

    created_at = Column(DataHoraSP, default=now_trimmed, nullable=False)
    updated_at = Column(DataHoraSP, default=now_trimmed, onupdate=now_trimmed, nullable=False)
    # Incrementada a cada gravação; ordena escritas dentro do mesmo segundo
    versao = Column(Integer, nullable=False, default=1)


class VendaMesaModel(Base):
    __tablename__ = "vendas_mesa"
    __table_args__ = (
        Index("idx_vendas_mesa_mesa", "mesa_id"),
        Index("idx_vendas_mesa_updated_at", "updated_at"),
        {"schema": "mesas"},
    )

    id = Column(String(32), primary_key=True)
    mesa_id = Column(String(32), ForeignKey("mesas.mesas.id", ondelete="RESTRICT"), nullable=False)
    numero_venda = Column(Integer, nullable=False)
    status = Column(EnumValueType(StatusVendaMesaEnum), nullable=False, default=StatusVendaMesaEnum.ABERTA)

    cliente_nome = Column(String(120), nullable=True)
    cliente_telefone = Column(String(20), nullable=True)
    qtd_clientes = Column(Integer, nullable=False, default=1)

    itens = Column(JSON, nullable=False, default=list)

    subtotal = Column(Numeric(18, 2), nullable=False, default=0)
    desconto_tipo = Column(EnumValueType(TipoDescontoEnum), nullable=False, default=TipoDescontoEnum.NENHUM)
    desconto_valor = Column(Numeric(18, 2), nullable=False, default=0)
    desconto = Column(Numeric(18, 2), nullable=False, default=0)
    cashback_aplicado = Column(Numeric(18, 2), nullable=False, default=0)
    valor_total = Column(Numeric(18, 2), nullable=False, default=0)

    meio_pagamento = Column(EnumValueType(MeioPagamentoEnum), nullable=True)
    pagamentos = Column(JSON, nullable=False, default=list)
    troco_para = Column(Numeric(18, 2), nullable=True)
    troco = Column(Numeric(18, 2), nullable=False, default=0)
    avisos_pagamento = Column(JSON, nullable=False, default=list)

    motivo_cancelamento = Column(String(255), nullable=True)
    caixa_id = Column(String(32), nullable=True)

    aberta_em = Column(DataHoraSP, default=now_trimmed, nullable=False)
    fechada_em = Column(DataHoraSP, nullable=True)
    updated_at = Column(DataHoraSP, default=now_trimmed, onupdate=now_trimmed, nullable=False)
    # Incrementada a cada gravação; ordena escritas dentro do mesmo segundo
    versao = Column(Integer, nullable=False, default=1)
