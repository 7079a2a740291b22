# app/api/pedidos/models/model_pedido.py
from sqlalchemy import JSON, Column, ForeignKey, Index, Integer, Numeric, String, Text

from app.api.shared.schemas.schema_shared_enums import (
    CanalPedidoEnum,
    MeioPagamentoEnum,
    PedidoStatusEnum,
    TipoEntregaEnum,
)
from app.database.db_connection import Base
from app.database.infrastructure.enums import EnumValueType
from app.database.infrastructure.timezone import DataHoraSP
from app.utils.database_utils import now_trimmed


class PedidoModel(Base):
    __tablename__ = "pedidos"
    __table_args__ = (
        Index("idx_pedidos_caixa", "caixa_id"),
        Index("idx_pedidos_status", "status"),
        Index("idx_pedidos_updated_at", "updated_at"),
        {"schema": "pedidos"},
    )

    id = Column(String(32), primary_key=True)

    # Cliente
    cliente_nome = Column(String(120), nullable=True)
    cliente_telefone = Column(String(20), nullable=True, index=True)
    cliente_endereco = Column(String(255), nullable=True)
    cliente_bairro = Column(String(120), nullable=True)
    cliente_complemento = Column(String(255), nullable=True)

    tipo_entrega = Column(EnumValueType(TipoEntregaEnum), nullable=False)
    canal = Column(EnumValueType(CanalPedidoEnum), nullable=False, default=CanalPedidoEnum.DELIVERY)
    status = Column(EnumValueType(PedidoStatusEnum), nullable=False, default=PedidoStatusEnum.PENDENTE)

    # Itens já precificados (ItemVendaOut serializado)
    itens = Column(JSON, nullable=False, default=list)

    # Pagamento
    meio_pagamento = Column(EnumValueType(MeioPagamentoEnum), nullable=False)
    pagamentos = Column(JSON, nullable=False, default=list)
    troco_para = Column(Numeric(18, 2), nullable=True)
    troco = Column(Numeric(18, 2), nullable=False, default=0)
    avisos_pagamento = Column(JSON, nullable=False, default=list)

    # Valores
    subtotal = Column(Numeric(18, 2), nullable=False)
    desconto = Column(Numeric(18, 2), nullable=False, default=0)
    cashback_aplicado = Column(Numeric(18, 2), nullable=False, default=0)
    taxa_entrega = Column(Numeric(18, 2), nullable=False, default=0)
    valor_total = Column(Numeric(18, 2), nullable=False)

    observacao = Column(Text, nullable=True)
    caixa_id = Column(String(32), nullable=True)

    created_at = Column(DataHoraSP, default=now_trimmed, nullable=False)
    updated_at = Column(DataHoraSP, default=now_trimmed, onupdate=now_trimmed, nullable=False)
    # Incrementada a cada gravação; ordena escritas dentro do mesmo segundo
    versao = Column(Integer, nullable=False, default=1)


class PedidoHistoricoModel(Base):
    __tablename__ = "pedidos_historico"
    __table_args__ = (
        Index("idx_pedidos_historico_pedido", "pedido_id"),
        {"schema": "pedidos"},
    )

    id = Column(String(32), primary_key=True)
    pedido_id = Column(String(32), ForeignKey("pedidos.pedidos.id", ondelete="CASCADE"), nullable=False)
    # Sequência da gravação dentro do pedido (timestamps têm resolução de segundos)
    ordem = Column(Integer, nullable=False, default=1)
    status_anterior = Column(EnumValueType(PedidoStatusEnum), nullable=True)
    status_novo = Column(EnumValueType(PedidoStatusEnum), nullable=False)
    descricao = Column(String(255), nullable=True)
    created_at = Column(DataHoraSP, default=now_trimmed, nullable=False)
