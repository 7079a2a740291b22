"""
Schemas compartilhados entre diferentes domínios
"""

from app.api.shared.schemas.schema_shared_enums import (
    PedidoStatusEnum,
    TipoEntregaEnum,
    CanalPedidoEnum,
    MeioPagamentoEnum,
    ModoPrecoEnum,
    TipoDescontoEnum,
)

__all__ = [
    "PedidoStatusEnum",
    "TipoEntregaEnum",
    "CanalPedidoEnum",
    "MeioPagamentoEnum",
    "ModoPrecoEnum",
    "TipoDescontoEnum",
]
