from .schema_pedido import PedidoCreate, PedidoOut, ReconciliacaoOut
from .schema_pedido_status_historico import (
    AlterarStatusPedidoBody,
    HistoricoDoPedidoResponse,
    PedidoStatusHistoricoOut,
)

__all__ = [
    "PedidoCreate",
    "PedidoOut",
    "ReconciliacaoOut",
    "AlterarStatusPedidoBody",
    "HistoricoDoPedidoResponse",
    "PedidoStatusHistoricoOut",
]
