"""
Models do bounded context de Pedidos.
"""

from .model_pedido import PedidoHistoricoModel, PedidoModel

__all__ = [
    "PedidoModel",
    "PedidoHistoricoModel",
]
