"""
Contracts do bounded context de Pedidos.
"""

from .pedidos_contract import IPedidoRepository, ValidadorStatus

__all__ = [
    "IPedidoRepository",
    "ValidadorStatus",
]
