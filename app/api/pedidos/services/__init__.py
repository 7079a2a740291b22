from .service_pedidos import PedidoService

__all__ = ["PedidoService"]
