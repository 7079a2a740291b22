from fastapi import Request

from app.api.pedidos.services.service_pedidos import PedidoService


def get_pedido_service(request: Request) -> PedidoService:
    return request.app.state.container.pedidos
