from fastapi import Request

from app.api.mesas.services.service_vendas_mesa import VendaMesaService


def get_venda_mesa_service(request: Request) -> VendaMesaService:
    return request.app.state.container.mesas
