from fastapi import Request

from app.api.caixas.services.service_caixa import CaixaService


def get_caixa_service(request: Request) -> CaixaService:
    return request.app.state.container.caixa
