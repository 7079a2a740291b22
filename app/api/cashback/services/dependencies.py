from fastapi import Request

from app.api.cashback.services.service_cashback import CashbackService


def get_cashback_service(request: Request) -> CashbackService:
    return request.app.state.container.cashback
