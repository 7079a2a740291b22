from fastapi import Request

from app.api.notifications.services.notification_service import NotificacaoService


def get_notificacao_service(request: Request) -> NotificacaoService:
    return request.app.state.container.notificacoes
