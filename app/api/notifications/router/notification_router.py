from fastapi import APIRouter, Depends, Query
from typing import List

from app.api.notifications.schemas.schema_notificacao import NotificacaoOut
from app.api.notifications.services.dependencies import get_notificacao_service
from app.api.notifications.services.notification_service import NotificacaoService

router = APIRouter(prefix="/api/notificacoes", tags=["Notificações"])


@router.get("", response_model=List[NotificacaoOut])
async def listar_notificacoes(
    limite: int = Query(default=50, ge=1, le=200),
    svc: NotificacaoService = Depends(get_notificacao_service),
):
    """Notificações mais recentes do painel do operador"""
    return await svc.listar_recentes(limite)
