from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from typing import Optional
import json
import logging

from app.api.notifications.core.eventos import TipoEntidadeEnum
from app.utils.database_utils import now_trimmed

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["websocket"])


def _parse_entidades(entidades: Optional[str]):
    if not entidades:
        return None
    validas = {t.value: t for t in TipoEntidadeEnum}
    return {validas[e.strip()] for e in entidades.split(",") if e.strip() in validas} or None


@router.websocket("/vendas")
async def websocket_vendas(
    websocket: WebSocket,
    entidades: Optional[str] = Query(default=None, description="Ex.: pedido,mesa,venda_mesa"),
):
    """
    WebSocket com as alterações de pedidos, mesas e vendas de mesa

    Cada mensagem traz ``type`` no formato ``<entidade>.<insert|update>`` e o
    estado completo da entidade em ``data``.
    """
    container = websocket.app.state.container
    manager = container.websocket_manager
    filtro = _parse_entidades(entidades)

    await manager.connect(websocket, filtro)
    try:
        await websocket.send_text(json.dumps({
            "type": "connection",
            "message": "Conectado com sucesso",
            "entidades": sorted(e.value for e in filtro) if filtro else None,
            "timestamp": now_trimmed().isoformat(),
        }))

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_text(json.dumps({"type": "error", "message": "Mensagem inválida"}))
                continue

            if message.get("type") == "ping":
                await websocket.send_text(json.dumps({"type": "pong", "timestamp": now_trimmed().isoformat()}))
    except WebSocketDisconnect:
        logger.info("[Realtime] WebSocket desconectado pelo cliente")
    finally:
        manager.disconnect(websocket)
