from fastapi import WebSocket
from typing import Any, Dict, List, Optional, Set
import json
import logging

from app.api.notifications.core.event_bus import Assinatura, RealtimeEventBus
from app.api.notifications.core.eventos import EventoAlteracao, TipoEntidadeEnum

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Gerenciador de conexões WebSocket dos painéis de vendas"""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        # Entidades que cada conexão quer receber (None = todas)
        self.websocket_filtros: Dict[WebSocket, Optional[Set[TipoEntidadeEnum]]] = {}
        self._assinaturas: List[Assinatura] = []

    async def connect(self, websocket: WebSocket, entidades: Optional[Set[TipoEntidadeEnum]] = None):
        """Aceita uma nova conexão WebSocket"""
        await websocket.accept()
        self.active_connections.add(websocket)
        self.websocket_filtros[websocket] = entidades or None
        logger.info(f"WebSocket conectado ({len(self.active_connections)} ativas)")

    def disconnect(self, websocket: WebSocket):
        """Remove uma conexão WebSocket"""
        self.active_connections.discard(websocket)
        self.websocket_filtros.pop(websocket, None)
        logger.info(f"WebSocket desconectado ({len(self.active_connections)} ativas)")

    async def broadcast(self, message: Dict[str, Any], entidade: Optional[TipoEntidadeEnum] = None) -> int:
        """Envia mensagem para todas as conexões interessadas; retorna quantas receberam"""
        success_count = 0
        for websocket in list(self.active_connections):
            filtro = self.websocket_filtros.get(websocket)
            if entidade is not None and filtro is not None and entidade not in filtro:
                continue
            try:
                await websocket.send_text(json.dumps(message, default=str))
                success_count += 1
            except Exception as e:
                logger.error(f"Erro ao enviar mensagem WebSocket: {e}")
                # Remove conexão inválida
                self.disconnect(websocket)
        return success_count

    async def enviar_evento(self, evento: EventoAlteracao) -> int:
        return await self.broadcast(
            {
                "type": f"{evento.tipo_entidade.value}.{evento.tipo_evento.value}",
                "entidade": evento.tipo_entidade.value,
                "evento": evento.tipo_evento.value,
                "id": evento.id,
                "data": evento.payload.model_dump(mode="json"),
            },
            entidade=evento.tipo_entidade,
        )

    def conectar_barramento(self, barramento: RealtimeEventBus) -> None:
        """Repassa aos clientes todo evento aceito pelo barramento"""
        for tipo in TipoEntidadeEnum:
            self._assinaturas.append(barramento.assinar(tipo, self.enviar_evento))

    def desconectar_barramento(self) -> None:
        for assinatura in self._assinaturas:
            assinatura.cancelar()
        self._assinaturas.clear()

    def get_connection_count(self) -> int:
        return len(self.active_connections)
