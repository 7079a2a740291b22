from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from app.api.shared.schemas.schema_shared_enums import PedidoStatusEnum


class AlterarStatusPedidoBody(BaseModel):
    status: PedidoStatusEnum


class PedidoStatusHistoricoOut(BaseModel):
    """Registro imutável de cada gravação de status."""
    id: str
    pedido_id: str
    ordem: int = 1
    status_anterior: Optional[PedidoStatusEnum] = None
    status_novo: PedidoStatusEnum
    descricao: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class HistoricoDoPedidoResponse(BaseModel):
    pedido_id: str
    historicos: List[PedidoStatusHistoricoOut]
