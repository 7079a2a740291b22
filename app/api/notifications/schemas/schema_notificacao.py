from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificacaoOut(BaseModel):
    id: str
    tipo: str
    titulo: str
    mensagem: str
    referencia: Optional[str] = None
    lida: bool = False
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
