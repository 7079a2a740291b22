from fastapi import APIRouter, Body, Depends, Path, status

from app.api.cashback.schemas.schema_cashback import (
    CashbackTransacaoOut,
    ResgateCashbackRequest,
    SaldoCashbackResponse,
)
from app.api.cashback.services.dependencies import get_cashback_service
from app.api.cashback.services.service_cashback import CashbackService
from app.utils.telefone import normalizar_telefone

router = APIRouter(
    prefix="/api/cashback",
    tags=["Cashback"],
)


@router.get("/{telefone}/saldo", response_model=SaldoCashbackResponse)
async def obter_saldo(
    telefone: str = Path(..., description="Telefone do cliente"),
    svc: CashbackService = Depends(get_cashback_service),
):
    """Saldo do mês corrente"""
    saldo = await svc.obter_saldo(telefone)
    return SaldoCashbackResponse(telefone=normalizar_telefone(telefone), saldo=saldo)


@router.post("/{telefone}/resgatar", response_model=CashbackTransacaoOut, status_code=status.HTTP_201_CREATED)
async def resgatar(
    telefone: str = Path(...),
    body: ResgateCashbackRequest = Body(...),
    svc: CashbackService = Depends(get_cashback_service),
):
    return await svc.resgatar(telefone, body.valor, body.referencia)
