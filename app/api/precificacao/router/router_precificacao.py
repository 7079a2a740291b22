from fastapi import APIRouter, Body, status

from app.api.precificacao.schemas.schema_precificacao import SimulacaoRequest, SimulacaoResponse
from app.api.precificacao.services import service_precificacao as precificacao
from app.utils.logger import logger

router = APIRouter(prefix="/api/precificacao", tags=["Precificação"])


# ======================================================================
# ============================== SIMULAR ===============================
@router.post("/simular", response_model=SimulacaoResponse, status_code=status.HTTP_200_OK)
def simular(payload: SimulacaoRequest = Body(...)):
    """
    Calcula subtotal, desconto, cashback, total e troco sem persistir nada.

    Continua respondendo quando a persistência está indisponível (modo reduzido).
    """
    logger.info(f"[Precificacao] Simular - itens={len(payload.itens)}")
    itens = [precificacao.precificar_item(item) for item in payload.itens]
    resultado = precificacao.liquidar(
        payload.itens,
        desconto=payload.desconto,
        cashback_solicitado=payload.cashback_solicitado,
        cashback_disponivel=payload.cashback_disponivel,
        taxa_entrega=payload.taxa_entrega,
        pagamento=payload.pagamento,
    )
    return SimulacaoResponse(itens=itens, resultado=resultado)
