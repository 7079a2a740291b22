from typing import Optional

from fastapi import APIRouter, Body, Depends, Path, status

from app.api.caixas.schemas.schema_caixa import CaixaAberturaCreate, CaixaResponse
from app.api.caixas.services.dependencies import get_caixa_service
from app.api.caixas.services.service_caixa import CaixaService
from app.utils.logger import logger

router = APIRouter(
    prefix="/api/caixa",
    tags=["Caixa"],
)


# ======================================================================
# ============================ ABRIR CAIXA =============================
@router.post("/abrir", response_model=CaixaResponse, status_code=status.HTTP_201_CREATED)
async def abrir_caixa(
    data: CaixaAberturaCreate = Body(default_factory=CaixaAberturaCreate),
    svc: CaixaService = Depends(get_caixa_service),
):
    """
    Abre o caixa.

    - **valor_inicial**: dinheiro em caixa na abertura (>= 0)
    - **operador**: nome de quem abriu

    Só pode haver um caixa aberto. Pedidos criados sem caixa são vinculados
    a este caixa logo após a abertura.
    """
    logger.info(f"[Caixa] Abrir - operador={data.operador} valor_inicial={data.valor_inicial}")
    return await svc.abrir_caixa(data.valor_inicial, data.operador)


# ======================================================================
# ============================ FECHAR CAIXA ============================
@router.post("/{caixa_id}/fechar", response_model=CaixaResponse)
async def fechar_caixa(
    caixa_id: str = Path(..., description="ID do caixa a ser fechado"),
    svc: CaixaService = Depends(get_caixa_service),
):
    return await svc.fechar_caixa(caixa_id)


# ======================================================================
# ============================= CONSULTAS ==============================
@router.get("/aberto", response_model=Optional[CaixaResponse])
async def obter_caixa_aberto(svc: CaixaService = Depends(get_caixa_service)):
    return await svc.obter_caixa_aberto()


@router.get("/{caixa_id}", response_model=CaixaResponse)
async def obter_caixa(caixa_id: str = Path(...), svc: CaixaService = Depends(get_caixa_service)):
    return await svc.obter_caixa(caixa_id)
