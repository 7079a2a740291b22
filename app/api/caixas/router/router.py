from fastapi import APIRouter

from app.api.caixas.router.router_caixa import router as router_caixa

# Router principal que agrupa todos os routers de caixa
router = APIRouter(
    tags=["API - Caixa"]
)

router.include_router(router_caixa)
