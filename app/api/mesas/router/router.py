from fastapi import APIRouter

from app.api.mesas.router.router_mesas import router as router_mesas

api_mesas = APIRouter(
    tags=["API - Mesas"]
)

api_mesas.include_router(router_mesas)
