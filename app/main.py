import os
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from app.core.container import Container
from app.core.exception_handlers import (
    venda_exception_handler,
    validation_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from app.core.exceptions import VendaError
from app.utils.logger import logger
from app.utils.prometheus_metrics import PrometheusMiddleware, get_metrics, CONTENT_TYPE_LATEST
from app.config.settings import CORS_ORIGINS, CORS_ALLOW_ALL, BASE_URL as SETTINGS_BASE_URL, ENABLE_DOCS

from app.api.pedidos.router.router import api_pedidos
from app.api.mesas.router.router import api_mesas
from app.api.caixas.router.router import router as caixa_router
from app.api.cashback.router.router_cashback import router as cashback_router
from app.api.precificacao.router.router_precificacao import router as precificacao_router
from app.api.notifications.router.notification_router import router as notifications_router
from app.api.notifications.router.websocket_router import router as websocket_router


BASE_URL = SETTINGS_BASE_URL or os.getenv("BASE_URL", "http://localhost:8000")
# ──────────────────────────
# Instância FastAPI
# ──────────────────────────
app = FastAPI(
    title="API de Vendas",
    version="1.0.0",
    description="Pedidos de delivery e PDV, mesas e liquidação de vendas",
    docs_url=("/swagger" if ENABLE_DOCS else None),
    redoc_url=("/redoc" if ENABLE_DOCS else None),
    openapi_url=("/openapi.json" if ENABLE_DOCS else None),
    servers=[{"url": BASE_URL, "description": "Base URL do ambiente"}],
    redirect_slashes=False  # Evita redirecionamento 307 quando URL não termina com /
)

# ───────────────────────────
# Exception Handlers Globais
# ───────────────────────────
app.add_exception_handler(VendaError, venda_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# ───────────────────────────
# Middlewares
# ───────────────────────────
# Middlewares são executados na ORDEM REVERSA da adição (último adicionado = primeiro executado)
app.add_middleware(PrometheusMiddleware)

# CORS (adicionado por último, será executado primeiro)
# - Se CORS_ALLOW_ALL=true => allow_origins=["*"], allow_credentials=False
# - Caso contrário => allow_origins=CORS_ORIGINS (se vazio cai para ["*"]), allow_credentials=True somente quando houver origens explícitas
if CORS_ALLOW_ALL:
    allowed_origins = ["*"]
    allow_credentials = False
else:
    allowed_origins = CORS_ORIGINS or ["*"]
    allow_credentials = bool(CORS_ORIGINS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ───────────────────────────
# Startup
# ───────────────────────────
@app.on_event("startup")
async def startup():
    logger.info("Iniciando API de vendas...")
    container = getattr(app.state, "container", None) or Container()
    app.state.container = container
    await container.iniciar()
    logger.info("API iniciada com sucesso.")

# ───────────────────────────
# Shutdown
# ───────────────────────────
@app.on_event("shutdown")
async def shutdown():
    logger.info("Encerrando API...")
    container = getattr(app.state, "container", None)
    if container is not None:
        await container.encerrar()
    logger.info("API encerrada.")

# ───────────────────────────
# Rotas
# ───────────────────────────

@app.get("/")
async def root():
    return {"status": "ok", "message": "API is running"}

@app.get("/health")
async def health():
    container = getattr(app.state, "container", None)
    return {
        "status": "healthy",
        "backend": getattr(container, "backend", None),
        "modo_reduzido": getattr(container, "modo_reduzido", False),
    }

@app.get("/metrics", include_in_schema=False)
async def metrics():
    """Métricas Prometheus"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)

# ───────────────────────────
# Routers
# ───────────────────────────
app.include_router(precificacao_router)
app.include_router(api_pedidos)
app.include_router(api_mesas)
app.include_router(caixa_router)
app.include_router(cashback_router)
app.include_router(notifications_router)
app.include_router(websocket_router)
