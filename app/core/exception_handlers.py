from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import (
    DependencyUnavailableError,
    NotFoundError,
    StateConflictError,
    ValidationError,
    VendaError,
)
from app.utils.logger import logger


_STATUS_POR_ERRO = (
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (StateConflictError, status.HTTP_409_CONFLICT),
    (DependencyUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def _status_para(exc: VendaError) -> int:
    for classe, codigo in _STATUS_POR_ERRO:
        if isinstance(exc, classe):
            return codigo
    return status.HTTP_400_BAD_REQUEST


async def venda_exception_handler(request: Request, exc: VendaError):
    codigo = _status_para(exc)
    conteudo = {"detail": exc.mensagem, "tipo": exc.tipo}
    if exc.detalhes:
        conteudo["detalhes"] = exc.detalhes
    if isinstance(exc, DependencyUnavailableError):
        # Cálculos continuam disponíveis; só a persistência fica bloqueada
        conteudo["modo_reduzido"] = True
        logger.error(f"[API] Dependência indisponível em {request.url.path}: {exc.mensagem}")
    else:
        logger.info(f"[API] {exc.tipo} em {request.url.path}: {exc.mensagem}")
    return JSONResponse(status_code=codigo, content=conteudo)


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"[API] Payload inválido em {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors()), "tipo": "validacao"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"[API] Erro inesperado em {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Erro interno do servidor"},
    )
