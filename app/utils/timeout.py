import asyncio
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from app.config.settings import PERSISTENCIA_TIMEOUT_SEGUNDOS
from app.core.exceptions import DependencyUnavailableError
from app.utils.logger import logger

T = TypeVar("T")


async def com_timeout(operacao: Awaitable[T], descricao: str, timeout: Optional[float] = None) -> T:
    """
    Aguarda uma chamada de persistência com tempo máximo.

    Timeout, erro de driver ou de I/O viram ``DependencyUnavailableError``;
    erros de domínio (``VendaError``) passam intactos.
    """
    limite = PERSISTENCIA_TIMEOUT_SEGUNDOS if timeout is None else timeout
    try:
        return await asyncio.wait_for(operacao, timeout=limite)
    except asyncio.TimeoutError as e:
        logger.error(f"[Persistencia] Timeout ({limite}s) em '{descricao}'")
        raise DependencyUnavailableError(
            f"Tempo esgotado ao {descricao}.", detalhes={"timeout_segundos": limite}
        ) from e
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"[Persistencia] Falha em '{descricao}': {e}")
        raise DependencyUnavailableError(f"Falha ao {descricao}.") from e
