# app/database/db_connection.py

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from ..config.settings import DATABASE_URL, DB_CONFIG, DB_SSL_MODE

# Base única para todos os models
Base = declarative_base()

logger = logging.getLogger(__name__)

# Schemas gerenciados pela aplicação (no SQLite viram o schema padrão)
SCHEMAS = ["pedidos", "mesas", "caixas", "cashback", "notifications"]


def montar_url() -> str:
    """DATABASE_URL tem prioridade; sem ela monta a URL asyncpg a partir de DB_*."""
    if DATABASE_URL:
        return DATABASE_URL

    missing = [k for k in ('database', 'user', 'password', 'host', 'port') if not DB_CONFIG.get(k)]
    if missing:
        raise RuntimeError(f"Configuração do banco inválida, faltando variáveis: {', '.join(missing)}")

    ssl_query = f"?ssl={DB_SSL_MODE}" if DB_SSL_MODE else ""
    return (
        f"postgresql+asyncpg://{DB_CONFIG['user']}:{DB_CONFIG['password']}"
        f"@{DB_CONFIG['host']}:{DB_CONFIG['port']}/{DB_CONFIG['database']}{ssl_query}"
    )


def _eh_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def criar_engine(url: Optional[str] = None) -> AsyncEngine:
    url = url or montar_url()

    if _eh_sqlite(url):
        kwargs = {}
        if ":memory:" in url or url.rstrip("/").endswith("sqlite+aiosqlite:"):
            # Uma única conexão compartilhada mantém o banco em memória vivo
            kwargs = {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        engine = create_async_engine(url, **kwargs)
        return engine.execution_options(schema_translate_map={s: None for s in SCHEMAS})

    return create_async_engine(
        url,
        pool_pre_ping=True,
        connect_args={"server_settings": {"timezone": "America/Sao_Paulo"}},
    )


def criar_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


async def criar_tabelas(engine: AsyncEngine) -> None:
    """Cria schemas (PostgreSQL) e tabelas de todos os models registrados."""
    # Registra os models no metadata
    from app.api.pedidos.models import model_pedido  # noqa: F401
    from app.api.mesas.models import model_mesa  # noqa: F401
    from app.api.caixas.models import model_caixa  # noqa: F401
    from app.api.cashback.models import model_cashback  # noqa: F401
    from app.api.notifications.models import notification  # noqa: F401

    async with engine.begin() as conn:
        if not _eh_sqlite(str(engine.url)):
            for schema in SCHEMAS:
                logger.info(f"🛠️ Criando/verificando schema: {schema}")
                await conn.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Tabelas verificadas/criadas.")
