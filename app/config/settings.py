import os
from dotenv import load_dotenv
from pathlib import Path

# Carrega o .env manualmente se estiver fora do Docker
if not os.getenv("RUNNING_IN_DOCKER"):
    dotenv_path = Path(__file__).resolve().parents[2] / ".env"
    load_dotenv(dotenv_path=dotenv_path)

# Persistência: "sql" (SQLAlchemy assíncrono) ou "local" (cache em memória/arquivo)
PERSISTENCIA_BACKEND = os.getenv("PERSISTENCIA_BACKEND", "local").strip().lower()

# Configuração de conexão
DB_CONFIG = {
    'database': os.getenv('DB_NAME'),
    'user': os.getenv('DB_USER'),
    'password': os.getenv('DB_PASSWORD'),
    'host': os.getenv('DB_HOST'),
    'port': int(os.getenv('DB_PORT', 5432)),
}

# SSL do banco (opcional)
DB_SSL_MODE = os.getenv('DB_SSL_MODE')  # ex.: require, verify-ca, verify-full

# URL completa tem prioridade sobre DB_* (ex.: sqlite+aiosqlite:///./vendas.db)
DATABASE_URL = os.getenv("DATABASE_URL", "")

# Arquivo de snapshot do backend local (vazio = somente memória)
LOCAL_CACHE_PATH = os.getenv("LOCAL_CACHE_PATH", "")

# Tempo máximo de cada chamada à persistência
PERSISTENCIA_TIMEOUT_SEGUNDOS = float(os.getenv("PERSISTENCIA_TIMEOUT_SEGUNDOS", 10))

# Fallback de polling do realtime (0 desativa)
POLLING_INTERVALO_SEGUNDOS = float(os.getenv("POLLING_INTERVALO_SEGUNDOS", 15))

# Repetição do alerta sonoro de pedidos pendentes
ALERTA_INTERVALO_SEGUNDOS = float(os.getenv("ALERTA_INTERVALO_SEGUNDOS", 5))

# Cashback creditado por compra (fração do valor)
CASHBACK_PERCENTUAL = os.getenv("CASHBACK_PERCENTUAL", "0.05")

# CORS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
CORS_ALLOW_ALL = os.getenv("CORS_ALLOW_ALL", "false").lower() in ("1", "true", "yes")

# FastAPI / App
BASE_URL = os.getenv("BASE_URL", "")
ENABLE_DOCS = os.getenv("ENABLE_DOCS", "true").lower() in ("1", "true", "yes")
