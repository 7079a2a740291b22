import logging
import os

from app.utils.prometheus_metrics import record_log

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


class MetricasLogHandler(logging.Handler):
    """Conta as mensagens de log por nível em log_messages_total"""

    def emit(self, record: logging.LogRecord) -> None:
        record_log(record.levelname.lower())


# Logger compartilhado da aplicação
logger = logging.getLogger("pdv")
if not any(isinstance(h, MetricasLogHandler) for h in logger.handlers):
    logger.addHandler(MetricasLogHandler())
