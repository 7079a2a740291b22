from datetime import datetime
from zoneinfo import ZoneInfo

TZ_SP = ZoneInfo('America/Sao_Paulo')


def now_trimmed():
    """Retorna datetime atual em timezone de São Paulo, sem microsegundos"""
    return datetime.now(TZ_SP).replace(microsecond=0)
