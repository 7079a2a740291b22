"""
Módulo de métricas Prometheus para monitoramento da aplicação.
"""
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST
import re
from time import time
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Métricas de requisições HTTP
http_requests_total = Counter(
    'http_requests_total',
    'Total de requisições HTTP',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'Duração das requisições HTTP em segundos',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0]
)

# Métricas de erros
http_errors_total = Counter(
    'http_errors_total',
    'Total de erros HTTP',
    ['method', 'endpoint', 'status_code']
)

# Métricas de aplicação
active_connections = Gauge(
    'active_connections',
    'Número de conexões ativas'
)

# Métricas de logs
log_messages_total = Counter(
    'log_messages_total',
    'Total de mensagens de log',
    ['level']
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware para coletar métricas Prometheus das requisições HTTP."""

    async def dispatch(self, request: Request, call_next: Callable):
        # Ignora o endpoint de métricas para evitar loop
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        start_time = time()
        active_connections.inc()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            # A rota só é conhecida depois do roteamento
            endpoint = self._normalize_endpoint(request)
            http_requests_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(time() - start_time)
            if status_code >= 400:
                http_errors_total.labels(method=method, endpoint=endpoint, status_code=status_code).inc()
            active_connections.dec()

    def _normalize_endpoint(self, request: Request) -> str:
        """
        Usa o template da rota para evitar alta cardinalidade.
        Ex: /api/pedidos/3f2a... -> /api/pedidos/{pedido_id}
        """
        route = request.scope.get("route")
        if route is not None and getattr(route, "path", None):
            return route.path
        # Sem rota casada (404): colapsa ids hexadecimais, uuids e números
        endpoint = re.sub(r'/[0-9a-f]{8}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{4}-?[0-9a-f]{12}', '/{id}', request.url.path)
        return re.sub(r'/\d+', '/{id}', endpoint)


def get_metrics():
    """Retorna as métricas no formato Prometheus."""
    return generate_latest()


def record_log(level: str):
    """Registra uma mensagem de log nas métricas."""
    log_messages_total.labels(level=level).inc()



# Métricas de domínio
pedidos_criados_total = Counter(
    'pedidos_criados_total',
    'Total de pedidos criados',
    ['canal']
)

vendas_mesa_fechadas_total = Counter(
    'vendas_mesa_fechadas_total',
    'Total de vendas de mesa fechadas'
)

eventos_realtime_total = Counter(
    'eventos_realtime_total',
    'Eventos recebidos pelo barramento de tempo real',
    ['entidade', 'resultado']
)


def registrar_pedido_criado(canal: str):
    pedidos_criados_total.labels(canal=canal).inc()


def registrar_venda_mesa_fechada():
    vendas_mesa_fechadas_total.inc()


def registrar_evento_realtime(entidade: str, resultado: str):
    """resultado: insert, update, duplicado ou antigo."""
    eventos_realtime_total.labels(entidade=entidade, resultado=resultado).inc()
