import pytest

from app.core.container import Container
from fabricas import item_peso, item_unidade


@pytest.fixture
def carrinho():
    """2 × 15,90 + 300 g × 0,045 = 45,30"""
    return [item_unidade(), item_peso()]


@pytest.fixture
def novo_container():
    """Fábrica de containers já iniciados; chamar dentro do loop do teste."""

    async def _novo(**kwargs) -> Container:
        opcoes = {
            "backend": "local",
            "local_cache_path": "",
            "polling_intervalo": 0,
            "alerta_intervalo": 0.05,
        }
        opcoes.update(kwargs)
        container = Container(**opcoes)
        await container.iniciar()
        return container

    return _novo
