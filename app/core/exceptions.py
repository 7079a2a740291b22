"""
Taxonomia de erros do núcleo de vendas.

Os serviços levantam estas exceções; a camada HTTP converte cada uma em uma
resposta com status apropriado (ver ``app.core.exception_handlers``).
"""
from __future__ import annotations

from typing import Any, Optional


class VendaError(Exception):
    """Base para os erros tipados do núcleo."""

    tipo = "erro"

    def __init__(self, mensagem: str, *, detalhes: Optional[dict[str, Any]] = None):
        super().__init__(mensagem)
        self.mensagem = mensagem
        self.detalhes = detalhes or {}

    def __str__(self) -> str:
        return self.mensagem


class ValidationError(VendaError):
    """Entrada corrigível pelo operador (carrinho vazio, troco insuficiente...)."""

    tipo = "validacao"


class StateConflictError(VendaError):
    """Transição viola uma guarda de estado; o chamador deve recarregar o estado."""

    tipo = "conflito_estado"


class CaixaFechadoError(StateConflictError):
    """Operação exige um caixa aberto."""

    tipo = "caixa_fechado"


class NotFoundError(VendaError):
    tipo = "nao_encontrado"


class DependencyUnavailableError(VendaError):
    """Persistência ou colaborador externo inacessível (inclui timeout)."""

    tipo = "dependencia_indisponivel"
