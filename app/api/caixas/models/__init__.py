from .model_caixa import CaixaModel

__all__ = [
    "CaixaModel",
]
