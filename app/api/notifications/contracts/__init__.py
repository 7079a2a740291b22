from .repository_contracts import INotificacaoRepository

__all__ = ["INotificacaoRepository"]
