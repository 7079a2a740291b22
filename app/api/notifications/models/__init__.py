"""Modelos do domínio de notificações."""

from .notification import NotificacaoModel  # noqa: F401
