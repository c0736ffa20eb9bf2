from __future__ import annotations
import logging

LOG = logging.getLogger(__name__)


class Notifier:
    """Messages utilisateur (succès / info / erreur). Par défaut: dans les logs."""

    def success(self, message: str) -> None:
        LOG.info(message)

    def info(self, message: str) -> None:
        LOG.info(message)

    def error(self, message: str) -> None:
        LOG.error(message)

