from __future__ import annotations
from PySide6.QtWidgets import QMessageBox, QWidget

from core.services.notifications import Notifier

class MessageBoxNotifier(Notifier):
    """Notifications utilisateur en boîtes de dialogue (et toujours dans les logs)."""

    def __init__(self, parent: QWidget | None = None):
        self.parent = parent

    def success(self, message: str) -> None:
        super().success(message)
        QMessageBox.information(self.parent, "Synchronisation", message)

    def info(self, message: str) -> None:
        super().info(message)
        QMessageBox.information(self.parent, "Information", message)

    def error(self, message: str) -> None:
        super().error(message)
        QMessageBox.warning(self.parent, "Erreur", message)
