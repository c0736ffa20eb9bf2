from __future__ import annotations
from PySide6.QtWidgets import QDialog, QVBoxLayout, QHBoxLayout, QLabel, QPushButton
from typing import Optional

from core.services.migration import MigrationFlow

class MigrationDialog(QDialog):
    def __init__(self, flow: MigrationFlow, count: int, parent=None):
        super().__init__(parent)
        self.flow = flow
        self.setWindowTitle("Synchroniser vos factures")
        self.setModal(True)

        self.lbl = QLabel(
            f"{count} facture(s) enregistrée(s) sur cet appareil.\n"
            "Les envoyer dans le cloud ? Sinon elles seront effacées de cet appareil."
        )
        self.btn_sync = QPushButton("Synchroniser")
        self.btn_skip = QPushButton("Ignorer")
        self.btn_sync.setDefault(True)

        self.btn_sync.clicked.connect(self._migrate)
        self.btn_skip.clicked.connect(self.flow.skip)

        bar = QHBoxLayout()
        bar.addStretch(1); bar.addWidget(self.btn_skip); bar.addWidget(self.btn_sync)

        lay = QVBoxLayout(self)
        lay.addWidget(self.lbl)
        lay.addLayout(bar)

    def _migrate(self):
        self.btn_sync.setEnabled(False); self.btn_skip.setEnabled(False)
        self.btn_sync.setText("Synchronisation…")
        try:
            self.flow.migrate()
        finally:
            # en cas d'échec la fenêtre reste ouverte pour réessayer
            self.btn_sync.setEnabled(True); self.btn_skip.setEnabled(True)
            self.btn_sync.setText("Synchroniser")

class QtMigrationPrompt:
    """Adaptateur MigrationPrompt: une seule fenêtre à la fois."""

    def __init__(self, parent=None):
        self.parent = parent
        self.flow: Optional[MigrationFlow] = None
        self.dialog: Optional[MigrationDialog] = None

    def show(self, count: int) -> None:
        if self.flow is None:
            return
        if self.dialog is not None:
            self.dialog.lbl.setText(
                f"{count} facture(s) enregistrée(s) sur cet appareil.\n"
                "Les envoyer dans le cloud ? Sinon elles seront effacées de cet appareil."
            )
            return
        self.dialog = MigrationDialog(self.flow, count, self.parent)
        self.dialog.open()

    def close(self) -> None:
        dlg, self.dialog = self.dialog, None
        if dlg is not None:
            dlg.accept()
