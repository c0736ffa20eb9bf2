from __future__ import annotations
from PySide6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QGroupBox, QFormLayout, QLabel, QPushButton
)
from typing import Optional

from core.models.invoice import Invoice
from core.services.conflicts import ConflictResolver

def _invoice_box(title: str, inv: Optional[Invoice]) -> QGroupBox:
    box = QGroupBox(title)
    form = QFormLayout(box)
    if inv is None:
        form.addRow(QLabel("Aucune copie disponible"))
        return box
    form.addRow("Numéro", QLabel(inv.invoice_number or "-"))
    form.addRow("Nom", QLabel(inv.invoice_name or "-"))
    form.addRow("Client", QLabel(inv.to_name or "-"))
    form.addRow("Date", QLabel(inv.issue_date or "-"))
    form.addRow("Lignes", QLabel(str(len(inv.line_items))))
    form.addRow("Modifiée le", QLabel(inv.created_at.strftime("%d/%m/%Y %H:%M")))
    return box

class ConflictDialog(QDialog):
    """Choix entre la version locale et la version cloud d'une facture."""

    def __init__(self, resolver: ConflictResolver, local: Invoice, cloud: Optional[Invoice], parent=None):
        super().__init__(parent)
        self.resolver = resolver
        self.setWindowTitle("Conflit de synchronisation")
        self.setModal(True)

        boxes = QHBoxLayout()
        boxes.addWidget(_invoice_box("Version locale", local))
        boxes.addWidget(_invoice_box("Version cloud", cloud))

        self.btn_local = QPushButton("Garder la version locale")
        self.btn_cloud = QPushButton("Garder la version cloud")
        self.btn_merge = QPushButton("Fusionner")
        # garder une version n'a de sens que si les deux existent
        self.btn_local.setEnabled(cloud is not None)
        self.btn_cloud.setEnabled(cloud is not None)

        self.btn_local.clicked.connect(lambda: self.resolver.resolve("local"))
        self.btn_cloud.clicked.connect(lambda: self.resolver.resolve("cloud"))
        self.btn_merge.clicked.connect(lambda: self.resolver.resolve("merge"))
        self.rejected.connect(self._on_rejected)

        bar = QHBoxLayout()
        for b in (self.btn_local, self.btn_cloud, self.btn_merge): bar.addWidget(b)

        lay = QVBoxLayout(self)
        lay.addWidget(QLabel("Cette facture a été modifiée ailleurs. Quelle version garder ?"))
        lay.addLayout(boxes)
        lay.addLayout(bar)

    def _on_rejected(self):
        if self.resolver.pending is not None:
            self.resolver.cancel()

class QtConflictPrompt:
    """Adaptateur ConflictPrompt: ouvre / ferme le ConflictDialog."""

    def __init__(self, parent=None):
        self.parent = parent
        self.resolver: Optional[ConflictResolver] = None
        self.dialog: Optional[ConflictDialog] = None

    def show(self, local: Invoice, cloud: Optional[Invoice]) -> None:
        if self.resolver is None:
            return
        self.dialog = ConflictDialog(self.resolver, local, cloud, self.parent)
        self.dialog.open()

    def close(self) -> None:
        dlg, self.dialog = self.dialog, None
        if dlg is not None:
            dlg.accept()
