from __future__ import annotations
from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
    QMessageBox, QTableWidget, QTableWidgetItem, QHeaderView, QInputDialog, QLineEdit
)

from core.models.invoice import Invoice
from core.services.backend import BackendError
from core.services.container import AppServices
from ui.widgets.sync_indicator import SyncIndicator

def invoice_total(inv: Invoice) -> float:
    subtotal = sum(li.quantity * li.price for li in inv.line_items)
    return subtotal * (1 + (inv.tax_rate or 0) / 100.0)

def money_to_str(amount: float, currency: str) -> str:
    return f"{amount:.2f} {currency}"

class MainWindow(QMainWindow):
    def __init__(self, services: AppServices):
        super().__init__()
        self.services = services
        self.setWindowTitle("Invoice Desk - Factures")
        self.resize(1100, 700)

        w = QWidget()
        root = QVBoxLayout(w)
        bar = QHBoxLayout()
        self.btn_refresh = QPushButton("Actualiser")
        self.btn_delete = QPushButton("Supprimer")
        self.btn_sign = QPushButton()
        self.lbl_source = QLabel()
        bar.addWidget(self.btn_refresh); bar.addWidget(self.btn_delete)
        bar.addStretch(1); bar.addWidget(self.lbl_source); bar.addWidget(self.btn_sign)
        root.addLayout(bar)

        self.tbl_invoices = QTableWidget(0, 7)
        self.tbl_invoices.setHorizontalHeaderLabels(["Numéro", "Nom", "Client", "Date", "Statut", "Total", "ID"])
        self.tbl_invoices.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        self.tbl_invoices.setSelectionBehavior(self.tbl_invoices.SelectionBehavior.SelectRows)
        self.tbl_invoices.setEditTriggers(self.tbl_invoices.EditTrigger.NoEditTriggers)
        root.addWidget(self.tbl_invoices, 1)
        self.setCentralWidget(w)

        self.indicator = SyncIndicator(services.sync, self)
        self.statusBar().addPermanentWidget(self.indicator)

        self.btn_refresh.clicked.connect(self.refresh)
        self.btn_delete.clicked.connect(self._invoice_delete)
        self.btn_sign.clicked.connect(self._toggle_sign_in)

        self._unsubscribers = [
            services.store.subscribe(lambda _s: self._render()),
            services.auth.subscribe(lambda _a: self.refresh()),
        ]
        self.refresh()

    def closeEvent(self, event):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        super().closeEvent(event)

    # ==================== FACTURES ====================
    def refresh(self):
        try:
            self.services.data.refresh()
        except BackendError as e:
            self.statusBar().showMessage(f"Actualisation impossible: {e}", 8000)
        self._render()

    def _render(self):
        data = self.services.data
        cloud = data.source == "cloud"
        self.lbl_source.setText("Cloud" if cloud else "Cet appareil")
        self.btn_sign.setText("Se déconnecter" if self.services.auth.is_authenticated else "Se connecter")

        self.tbl_invoices.setRowCount(0)
        if data.is_loading:
            self.statusBar().showMessage("Chargement…")
            return
        for inv in data.invoices:
            r = self.tbl_invoices.rowCount(); self.tbl_invoices.insertRow(r)
            self.tbl_invoices.setItem(r, 0, QTableWidgetItem(inv.invoice_number or ""))
            self.tbl_invoices.setItem(r, 1, QTableWidgetItem(inv.invoice_name or ""))
            self.tbl_invoices.setItem(r, 2, QTableWidgetItem(inv.to_name or ""))
            self.tbl_invoices.setItem(r, 3, QTableWidgetItem(inv.issue_date or ""))
            self.tbl_invoices.setItem(r, 4, QTableWidgetItem(inv.status or ""))
            self.tbl_invoices.setItem(r, 5, QTableWidgetItem(money_to_str(invoice_total(inv), inv.currency)))
            self.tbl_invoices.setItem(r, 6, QTableWidgetItem(inv.id))
        self.tbl_invoices.resizeRowsToContents()
        self.statusBar().clearMessage()

    def _selected_invoice_id(self):
        row = self.tbl_invoices.currentRow()
        if row < 0: return None
        return self.tbl_invoices.item(row, 6).text()

    def _invoice_delete(self):
        iid = self._selected_invoice_id()
        if not iid:
            QMessageBox.information(self, "Factures", "Sélectionne une ligne d’abord.")
            return
        if QMessageBox.question(self, "Suppression", "Supprimer cette facture ?") != QMessageBox.Yes:
            return
        try:
            self.services.data.delete_invoice(iid)
        except BackendError as e:
            QMessageBox.warning(self, "Factures", f"Suppression impossible:\n{e}")
            return
        self.refresh()

    # ==================== SESSION ====================
    def _toggle_sign_in(self):
        auth = self.services.auth
        if auth.is_authenticated:
            auth.sign_out()
            return
        token, ok = QInputDialog.getText(self, "Connexion", "Jeton d'accès :", QLineEdit.Password)
        if ok and token.strip():
            auth.sign_in(token.strip())
