from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from core.models.client import ClientSnapshot
from core.models.common import utc_now
from core.models.invoice import DEFAULT_CURRENCY, DEFAULT_REMOTE_STATUS, Invoice, RemoteInvoiceFields
from core.services.backend import AuthSession, InvoiceBackend
from core.services.listeners import Unsubscribe
from core.services.notifications import Notifier
from core.storage.invoice_store import InvoiceStore

LOG = logging.getLogger(__name__)


class MigrationPrompt(Protocol):
    def show(self, count: int) -> None: ...
    def close(self) -> None: ...


def to_remote_record(inv: Invoice, now: datetime) -> RemoteInvoiceFields:
    """Facture locale -> forme backend. L'id et la date de création sont attribués par le backend."""
    return RemoteInvoiceFields(
        invoice_number=inv.invoice_number or f"INV-MIG-{int(now.timestamp() * 1000)}",
        invoice_name=inv.invoice_name,
        issue_date=inv.issue_date or now.isoformat(),
        due_date=inv.due_date,
        status=inv.status or DEFAULT_REMOTE_STATUS,
        from_name=inv.from_name or "",
        from_email=inv.from_email or "",
        from_address=inv.from_address or "",
        currency=inv.currency or DEFAULT_CURRENCY,
        tax_rate=inv.tax_rate or 0,
        notes=inv.notes or "",
        payment_details=inv.payment_details or "",
        line_items=list(inv.line_items or []),
        client_snapshot=ClientSnapshot(
            name=inv.to_name or "",
            email=inv.to_email or "",
            address=inv.to_address or "",
        ),
    )


class MigrationFlow:
    """
    Envoi unique des factures locales vers le cloud à la première session connectée.

    La proposition réapparaît tant que l'utilisateur est connecté et que le
    store local contient des factures.
    """

    def __init__(
        self,
        store: InvoiceStore,
        backend: InvoiceBackend,
        auth: AuthSession,
        notifier: Optional[Notifier] = None,
        prompt: Optional[MigrationPrompt] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.backend = backend
        self.auth = auth
        self.notifier = notifier or Notifier()
        self.prompt = prompt
        self.clock = clock
        self.in_progress = False
        self._unsubscribers: List[Unsubscribe] = []

    def should_prompt(self) -> bool:
        return self.auth.is_authenticated and len(self.store.invoices) > 0

    def check(self) -> bool:
        if not self.should_prompt():
            return False
        if self.prompt:
            self.prompt.show(len(self.store.invoices))
        return True

    def attach(self) -> Unsubscribe:
        self.detach()
        self._unsubscribers = [
            self.store.subscribe(lambda _store: self.check()),
            self.auth.subscribe(lambda _auth: self.check()),
        ]
        return self.detach

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def migrate(self) -> bool:
        invoices = self.store.invoices
        now = self.clock()
        records = [to_remote_record(inv, now) for inv in invoices]
        self.in_progress = True
        try:
            count = self.backend.batch_create_invoices(records)
        except Exception as e:
            LOG.error("Migration vers le cloud échouée: %s", e)
            self.notifier.error("Echec de la synchronisation des factures. Réessaie.")
            return False
        finally:
            self.in_progress = False

        LOG.info("Migration: %d/%d facture(s) envoyée(s)", count, len(records))
        self._clear_local()
        self.notifier.success("Factures synchronisées dans le cloud.")
        return True

    def skip(self) -> None:
        """Abandon explicite: les factures locales sont effacées sans envoi."""
        LOG.info("Migration ignorée: %d facture(s) locale(s) effacée(s)", len(self.store.invoices))
        self._clear_local()
        self.notifier.info("Factures locales effacées.")

    def _clear_local(self) -> None:
        self.store.reset()
        if self.prompt:
            self.prompt.close()
