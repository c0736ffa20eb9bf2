from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Literal, Optional

from core.models.common import utc_now
from core.models.invoice import DEFAULT_REMOTE_STATUS, Invoice, InvoiceFormData, RemoteInvoice, RemoteInvoiceFields
from core.services.backend import AuthSession, InvoiceBackend
from core.services.sync_status import SyncStatusTracker
from core.storage.invoice_store import FormLike, InvoiceStore, as_form_data
from core.storage.team_context import TeamContext

LOG = logging.getLogger(__name__)

DataSource = Literal["local", "cloud"]


class RemoteInvoiceList:
    """Dernière liste de factures reçue du backend (None tant que rien n'est chargé)."""

    def __init__(self) -> None:
        self.docs: Optional[List[RemoteInvoice]] = None

    @property
    def loaded(self) -> bool:
        return self.docs is not None

    def replace(self, docs: List[RemoteInvoice]) -> None:
        self.docs = list(docs)

    def find(self, invoice_id: str) -> Optional[RemoteInvoice]:
        for doc in self.docs or []:
            if doc.id == invoice_id:
                return doc
        return None

    def clear(self) -> None:
        self.docs = None


class InvoiceDataService:
    """
    Point d'accès unique aux factures pour l'UI.

    Le choix local / cloud est refait à chaque appel (_use_remote), sans mode
    mémorisé: une connexion ou déconnexion en cours de session redirige
    immédiatement les appels suivants. Chaque opération encadre son travail
    par start_sync() / complete_sync(), même en cas d'erreur; les erreurs du
    backend remontent telles quelles.
    """

    def __init__(
        self,
        store: InvoiceStore,
        backend: InvoiceBackend,
        sync: SyncStatusTracker,
        auth: AuthSession,
        team_context: Optional[TeamContext] = None,
        *,
        dry_run: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.backend = backend
        self.sync = sync
        self.auth = auth
        self.team_context = team_context
        self.dry_run = dry_run
        self.clock = clock
        self.remote = RemoteInvoiceList()

    # ----------- routage ----------- #

    def _use_remote(self) -> bool:
        return not self.dry_run and self.auth.is_authenticated

    @property
    def source(self) -> DataSource:
        return "cloud" if self._use_remote() else "local"

    def _team_id(self) -> Optional[str]:
        return self.team_context.current_team_id if self.team_context else None

    @contextmanager
    def _tracked(self) -> Iterator[None]:
        self.sync.start_sync()
        try:
            yield
        finally:
            self.sync.complete_sync()

    # ----------- lecture ----------- #

    @property
    def is_loading(self) -> bool:
        if self._use_remote():
            return not self.remote.loaded
        return not self.store.has_hydrated

    @property
    def invoices(self) -> List[Invoice]:
        if self._use_remote():
            return [doc.to_invoice() for doc in self.remote.docs or []]
        return self.store.invoices

    def refresh(self) -> List[Invoice]:
        """Recharge la liste cloud (sans effet hors connexion)."""
        if self._use_remote():
            with self._tracked():
                self.remote.replace(self.backend.list_invoices(self._team_id()))
        return self.invoices

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        with self._tracked():
            if self._use_remote():
                # recherche dans la dernière liste reçue, pas de nouvel appel
                doc = self.remote.find(invoice_id)
                return doc.to_invoice() if doc else None
            return self.store.get_invoice(invoice_id)

    def get_next_invoice_number(self) -> str:
        with self._tracked():
            if self._use_remote():
                return self.backend.next_invoice_number(self._team_id())
            return self.store.get_next_invoice_number()

    # ----------- écriture ----------- #

    def save_invoice(self, form_data: FormLike, invoice_id: Optional[str] = None) -> Invoice:
        with self._tracked():
            if not self._use_remote():
                return self.store.save_invoice(form_data, invoice_id)

            form = as_form_data(form_data)
            fields = RemoteInvoiceFields.from_form(form)
            if invoice_id:
                self.backend.update_invoice(invoice_id, fields)
                existing = self.remote.find(invoice_id)
                created_at = existing.creation_time if existing and existing.creation_time else self.clock()
                return Invoice(**form.model_dump(), id=invoice_id, created_at=created_at)

            fields.status = fields.status or DEFAULT_REMOTE_STATUS
            new_id = self.backend.create_invoice(fields, self._team_id())
            LOG.info("Facture %s créée dans le cloud (%s)", form.invoice_number, new_id)
            return Invoice(**form.model_dump(exclude={"status"}), status=fields.status, id=new_id, created_at=self.clock())

    def delete_invoice(self, invoice_id: str) -> None:
        with self._tracked():
            if self._use_remote():
                self.backend.delete_invoice(invoice_id)
            else:
                self.store.delete_invoice(invoice_id)

    # ----------- brouillons (toujours locaux) ----------- #

    def save_draft(self, key: str, form_data: FormLike) -> None:
        self.store.save_draft(key, form_data)

    def load_draft(self, key: str) -> Optional[InvoiceFormData]:
        return self.store.load_draft(key)

    def clear_draft(self, key: str) -> None:
        self.store.clear_draft(key)
