from __future__ import annotations

import logging
import random
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from core.models.common import gen_id, to_dict, utc_now
from core.models.invoice import CURRENT_INVOICE_VERSION, Invoice, InvoiceFormData
from core.services.listeners import ListenerRegistry, Unsubscribe
from core.storage.json_repo import JsonStateRepository
from core.storage.migrations import migrate_invoice_store

LOG = logging.getLogger(__name__)

# Clé de stockage (nom du fichier sous data/)
INVOICE_STORAGE_KEY = "invoice-storage"

ADJECTIVES = ["Cosmic", "Swift", "Golden", "Stellar", "Bright", "Noble", "Grand", "Prime", "Royal", "Epic"]
NOUNS = ["Phoenix", "Dragon", "Thunder", "Aurora", "Nexus", "Zenith", "Summit", "Pulse", "Wave", "Spark"]

FormLike = Union[InvoiceFormData, Mapping[str, Any]]


# ---------- Helpers ---------- #

def generate_session_name(rng: random.Random) -> str:
    """Nom de facture "créatif" quand l'utilisateur n'en donne pas, ex. "Cosmic Phoenix 42"."""
    adj = rng.choice(ADJECTIVES)
    noun = rng.choice(NOUNS)
    num = rng.randrange(100)
    return f"{adj} {noun} {num}"

def next_invoice_number(numbers: Iterable[Optional[str]]) -> str:
    """Plus grand numéro (chiffres seuls) + 1, format INV-XXXX."""
    max_num = 0
    for number in numbers:
        digits = re.sub(r"\D", "", number or "")
        if digits:
            max_num = max(max_num, int(digits))
    return f"INV-{max_num + 1:04d}"

def as_form_data(form_data: FormLike) -> InvoiceFormData:
    if isinstance(form_data, InvoiceFormData):
        return InvoiceFormData(**form_data.model_dump())
    return InvoiceFormData(**to_dict(form_data))


# ---------- Store ---------- #

class InvoiceStore:
    """
    Factures et brouillons de l'appareil, persistés dans un fichier JSON versionné.

    Cycle de vie: construire, puis hydrate() avant toute lecture. Avant
    l'hydratation le store est vide et ne fait pas foi (has_hydrated=False).
    Chaque mutation réécrit l'état complet sur disque puis prévient les abonnés.
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = gen_id,
        backup_keep: int = 5,
    ) -> None:
        self.repo = JsonStateRepository(filepath, entity_name=INVOICE_STORAGE_KEY, backup_keep=backup_keep)
        self.rng = rng or random.Random()
        self.clock = clock
        self.id_factory = id_factory
        self._invoices: List[Invoice] = []
        self._drafts: Dict[str, InvoiceFormData] = {}
        self._has_hydrated = False
        self._listeners = ListenerRegistry("invoice-store")

    # ----------- hydratation / persistance ----------- #

    @property
    def has_hydrated(self) -> bool:
        return self._has_hydrated

    def hydrate(self) -> None:
        persisted = self.repo.read()
        invoices: List[Invoice] = []
        drafts: Dict[str, InvoiceFormData] = {}
        if persisted is not None:
            state = migrate_invoice_store(persisted.state, persisted.version)
            raw_invoices = state.get("invoices") or []
            if not isinstance(raw_invoices, list):
                LOG.warning("Liste de factures illisible (%s), ignorée", type(raw_invoices).__name__)
                raw_invoices = []
            for raw in raw_invoices:
                if not isinstance(raw, Mapping):
                    LOG.warning("Facture ignorée au chargement: entrée %r", raw)
                    continue
                try:
                    invoices.append(Invoice(**raw))
                except (ValidationError, TypeError) as e:
                    # on ignore les entrées invalides pour ne pas bloquer l'appli
                    LOG.warning("Facture ignorée au chargement: %s", e)
            raw_drafts = state.get("drafts") or {}
            if not isinstance(raw_drafts, Mapping):
                LOG.warning("Brouillons illisibles (%s), ignorés", type(raw_drafts).__name__)
                raw_drafts = {}
            for key, raw in raw_drafts.items():
                if not isinstance(raw, Mapping):
                    LOG.warning("Brouillon %s ignoré au chargement: entrée %r", key, raw)
                    continue
                try:
                    drafts[key] = InvoiceFormData(**raw)
                except (ValidationError, TypeError) as e:
                    LOG.warning("Brouillon %s ignoré au chargement: %s", key, e)
        self._invoices = invoices
        self._drafts = drafts
        self._has_hydrated = True
        LOG.info("Store local hydraté: %d facture(s), %d brouillon(s)", len(invoices), len(drafts))
        self._listeners.notify(self)

    def serialize_state(self) -> Dict[str, Any]:
        return {
            "invoices": [inv.model_dump(mode="json") for inv in self._invoices],
            "drafts": {k: d.model_dump(mode="json") for k, d in self._drafts.items()},
        }

    def _commit(self) -> None:
        self.repo.write(self.serialize_state(), CURRENT_INVOICE_VERSION)
        self._listeners.notify(self)

    def subscribe(self, listener: Callable[["InvoiceStore"], Any]) -> Unsubscribe:
        return self._listeners.add(listener)

    def close(self) -> None:
        self._listeners.clear()

    # ----------- lecture ----------- #

    @property
    def invoices(self) -> List[Invoice]:
        return list(self._invoices)

    @property
    def drafts(self) -> Dict[str, InvoiceFormData]:
        return dict(self._drafts)

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        for inv in self._invoices:
            if inv.id == invoice_id:
                return inv
        return None

    def get_next_invoice_number(self) -> str:
        return next_invoice_number(inv.invoice_number for inv in self._invoices)

    # ----------- factures ----------- #

    def save_invoice(self, form_data: FormLike, invoice_id: Optional[str] = None) -> Invoice:
        """
        Crée ou remplace (pas de patch champ à champ).

        Sans id: nouvel id, en tête de liste. Avec un id existant: remplacé à la
        même position, avec une nouvelle date de création.
        """
        form = as_form_data(form_data)
        invoice = Invoice(
            **form.model_dump(exclude={"invoice_name"}),
            invoice_name=form.invoice_name or generate_session_name(self.rng),
            id=invoice_id or self.id_factory(),
            created_at=self.clock(),
            version=CURRENT_INVOICE_VERSION,
        )

        idx = next((i for i, inv in enumerate(self._invoices) if inv.id == invoice.id), -1)
        if idx >= 0:
            self._invoices[idx] = invoice
        else:
            self._invoices.insert(0, invoice)
        self._commit()
        return invoice

    def delete_invoice(self, invoice_id: str) -> None:
        remaining = [inv for inv in self._invoices if inv.id != invoice_id]
        if len(remaining) == len(self._invoices):
            return
        self._invoices = remaining
        self._commit()

    # ----------- brouillons ----------- #

    def save_draft(self, key: str, form_data: FormLike) -> None:
        self._drafts[key] = as_form_data(form_data)
        self._commit()

    def load_draft(self, key: str) -> Optional[InvoiceFormData]:
        return self._drafts.get(key)

    def clear_draft(self, key: str) -> None:
        if self._drafts.pop(key, None) is not None:
            self._commit()

    def reset(self) -> None:
        """Vide factures et brouillons (après migration vers le cloud)."""
        self._invoices = []
        self._drafts = {}
        self._commit()
