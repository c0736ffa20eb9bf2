from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Optional

from core.models.events import InvoiceSubscriptionEvent
from core.services.listeners import ListenerRegistry, Unsubscribe
from core.storage.invoice_store import INVOICE_STORAGE_KEY
from core.storage.json_repo import JsonStateRepository

LOG = logging.getLogger(__name__)

EventCallback = Callable[[InvoiceSubscriptionEvent], Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def parse_invoice_id(new_value: Optional[str]) -> Optional[str]:
    """Id de l'enregistrement sérialisé ("id" ou "_id"), None si absent ou illisible."""
    if not new_value:
        return None
    try:
        parsed = json.loads(new_value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    value = parsed.get("_id") or parsed.get("id")
    return str(value) if value else None


class InvoiceChangeBus:
    """
    Changements de factures venant d'un autre process / appareil.

    Pas de file d'attente: un abonné ne reçoit que les évènements survenus
    pendant son abonnement. Seul le type "storage" est produit ici.
    """

    def __init__(self, storage_key: str = INVOICE_STORAGE_KEY, clock: Callable[[], int] = _now_ms) -> None:
        self.storage_key = storage_key
        self.clock = clock
        self._listeners = ListenerRegistry("invoice-bus")

    def subscribe(self, callback: EventCallback) -> Unsubscribe:
        return self._listeners.add(callback)

    def close(self) -> None:
        self._listeners.clear()

    def publish_storage_change(self, key: str, new_value: Optional[str]) -> Optional[InvoiceSubscriptionEvent]:
        if key != self.storage_key:
            return None
        event = InvoiceSubscriptionEvent(
            type="storage",
            invoice_id=parse_invoice_id(new_value),
            timestamp=self.clock(),
        )
        self._listeners.notify(event)
        return event


class StorageChangeDetector:
    """
    Compare le fichier du store à la dernière version vue et publie une
    entrée par facture ajoutée ou modifiée par un autre process.

    Les écritures faites par ce process (repo.last_written_text) sont ignorées.
    """

    def __init__(self, repo: JsonStateRepository, bus: InvoiceChangeBus) -> None:
        self.repo = repo
        self.bus = bus
        self._last_text: Optional[str] = repo.read_text()
        self._snapshot: Dict[str, Dict[str, Any]] = self._records(self._last_text)

    def _records(self, text: Optional[str]) -> Dict[str, Dict[str, Any]]:
        if not text:
            return {}
        parsed = self.repo.parse(text)
        if parsed is None:
            return {}
        out: Dict[str, Dict[str, Any]] = {}
        for raw in parsed.state.get("invoices") or []:
            if isinstance(raw, dict) and raw.get("id"):
                out[str(raw["id"])] = raw
        return out

    def check(self) -> int:
        """Relit le fichier; renvoie le nombre d'évènements publiés."""
        text = self.repo.read_text()
        if text == self._last_text:
            return 0
        records = self._records(text)
        self._last_text = text
        previous, self._snapshot = self._snapshot, records
        if text == self.repo.last_written_text:
            return 0

        published = 0
        for invoice_id, raw in records.items():
            if previous.get(invoice_id) != raw:
                self.bus.publish_storage_change(self.bus.storage_key, json.dumps(raw))
                published += 1
        if published:
            LOG.info("Changement externe du store: %d facture(s)", published)
        return published
