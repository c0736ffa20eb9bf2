"""Pytest configuration and shared fixtures"""

import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from core.models.invoice import RemoteInvoice, RemoteInvoiceFields
from core.services.backend import AuthSession, BackendError, InvoiceBackend, InvoiceNotFoundError
from core.services.invoice_data import InvoiceDataService
from core.services.sync_status import SyncStatusTracker
from core.storage.invoice_store import InvoiceStore
from core.storage.team_context import TeamContext


class FakeClock:
    """Horloge manuelle: chaque appel avance d'une seconde."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


class FakeBackend(InvoiceBackend):
    """Backend en mémoire; `fail` fait échouer l'appel suivant."""

    def __init__(self):
        self.docs: Dict[str, RemoteInvoice] = {}
        self.calls: List[tuple] = []
        self.batches: List[List[RemoteInvoiceFields]] = []
        self.fail: Optional[BackendError] = None
        self._seq = 0

    def _record(self, name: str, *args):
        self.calls.append((name, *args))
        if self.fail is not None:
            err, self.fail = self.fail, None
            raise err

    def add(self, fields: RemoteInvoiceFields, team_id: Optional[str] = None) -> str:
        self._seq += 1
        new_id = f"cloud-{self._seq}"
        self.docs[new_id] = RemoteInvoice(
            **fields.model_dump(exclude={"team_id"}),
            team_id=team_id,
            id=new_id,
            creation_time=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        return new_id

    def list_invoices(self, team_id=None):
        self._record("list", team_id)
        return [d for d in self.docs.values() if team_id is None or d.team_id == team_id]

    def create_invoice(self, fields, team_id=None):
        self._record("create", fields, team_id)
        return self.add(fields, team_id)

    def update_invoice(self, invoice_id, fields):
        self._record("update", invoice_id, fields)
        if invoice_id not in self.docs:
            raise InvoiceNotFoundError("Invoice not found")
        current = self.docs[invoice_id]
        self.docs[invoice_id] = RemoteInvoice(
            **fields.model_dump(exclude={"team_id"}),
            team_id=current.team_id,
            id=invoice_id,
            creation_time=current.creation_time,
        )

    def delete_invoice(self, invoice_id):
        self._record("delete", invoice_id)
        if invoice_id not in self.docs:
            raise InvoiceNotFoundError("Invoice not found")
        del self.docs[invoice_id]

    def batch_create_invoices(self, records: Sequence[RemoteInvoiceFields]):
        self._record("batch", list(records))
        self.batches.append(list(records))
        for r in records:
            self.add(r)
        return len(records)

    def next_invoice_number(self, team_id=None):
        self._record("next_number", team_id)
        return f"INV-{len(self.docs) + 1:04d}"


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def data_dir(tmp_path):
    d = tmp_path / "data"
    d.mkdir()
    return d


@pytest.fixture
def store(data_dir, rng, clock):
    s = InvoiceStore(data_dir / "invoice-storage.json", rng=rng, clock=clock)
    s.hydrate()
    return s


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def sync(clock):
    return SyncStatusTracker(clock=clock)


@pytest.fixture
def auth():
    return AuthSession()


@pytest.fixture
def team_context(data_dir):
    ctx = TeamContext(data_dir / "team-context-storage.json")
    ctx.hydrate()
    return ctx


@pytest.fixture
def data_service(store, fake_backend, sync, auth, team_context, clock):
    return InvoiceDataService(store, fake_backend, sync, auth, team_context, clock=clock)


@pytest.fixture
def sample_form():
    return {
        "invoice_number": "INV-0001",
        "invoice_name": "Sono mariage",
        "issue_date": "2024-03-01",
        "due_date": "2024-03-31",
        "from_name": "Studio Nord",
        "from_email": "contact@studio-nord.test",
        "from_address": "1 rue du Port",
        "to_name": "Alice Martin",
        "to_email": "alice@example.test",
        "to_address": "5 avenue des Lilas",
        "line_items": [{"id": "li-1", "description": "Location enceintes", "quantity": 2, "price": 150.0}],
        "tax_rate": 20,
        "notes": "Merci",
        "payment_details": "IBAN FR76 0000",
        "currency": "EUR",
    }
