import pytest

from core.models.invoice import Invoice, RemoteInvoiceFields
from core.services.backend import BackendError
from core.services.conflicts import ConflictResolver
from core.services.notifications import Notifier
from core.services.subscription import InvoiceChangeBus
from core.storage.invoice_store import INVOICE_STORAGE_KEY


class RecordingNotifier(Notifier):
    def __init__(self):
        self.messages = []

    def success(self, message):
        self.messages.append(("success", message))

    def info(self, message):
        self.messages.append(("info", message))

    def error(self, message):
        self.messages.append(("error", message))


class RecordingPrompt:
    def __init__(self):
        self.shown = []
        self.closed = 0

    def show(self, local, cloud):
        self.shown.append((local, cloud))

    def close(self):
        self.closed += 1


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def prompt():
    return RecordingPrompt()


@pytest.fixture
def resolver(store, data_service, sync, notifier, prompt):
    return ConflictResolver(store, data_service, sync, notifier, prompt)


@pytest.fixture
def bus():
    return InvoiceChangeBus(clock=lambda: 1)


def _publish(bus, invoice_id):
    bus.publish_storage_change(INVOICE_STORAGE_KEY, f'{{"id": "{invoice_id}"}}')


class TestDetection:
    def test_event_for_known_invoice_opens_prompt(self, resolver, bus, store, sync, prompt, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.attach(bus)
        _publish(bus, inv.id)

        assert resolver.pending.local.id == inv.id
        assert resolver.pending.cloud is None
        assert prompt.shown[0][0].id == inv.id
        assert sync.status == "conflict"

    def test_event_for_unknown_invoice_ignored(self, resolver, bus, prompt):
        resolver.attach(bus)
        _publish(bus, "unknown")
        assert resolver.pending is None
        assert prompt.shown == []

    def test_event_without_id_ignored(self, resolver, bus, prompt):
        resolver.attach(bus)
        bus.publish_storage_change(INVOICE_STORAGE_KEY, "garbage")
        assert prompt.shown == []

    def test_second_event_ignored_while_pending(self, resolver, bus, store, prompt, sample_form):
        a = store.save_invoice(sample_form)
        b = store.save_invoice(sample_form)
        resolver.attach(bus)
        _publish(bus, a.id)
        _publish(bus, b.id)
        assert resolver.pending.local.id == a.id
        assert len(prompt.shown) == 1

    def test_detach(self, resolver, bus, store, prompt, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.attach(bus)
        resolver.detach()
        _publish(bus, inv.id)
        assert prompt.shown == []


class TestResolution:
    def test_merge_deletes_nothing(self, resolver, store, fake_backend, sync, prompt, sample_form):
        inv = store.save_invoice(sample_form)
        cloud = Invoice(**sample_form, id="cloud-x")
        resolver.present(inv, cloud)

        assert resolver.resolve("merge") is True
        assert resolver.pending is None
        assert prompt.closed == 1
        assert store.get_invoice(inv.id) is not None
        assert all(c[0] != "delete" for c in fake_backend.calls)
        assert sync.status == "synced"

    def test_keep_local_deletes_cloud_copy(self, resolver, store, fake_backend, auth, notifier, sample_form):
        auth.sign_in("t")
        cloud_id = fake_backend.add(RemoteInvoiceFields(invoice_number="INV-0001"))
        inv = store.save_invoice(sample_form)
        resolver.present(inv, Invoice(**sample_form, id=cloud_id))

        assert resolver.resolve("local") is True
        assert cloud_id not in fake_backend.docs
        assert store.get_invoice(inv.id) is not None
        assert resolver.pending is None
        assert notifier.messages[-1][0] == "success"

    def test_keep_cloud_deletes_local_copy(self, resolver, store, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.present(inv, Invoice(**sample_form, id="cloud-y"))

        assert resolver.resolve("cloud") is True
        assert store.get_invoice(inv.id) is None

    @pytest.mark.parametrize("choice", ["local", "cloud"])
    def test_keep_requires_both_candidates(self, resolver, store, prompt, notifier, choice, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.present(inv)

        assert resolver.resolve(choice) is False
        assert resolver.pending is not None
        assert store.get_invoice(inv.id) is not None
        assert prompt.closed == 0
        assert notifier.messages == []

    def test_failed_delete_keeps_conflict(self, resolver, fake_backend, auth, store, notifier, prompt, sync, sample_form):
        auth.sign_in("t")
        inv = store.save_invoice(sample_form)
        resolver.present(inv, Invoice(**sample_form, id="cloud-z"))
        fake_backend.fail = BackendError("network down")

        assert resolver.resolve("local") is False
        assert resolver.pending is not None
        assert prompt.closed == 0
        assert notifier.messages[-1][0] == "error"
        assert sync.status == "conflict"

    def test_nothing_pending(self, resolver):
        assert resolver.resolve("merge") is False

    def test_unknown_choice(self, resolver):
        with pytest.raises(ValueError):
            resolver.resolve("both")

    def test_cancel(self, resolver, store, prompt, fake_backend, sync, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.present(inv, Invoice(**sample_form, id="cloud-c"))
        resolver.cancel()
        assert resolver.pending is None
        assert prompt.closed == 1
        assert store.get_invoice(inv.id) is not None
        assert fake_backend.calls == []
        assert sync.status == "synced"

    def test_close_keeps_offline_status(self, resolver, store, sync, sample_form):
        inv = store.save_invoice(sample_form)
        resolver.present(inv)
        sync.mark_offline()
        resolver.cancel()
        assert sync.status == "offline"
