from core.storage.migrations import migrate_invoice_store, migrate_settings_store


def _legacy_state():
    return {
        "invoices": [
            {"id": "a", "invoice_number": "INV-0001", "currency": None, "line_items": None},
            {"id": "b", "invoice_number": "INV-0002", "tax_rate": 5.5, "currency": "EUR"},
        ],
    }


class TestInvoiceStoreMigration:
    def test_version_zero_stamps_and_defaults(self):
        out = migrate_invoice_store(_legacy_state(), 0)
        a, b = out["invoices"]
        assert a["version"] == 1 and b["version"] == 1
        assert a["currency"] == "USD"
        assert a["line_items"] == []
        assert a["tax_rate"] == 0
        assert b["tax_rate"] == 5.5
        assert b["currency"] == "EUR"
        assert out["drafts"] == {}

    def test_existing_values_are_kept(self):
        out = migrate_invoice_store({"invoices": [{"id": "x", "notes": "keep"}], "drafts": {"k": {}}}, 0)
        assert out["invoices"][0]["notes"] == "keep"
        assert out["drafts"] == {"k": {}}

    def test_current_version_untouched(self):
        state = {"invoices": [{"id": "a", "currency": None}], "drafts": {}}
        assert migrate_invoice_store(state, 1) == state

    def test_idempotent(self):
        once = migrate_invoice_store(_legacy_state(), 0)
        assert migrate_invoice_store(once, 1) == once

    def test_input_not_mutated(self):
        state = _legacy_state()
        migrate_invoice_store(state, 0)
        assert "version" not in state["invoices"][0]

    def test_non_object_entries_dropped(self):
        out = migrate_invoice_store({"invoices": ["oops", None, {"id": "ok"}], "drafts": ["x"]}, 0)
        assert [inv["id"] for inv in out["invoices"]] == ["ok"]
        assert out["drafts"] == {}

    def test_missing_state(self):
        assert migrate_invoice_store(None, 0) == {"invoices": [], "drafts": {}}


class TestSettingsMigration:
    def test_defaults(self):
        out = migrate_settings_store({"settings": {"from_name": "Studio"}}, 0)
        s = out["settings"]
        assert s["from_name"] == "Studio"
        assert s["from_email"] == "" and s["notes"] == ""
        assert s["tax_rate"] == 0
        assert s["currency"] == "USD"

    def test_explicit_zero_tax_rate_preserved(self):
        out = migrate_settings_store({"settings": {"tax_rate": 0, "currency": "EUR"}}, 0)
        assert out["settings"]["tax_rate"] == 0
        assert out["settings"]["currency"] == "EUR"

    def test_non_zero_tax_rate_kept(self):
        out = migrate_settings_store({"settings": {"tax_rate": 8.25}}, 0)
        assert out["settings"]["tax_rate"] == 8.25

    def test_empty_state(self):
        out = migrate_settings_store({}, 0)
        assert out["settings"]["currency"] == "USD"

    def test_current_version_untouched(self):
        state = {"settings": {"tax_rate": 3}}
        assert migrate_settings_store(state, 1) == state
