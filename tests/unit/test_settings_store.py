import json

from core.models.settings import DefaultSettings
from core.storage.migrations import CURRENT_SETTINGS_VERSION
from core.storage.settings_store import SettingsStore


def test_defaults_without_file(tmp_path):
    s = SettingsStore(tmp_path / "settings-storage.json")
    s.hydrate()
    assert s.settings == DefaultSettings()
    assert s.settings.currency == "USD"


def test_update_persists(tmp_path):
    path = tmp_path / "settings-storage.json"
    s = SettingsStore(path)
    s.hydrate()
    s.update_settings(from_name="Studio Nord", tax_rate=20)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["version"] == CURRENT_SETTINGS_VERSION
    assert raw["state"]["settings"]["from_name"] == "Studio Nord"

    fresh = SettingsStore(path)
    fresh.hydrate()
    assert fresh.settings.from_name == "Studio Nord"
    assert fresh.settings.tax_rate == 20


def test_legacy_file_migrated(tmp_path):
    path = tmp_path / "settings-storage.json"
    path.write_text(json.dumps({"state": {"settings": {"tax_rate": 0, "notes": None}}}), encoding="utf-8")
    s = SettingsStore(path)
    s.hydrate()
    assert s.settings.tax_rate == 0
    assert s.settings.notes == ""
    assert s.settings.currency == "USD"


def test_invalid_values_fall_back(tmp_path):
    path = tmp_path / "settings-storage.json"
    path.write_text(json.dumps({"state": {"settings": {"tax_rate": "lots"}}, "version": 1}), encoding="utf-8")
    s = SettingsStore(path)
    s.hydrate()
    assert s.settings == DefaultSettings()


def test_reset_and_subscribe(tmp_path):
    s = SettingsStore(tmp_path / "settings-storage.json")
    seen = []
    s.subscribe(lambda settings: seen.append(settings.currency))
    s.update_settings(currency="EUR")
    s.reset_settings()
    assert seen == ["EUR", "USD"]
    assert s.settings.currency == "USD"
