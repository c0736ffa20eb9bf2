from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Callable, Union

from pydantic import ValidationError

from core.models.settings import DefaultSettings
from core.services.listeners import ListenerRegistry, Unsubscribe
from core.storage.json_repo import JsonStateRepository
from core.storage.migrations import CURRENT_SETTINGS_VERSION, migrate_settings_store

LOG = logging.getLogger(__name__)

SETTINGS_STORAGE_KEY = "settings-storage"


class SettingsStore:
    """Valeurs par défaut des factures, persistées (settings-storage.json)."""

    def __init__(self, filepath: Union[str, Path]) -> None:
        self.repo = JsonStateRepository(filepath, entity_name=SETTINGS_STORAGE_KEY, backup_enabled=False)
        self._settings = DefaultSettings()
        self._listeners = ListenerRegistry("settings-store")

    @property
    def settings(self) -> DefaultSettings:
        return self._settings.model_copy()

    def hydrate(self) -> None:
        persisted = self.repo.read()
        if persisted is None:
            return
        state = migrate_settings_store(persisted.state, persisted.version)
        try:
            self._settings = DefaultSettings(**(state.get("settings") or {}))
        except ValidationError as e:
            LOG.warning("Paramètres invalides, valeurs par défaut utilisées: %s", e)
            self._settings = DefaultSettings()
        self._listeners.notify(self._settings)

    def update_settings(self, **changes: Any) -> DefaultSettings:
        self._settings = DefaultSettings(**{**self._settings.model_dump(), **changes})
        self._commit()
        return self.settings

    def reset_settings(self) -> None:
        self._settings = DefaultSettings()
        self._commit()

    def subscribe(self, listener: Callable[[DefaultSettings], Any]) -> Unsubscribe:
        return self._listeners.add(listener)

    def _commit(self) -> None:
        self.repo.write({"settings": self._settings.model_dump()}, CURRENT_SETTINGS_VERSION)
        self._listeners.notify(self._settings)
