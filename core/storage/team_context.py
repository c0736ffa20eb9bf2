from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Optional, Union

from core.services.listeners import ListenerRegistry, Unsubscribe
from core.storage.json_repo import JsonStateRepository

TEAM_CONTEXT_STORAGE_KEY = "team-context-storage"


class TeamContext:
    """Equipe active (portée des factures cloud), persistée entre deux lancements."""

    def __init__(self, filepath: Union[str, Path], default_team_id: Optional[str] = None) -> None:
        self.repo = JsonStateRepository(filepath, entity_name=TEAM_CONTEXT_STORAGE_KEY, backup_enabled=False)
        self._current_team_id = default_team_id
        self._listeners = ListenerRegistry("team-context")

    @property
    def current_team_id(self) -> Optional[str]:
        return self._current_team_id

    def hydrate(self) -> None:
        persisted = self.repo.read()
        if persisted is not None and "current_team_id" in persisted.state:
            self._current_team_id = persisted.state.get("current_team_id") or None

    def set_current_team(self, team_id: Optional[str]) -> None:
        self._current_team_id = team_id or None
        self.repo.write({"current_team_id": self._current_team_id}, 0)
        self._listeners.notify(self._current_team_id)

    def clear_current_team(self) -> None:
        self.set_current_team(None)

    def subscribe(self, listener: Callable[[Optional[str]], Any]) -> Unsubscribe:
        return self._listeners.add(listener)
