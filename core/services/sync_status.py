from __future__ import annotations
import logging
from datetime import datetime
from typing import Any, Callable

from core.models.common import utc_now
from core.models.sync import SyncState, SyncStatus
from core.services.listeners import ListenerRegistry, Unsubscribe

LOG = logging.getLogger(__name__)


class SyncStatusTracker:
    """
    Etat de synchro du process (non persisté).

    synced <-> syncing, offline, conflict. Toutes les transitions sont
    immédiates et notifiées aux abonnés. Passer hors ligne pendant une synchro
    n'annule pas "syncing": c'est à l'appelant d'appeler mark_offline().
    """

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self.clock = clock
        self._state = SyncState()
        self._listeners = ListenerRegistry("sync-status")

    @property
    def state(self) -> SyncState:
        return self._state.model_copy()

    @property
    def status(self) -> SyncStatus:
        return self._state.status

    def subscribe(self, listener: Callable[[SyncState], Any]) -> Unsubscribe:
        return self._listeners.add(listener)

    def close(self) -> None:
        self._listeners.clear()

    def _set(self, **changes: Any) -> None:
        self._state = self._state.model_copy(update=changes)
        LOG.debug("sync: %s", self._state.status)
        self._listeners.notify(self.state)

    # ----------- transitions ----------- #

    def set_status(self, status: SyncStatus) -> None:
        self._set(status=status)

    def start_sync(self) -> None:
        self._set(status="syncing")

    def complete_sync(self) -> None:
        self._set(status="synced", last_sync_time=self.clock())

    def mark_offline(self) -> None:
        self._set(status="offline")

    def mark_conflict(self) -> None:
        self._set(status="conflict")

    # ----------- réseau ----------- #

    def set_online(self, online: bool) -> None:
        self._set(is_online=bool(online))

    def handle_reachability_change(self, online: bool) -> None:
        """
        Evènement réseau de l'OS: met à jour le flag, et passe en offline si la
        connexion tombe hors synchro. Une synchro en cours garde "syncing": en cas
        d'échec de transport, l'appelant appelle mark_offline() lui-même.
        """
        self.set_online(online)
        if not online and self._state.status != "syncing":
            self.mark_offline()


def format_distance_to_now(moment: datetime, now: datetime | None = None) -> str:
    seconds = int(((now or utc_now()) - moment).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"
