from __future__ import annotations
from pydantic import BaseModel
from typing import Literal, Optional
from datetime import datetime

SyncStatus = Literal["synced", "syncing", "offline", "conflict"]

# Libellés / couleurs de l'indicateur de synchro
SYNC_LABELS = {
    "synced": "Synchronisé",
    "syncing": "Synchronisation…",
    "offline": "Hors ligne",
    "conflict": "Conflit",
}

SYNC_COLORS = {
    "synced": "#22c55e",
    "syncing": "#eab308",
    "offline": "#6b7280",
    "conflict": "#ef4444",
}

class SyncState(BaseModel):
    status: SyncStatus = "synced"
    last_sync_time: Optional[datetime] = None
    is_online: bool = True

    @property
    def is_synced(self) -> bool:
        return self.status == "synced"

    @property
    def is_syncing(self) -> bool:
        return self.status == "syncing"

    @property
    def is_offline(self) -> bool:
        return self.status == "offline"

    @property
    def is_conflict(self) -> bool:
        return self.status == "conflict"
