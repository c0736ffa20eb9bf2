from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from typing import List, Optional

from core.config import AppConfig
from core.services.backend import AuthSession, HttpInvoiceBackend, InvoiceBackend, UnconfiguredBackend
from core.services.conflicts import ConflictResolver
from core.services.invoice_data import InvoiceDataService
from core.services.listeners import Unsubscribe
from core.services.migration import MigrationFlow
from core.services.notifications import Notifier
from core.services.subscription import InvoiceChangeBus, StorageChangeDetector
from core.services.sync_status import SyncStatusTracker
from core.storage.invoice_store import INVOICE_STORAGE_KEY, InvoiceStore
from core.storage.settings_store import SETTINGS_STORAGE_KEY, SettingsStore
from core.storage.team_context import TEAM_CONTEXT_STORAGE_KEY, TeamContext

LOG = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Objets partagés de l'appli, construits une fois et passés par référence."""

    config: AppConfig
    store: InvoiceStore
    settings: SettingsStore
    team_context: TeamContext
    sync: SyncStatusTracker
    auth: AuthSession
    backend: InvoiceBackend
    data: InvoiceDataService
    bus: InvoiceChangeBus
    detector: StorageChangeDetector
    conflicts: ConflictResolver
    migration: MigrationFlow
    _unsubscribers: List[Unsubscribe] = field(default_factory=list)

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        backend: Optional[InvoiceBackend] = None,
        notifier: Optional[Notifier] = None,
        rng: Optional[random.Random] = None,
    ) -> "AppServices":
        data_dir = config.data_dir
        notifier = notifier or Notifier()

        store = InvoiceStore(data_dir / f"{INVOICE_STORAGE_KEY}.json", rng=rng, backup_keep=config.backup_keep)
        settings = SettingsStore(data_dir / f"{SETTINGS_STORAGE_KEY}.json")
        team_context = TeamContext(data_dir / f"{TEAM_CONTEXT_STORAGE_KEY}.json", default_team_id=config.team_id)
        store.hydrate()
        settings.hydrate()
        team_context.hydrate()

        sync = SyncStatusTracker()
        auth = AuthSession(config.auth_token)
        dry_run = config.dry_run
        if backend is None:
            if config.backend_url:
                backend = HttpInvoiceBackend(config.backend_url, auth, timeout=config.request_timeout)
            else:
                LOG.info("Pas d'URL de backend: mode local uniquement")
                backend = UnconfiguredBackend()
                dry_run = True

        data = InvoiceDataService(store, backend, sync, auth, team_context, dry_run=dry_run)
        bus = InvoiceChangeBus()
        detector = StorageChangeDetector(store.repo, bus)
        conflicts = ConflictResolver(store, data, sync, notifier)
        migration = MigrationFlow(store, backend, auth, notifier)

        services = cls(
            config=config,
            store=store,
            settings=settings,
            team_context=team_context,
            sync=sync,
            auth=auth,
            backend=backend,
            data=data,
            bus=bus,
            detector=detector,
            conflicts=conflicts,
            migration=migration,
        )
        services._wire()
        return services

    def _wire(self) -> None:
        def on_auth(authenticated: bool) -> None:
            # la liste cloud d'une session ne doit pas survivre à la déconnexion
            if not authenticated:
                self.data.remote.clear()

        self._unsubscribers = [
            self.auth.subscribe(on_auth),
            self.conflicts.attach(self.bus),
        ]
        if not self.data.dry_run:
            self._unsubscribers.append(self.migration.attach())

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self.bus.close()
        self.sync.close()
        self.store.close()
