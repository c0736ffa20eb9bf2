"""
Détection et résolution de conflits local / cloud.

Un évènement du bus qui désigne une facture présente dans le store local
ouvre une demande de résolution. L'utilisateur choisit:

- "local": on garde la version locale, la copie cloud est supprimée
- "cloud": on garde la version cloud, la copie locale est supprimée
- "merge": on ferme sans rien supprimer (pas de fusion champ à champ)

Rien n'est jamais résolu automatiquement, et un seul conflit est traité à la fois.
"""
from __future__ import annotations

import logging
from typing import Literal, Optional, Protocol

from pydantic import BaseModel

from core.models.events import InvoiceSubscriptionEvent
from core.models.invoice import Invoice
from core.services.invoice_data import InvoiceDataService
from core.services.listeners import Unsubscribe
from core.services.notifications import Notifier
from core.services.subscription import InvoiceChangeBus
from core.services.sync_status import SyncStatusTracker
from core.storage.invoice_store import InvoiceStore

LOG = logging.getLogger(__name__)

Resolution = Literal["local", "cloud", "merge"]
RESOLUTIONS = ("local", "cloud", "merge")


class ConflictPrompt(Protocol):
    def show(self, local: Invoice, cloud: Optional[Invoice]) -> None: ...
    def close(self) -> None: ...


class PendingConflict(BaseModel):
    local: Invoice
    cloud: Optional[Invoice] = None


class ConflictResolver:
    def __init__(
        self,
        store: InvoiceStore,
        data: InvoiceDataService,
        sync: SyncStatusTracker,
        notifier: Optional[Notifier] = None,
        prompt: Optional[ConflictPrompt] = None,
    ) -> None:
        self.store = store
        self.data = data
        self.sync = sync
        self.notifier = notifier or Notifier()
        self.prompt = prompt
        self.pending: Optional[PendingConflict] = None
        self._unsubscribe: Optional[Unsubscribe] = None

    # ----------- bus ----------- #

    def attach(self, bus: InvoiceChangeBus) -> Unsubscribe:
        self.detach()
        self._unsubscribe = bus.subscribe(self.handle_event)
        return self.detach

    def detach(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None

    def handle_event(self, event: InvoiceSubscriptionEvent) -> None:
        if event.type != "storage" or not event.invoice_id:
            return
        if self.pending is not None:
            LOG.info("Conflit déjà en attente, évènement %s ignoré", event.invoice_id)
            return
        current = self.store.get_invoice(event.invoice_id)
        if current is not None:
            self.present(current)

    # ----------- décision ----------- #

    def present(self, local: Invoice, cloud: Optional[Invoice] = None) -> None:
        """
        Ouvre la demande de résolution. La copie cloud éventuelle est fournie
        par l'appelant: aucun appariement local / cloud n'est déduit ici.
        """
        self.pending = PendingConflict(local=local, cloud=cloud)
        self.sync.mark_conflict()
        LOG.warning("Conflit détecté sur la facture %s", local.id)
        if self.prompt:
            self.prompt.show(local, cloud)

    def resolve(self, choice: Resolution) -> bool:
        """Applique le choix de l'utilisateur; True si le conflit est levé."""
        if choice not in RESOLUTIONS:
            raise ValueError(f"Résolution inconnue: {choice}")
        pending = self.pending
        if pending is None:
            return False

        if choice == "merge":
            self._close()
            return True

        # garder une version suppose d'avoir les deux
        if pending.cloud is None:
            LOG.info("Résolution %s impossible sans copie cloud", choice)
            return False

        victim = pending.cloud if choice == "local" else pending.local
        try:
            self.data.delete_invoice(victim.id)
        except Exception as e:
            LOG.error("Echec de la résolution du conflit (%s): %s", choice, e)
            # la façade a clos sa synchro: le conflit reste affiché
            self.sync.mark_conflict()
            self.notifier.error("Impossible de résoudre le conflit. Réessaie.")
            return False

        self._close()
        self.notifier.success("Conflit résolu.")
        return True

    def cancel(self) -> None:
        self._close()

    def _close(self) -> None:
        self.pending = None
        # plus rien en attente: l'indicateur ne doit plus afficher "Conflit"
        if self.sync.status == "conflict":
            self.sync.set_status("synced")
        if self.prompt:
            self.prompt.close()
