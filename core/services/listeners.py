from __future__ import annotations
import logging
from typing import Any, Callable, List

LOG = logging.getLogger(__name__)

Listener = Callable[..., Any]
Unsubscribe = Callable[[], None]


class ListenerRegistry:
    """Liste d'abonnés: add() renvoie la fonction de désabonnement. Ordre d'appel non garanti."""

    def __init__(self, name: str = "listeners") -> None:
        self.name = name
        self._listeners: List[Listener] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def add(self, listener: Listener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass  # déjà désabonné

        return unsubscribe

    def notify(self, *args: Any) -> None:
        # copie: un abonné peut se désabonner pendant la notification
        for listener in list(self._listeners):
            if listener not in self._listeners:
                continue
            try:
                listener(*args)
            except Exception:
                LOG.exception("%s: erreur dans un abonné", self.name)

    def clear(self) -> None:
        self._listeners.clear()
