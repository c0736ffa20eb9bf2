from __future__ import annotations
from PySide6.QtWidgets import QWidget, QHBoxLayout, QLabel
from PySide6.QtCore import QTimer

from core.models.sync import SyncState, SYNC_LABELS, SYNC_COLORS
from core.services.sync_status import SyncStatusTracker, format_distance_to_now

class SyncIndicator(QWidget):
    """Pastille + libellé de synchro, pour la barre d'état."""

    def __init__(self, tracker: SyncStatusTracker, parent=None):
        super().__init__(parent)
        self.tracker = tracker

        self.lbl_dot = QLabel("●")
        self.lbl_status = QLabel()
        self.lbl_last = QLabel()
        self.lbl_last.setStyleSheet("color: #6b7280;")

        lay = QHBoxLayout(self)
        lay.setContentsMargins(4, 0, 4, 0)
        lay.addWidget(self.lbl_dot)
        lay.addWidget(self.lbl_status)
        lay.addWidget(self.lbl_last)

        self._unsubscribe = tracker.subscribe(self._render)
        self.destroyed.connect(lambda *_: self._unsubscribe())

        # "il y a Nm" doit vieillir même sans nouvelle synchro
        self._timer = QTimer(self)
        self._timer.setInterval(30_000)
        self._timer.timeout.connect(lambda: self._render(self.tracker.state))
        self._timer.start()

        self._render(tracker.state)

    def _render(self, state: SyncState):
        self.lbl_dot.setStyleSheet(f"color: {SYNC_COLORS[state.status]};")
        self.lbl_status.setText(SYNC_LABELS[state.status])
        if state.last_sync_time:
            self.lbl_last.setText(f"({format_distance_to_now(state.last_sync_time)})")
        else:
            self.lbl_last.setText("")
        self.setToolTip("En ligne" if state.is_online else "Réseau indisponible")
