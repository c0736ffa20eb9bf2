from __future__ import annotations
from PySide6.QtCore import QObject, QFileSystemWatcher

from core.services.subscription import StorageChangeDetector

class StorageWatcher(QObject):
    """Relaie les modifications du fichier du store (autre instance de l'appli) au détecteur."""

    def __init__(self, detector: StorageChangeDetector, parent=None):
        super().__init__(parent)
        self.detector = detector
        self.path = str(detector.repo.filepath)
        self.watcher = QFileSystemWatcher(self)
        self._watch()
        self.watcher.fileChanged.connect(self._on_changed)
        self.watcher.directoryChanged.connect(self._on_changed)

    def _watch(self):
        # le fichier est remplacé à chaque écriture: on surveille aussi le dossier
        parent_dir = str(self.detector.repo.filepath.parent)
        if parent_dir not in self.watcher.directories():
            self.watcher.addPath(parent_dir)
        if self.detector.repo.filepath.exists() and self.path not in self.watcher.files():
            self.watcher.addPath(self.path)

    def _on_changed(self, _path: str):
        self._watch()
        self.detector.check()
