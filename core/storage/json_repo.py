from __future__ import annotations

import glob
import json
import logging
import shutil
import threading
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, NamedTuple, Optional, Union

LOG = logging.getLogger(__name__)


def _json_default(o: Any) -> Any:
    if isinstance(o, (date, datetime)):
        return o.isoformat()
    return str(o)


class PersistedState(NamedTuple):
    state: Dict[str, Any]
    version: int


class JsonStateRepository:
    """
    Fichier JSON versionné: {"state": {...}, "version": N}.
    - Fichier illisible -> copie en .corrupt.json, warning, état vide
    - Rotation de backups (backup_enabled, backup_keep)
    - N'écrit pas si le contenu ne change pas
    - Mémorise le dernier contenu écrit par ce process (détection des écritures externes)
    """

    def __init__(
        self,
        filepath: Union[str, Path],
        entity_name: str = "state",
        *,
        backup_enabled: bool = True,
        backup_keep: int = 5,
    ) -> None:
        self.filepath = Path(filepath)
        self.entity_name = entity_name
        self._lock = threading.Lock()
        self.backup_enabled = backup_enabled
        self.backup_keep = max(0, int(backup_keep))
        self.last_written_text: Optional[str] = None

        self.filepath.parent.mkdir(parents=True, exist_ok=True)

    # ---------------- I/O bas niveau ---------------- #

    def read_text(self) -> Optional[str]:
        try:
            return self.filepath.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def read(self) -> Optional[PersistedState]:
        """Etat persisté, ou None si absent / corrompu."""
        text = self.read_text()
        if text is None:
            return None
        parsed = self.parse(text)
        if parsed is None:
            self._quarantine()
        return parsed

    def parse(self, text: str) -> Optional[PersistedState]:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            LOG.warning("%s: contenu illisible dans %s (%s), état vide", self.entity_name, self.filepath, e)
            return None
        if not isinstance(data, dict) or not isinstance(data.get("state"), dict):
            LOG.warning("%s: format inattendu dans %s, état vide", self.entity_name, self.filepath)
            return None
        try:
            version = int(data.get("version") or 0)
        except (TypeError, ValueError):
            version = 0
        return PersistedState(state=data["state"], version=version)

    def _quarantine(self) -> None:
        backup = self.filepath.with_suffix(".corrupt.json")
        try:
            shutil.copy2(self.filepath, backup)
        except OSError as e:
            LOG.warning("%s: copie de %s impossible (%s)", self.entity_name, backup, e)

    def _rotate_backups(self) -> None:
        if not self.backup_enabled or self.backup_keep <= 0:
            return
        pattern = str(self.filepath.with_suffix(".*.bak.json"))
        files = sorted(glob.glob(pattern))
        # garde les plus récents
        if len(files) > self.backup_keep:
            for old in files[: len(files) - self.backup_keep]:
                Path(old).unlink(missing_ok=True)

    def write(self, state: Dict[str, Any], version: int) -> None:
        with self._lock:
            new_dump = json.dumps(
                {"state": state, "version": version},
                ensure_ascii=False, indent=2, default=_json_default,
            )

            # si contenu identique → ne rien faire
            if self.read_text() == new_dump:
                self.last_written_text = new_dump
                return

            # backup
            if self.backup_enabled and self.filepath.exists():
                ts = datetime.now().strftime("%Y%m%d-%H%M%S")
                backup = self.filepath.with_suffix(f".{ts}.bak.json")
                try:
                    shutil.copy2(self.filepath, backup)
                except OSError as e:
                    LOG.warning("%s: backup %s impossible (%s)", self.entity_name, backup, e)
                self._rotate_backups()

            self.filepath.write_text(new_dump, encoding="utf-8")
            self.last_written_text = new_dump
