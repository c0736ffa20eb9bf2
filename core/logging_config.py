from __future__ import annotations
import logging
import sys
from pathlib import Path

from core.config import AppConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# marqueur posé sur nos handlers (rappel de setup_logging sans doublons)
_HANDLER_FLAG = "_invoice_desk"


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_FLAG, True)
    return handler


def setup_logging(config: AppConfig) -> logging.Logger:
    """
    Logs de l'appli :
    - console (stdout), toujours
    - fichier si LOG_FILE / config.log_file est renseigné (dossier créé au besoin)
    Niveau inconnu -> INFO. Un second appel remplace les handlers du premier.
    """
    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    fmt = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    for h in [h for h in root.handlers if getattr(h, _HANDLER_FLAG, False)]:
        root.removeHandler(h)
        h.close()
    root.setLevel(level)

    handlers = [_tag(logging.StreamHandler(sys.stdout))]
    if config.log_file:
        path = Path(config.log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(_tag(logging.FileHandler(path, encoding="utf-8")))
    for h in handlers:
        h.setLevel(level)
        h.setFormatter(fmt)
        root.addHandler(h)

    # requests / urllib3 trop bavards en DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return root
