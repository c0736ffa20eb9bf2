from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict

LOG = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[1]  # invoice_desk/
DATA_DIR = ROOT_DIR / "data"
SETTINGS_JSON = DATA_DIR / "settings.json"

_TRUE = {"1", "true", "yes", "on"}


class AppConfig(BaseModel):
    data_dir: Path = DATA_DIR
    backend_url: Optional[str] = None
    auth_token: Optional[str] = None
    team_id: Optional[str] = None
    # pas d'appel réseau: tout reste sur le store local
    dry_run: bool = False
    request_timeout: float = 30.0
    log_level: str = "INFO"
    log_file: Optional[str] = None
    backup_keep: int = 5

    model_config = ConfigDict(extra="ignore")


def _load_json(path: Path) -> Optional[Dict[str, Any]]:
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        LOG.warning("Lecture impossible de %s: %s", path, e)
        return None
    return data if isinstance(data, dict) else None


def _as_bool(value: Union[str, bool, None]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in _TRUE


def load_config(env: Optional[Mapping[str, str]] = None, settings_path: Optional[Path] = None) -> AppConfig:
    """
    Configuration de l'appli :
    - Variables d'env (INVOICE_DESK_*, LOG_LEVEL, LOG_FILE)
    - data/settings.json -> section "sync"
    - valeurs par défaut
    """
    env = os.environ if env is None else env
    values: Dict[str, Any] = {}

    # 2) settings.json (écrasé ensuite par l'env)
    path = settings_path or SETTINGS_JSON
    s = _load_json(path) or {}
    sync_conf = s.get("sync") if isinstance(s.get("sync"), dict) else {}
    for key in ("backend_url", "team_id", "request_timeout", "dry_run"):
        if sync_conf.get(key) not in (None, ""):
            values[key] = sync_conf[key]

    # 1) Env
    env_keys = {
        "INVOICE_DESK_DATA_DIR": "data_dir",
        "INVOICE_DESK_BACKEND_URL": "backend_url",
        "INVOICE_DESK_AUTH_TOKEN": "auth_token",
        "INVOICE_DESK_TEAM_ID": "team_id",
        "INVOICE_DESK_DRY_RUN": "dry_run",
        "INVOICE_DESK_TIMEOUT": "request_timeout",
        "LOG_LEVEL": "log_level",
        "LOG_FILE": "log_file",
    }
    for env_key, field in env_keys.items():
        val = env.get(env_key)
        if val:
            values[field] = val

    if "dry_run" in values:
        values["dry_run"] = _as_bool(values["dry_run"])
    return AppConfig(**values)
