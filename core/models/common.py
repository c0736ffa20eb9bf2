from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Dict, Mapping
import uuid

def gen_id() -> str:
    return str(uuid.uuid4())

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def to_dict(obj: Any) -> Dict[str, Any]:
    """Modèle pydantic, mapping ou objet simple -> dict."""
    if isinstance(obj, Mapping):
        return dict(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    return dict(obj.__dict__)
