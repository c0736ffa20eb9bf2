"""
Migrations des états persistés.

Chaque fonction reçoit l'état brut lu sur disque et sa version (0 si absente)
et renvoie un état compatible avec la version courante. Pas d'I/O; appliquer
deux fois la migration à la même version ne change rien.
"""
from __future__ import annotations
from typing import Any, Dict, Mapping

from core.models.invoice import DEFAULT_CURRENCY

CURRENT_SETTINGS_VERSION = 1

# Valeurs par défaut des sous-champs d'une facture non versionnée
_INVOICE_DEFAULTS: Dict[str, Any] = {
    "invoice_number": "",
    "issue_date": "",
    "from_name": "",
    "from_address": "",
    "from_email": "",
    "to_name": "",
    "to_address": "",
    "to_email": "",
    "line_items": [],
    "tax_rate": 0,
    "notes": "",
    "payment_details": "",
    "currency": DEFAULT_CURRENCY,
}

_SETTINGS_TEXT_FIELDS = ("from_name", "from_email", "from_address", "payment_details", "notes")


def _stamp_invoice(invoice: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(invoice)
    for key, default in _INVOICE_DEFAULTS.items():
        if out.get(key) is None:
            out[key] = list(default) if isinstance(default, list) else default
    out["version"] = 1
    return out


def migrate_invoice_store(persisted_state: Any, version: int) -> Dict[str, Any]:
    state = dict(persisted_state or {})

    # 0 -> 1 : version sur chaque facture (entrées non objet écartées)
    if version == 0:
        invoices = state.get("invoices")
        drafts = state.get("drafts")
        return {
            **state,
            "invoices": [
                _stamp_invoice(inv) for inv in (invoices if isinstance(invoices, list) else [])
                if isinstance(inv, Mapping)
            ],
            "drafts": dict(drafts) if isinstance(drafts, Mapping) else {},
        }

    return state


def migrate_settings_store(persisted_state: Any, version: int) -> Dict[str, Any]:
    state = dict(persisted_state or {})

    # 0 -> 1 : structure complète, taux à 0 conservé tel quel
    if version == 0:
        settings = state.get("settings") or {}
        migrated = {k: settings.get(k) or "" for k in _SETTINGS_TEXT_FIELDS}
        tax_rate = settings.get("tax_rate")
        migrated["tax_rate"] = 0 if tax_rate is None else tax_rate
        migrated["currency"] = settings.get("currency") or DEFAULT_CURRENCY
        return {"settings": migrated}

    return state

