from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from .invoice import DEFAULT_CURRENCY


class DefaultSettings(BaseModel):
    """Valeurs par défaut appliquées aux nouvelles factures ("Utiliser les défauts")."""
    from_name: str = ""
    from_email: str = ""
    from_address: str = ""
    payment_details: str = ""
    notes: str = ""
    tax_rate: float = 0.0
    currency: str = DEFAULT_CURRENCY

    model_config = ConfigDict(extra="ignore")
