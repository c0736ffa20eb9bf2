from __future__ import annotations
from pydantic import BaseModel
from typing import Literal, Optional

# Seul "storage" est produit aujourd'hui; "network" et "remote" sont réservés.
EventType = Literal["storage", "network", "remote"]

class InvoiceSubscriptionEvent(BaseModel):
    type: EventType
    invoice_id: Optional[str] = None
    timestamp: int  # epoch, millisecondes
