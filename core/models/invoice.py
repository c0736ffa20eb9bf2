from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from .client import ClientSnapshot
from .common import gen_id, utc_now

# Version de schéma des factures persistées (voir core.storage.migrations)
CURRENT_INVOICE_VERSION = 1

DEFAULT_CURRENCY = "USD"
DEFAULT_REMOTE_STATUS = "draft"

class LineItem(BaseModel):
    id: str = Field(default_factory=gen_id)
    description: str = ""
    quantity: float = 0.0
    price: float = 0.0  # prix unitaire

class InvoiceFormData(BaseModel):
    invoice_number: str = ""
    invoice_name: Optional[str] = None
    issue_date: str = ""
    due_date: Optional[str] = None
    status: Optional[str] = None

    from_name: str = ""
    from_address: str = ""
    from_email: str = ""
    to_name: str = ""
    to_address: str = ""
    to_email: str = ""

    line_items: List[LineItem] = Field(default_factory=list)
    tax_rate: float = 0.0
    notes: str = ""
    payment_details: str = ""
    currency: str = DEFAULT_CURRENCY

    model_config = ConfigDict(extra="ignore")  # tolère d'anciennes clés dans les JSON

class Invoice(InvoiceFormData):
    id: str = Field(default_factory=gen_id)
    created_at: datetime = Field(default_factory=utc_now)
    version: Optional[int] = None

    def form_data(self) -> InvoiceFormData:
        return InvoiceFormData(**self.model_dump())

# ---------- Forme côté backend ---------- #

class RemoteInvoiceFields(BaseModel):
    """Champs "coeur" envoyés au backend: les to_* sont repliés dans client_snapshot."""
    invoice_number: str = ""
    invoice_name: Optional[str] = None
    issue_date: str = ""
    due_date: Optional[str] = None
    status: Optional[str] = None

    from_name: str = ""
    from_email: str = ""
    from_address: str = ""
    currency: str = DEFAULT_CURRENCY
    tax_rate: float = 0.0
    notes: str = ""
    payment_details: str = ""

    line_items: List[LineItem] = Field(default_factory=list)
    client_snapshot: ClientSnapshot = Field(default_factory=ClientSnapshot)
    client_id: Optional[str] = None
    team_id: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_form(cls, form: InvoiceFormData) -> "RemoteInvoiceFields":
        data = form.model_dump(exclude={"to_name", "to_email", "to_address"})
        return cls(
            **data,
            client_snapshot=ClientSnapshot(name=form.to_name, email=form.to_email, address=form.to_address),
        )

class RemoteInvoice(RemoteInvoiceFields):
    id: str
    creation_time: Optional[datetime] = None
    user_id: Optional[str] = None

    def to_invoice(self) -> Invoice:
        data = self.model_dump(exclude={"client_snapshot", "client_id", "team_id", "creation_time", "user_id"})
        return Invoice(
            **data,
            to_name=self.client_snapshot.name or "",
            to_email=self.client_snapshot.email or "",
            to_address=self.client_snapshot.address or "",
            created_at=self.creation_time or utc_now(),
        )
