from pydantic import BaseModel


class ClientSnapshot(BaseModel):
    """Identité du destinataire, copiée dans la facture côté cloud."""
    name: str = ""
    email: str = ""
    address: str = ""
