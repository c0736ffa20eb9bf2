"""
Backend distant (multi-tenant) vu depuis le client.

Le backend applique lui-même les règles de propriété / rôles d'équipe; ici on
ne fait que transporter les appels et remonter ses erreurs telles quelles.

- InvoiceBackend: contrat abstrait consommé par la façade et la migration
- HttpInvoiceBackend: implémentation JSON over HTTP (requests)
- AuthSession: jeton porteur de l'utilisateur connecté
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import requests

from core.models.invoice import RemoteInvoice, RemoteInvoiceFields
from core.services.listeners import ListenerRegistry, Unsubscribe

LOG = logging.getLogger(__name__)


# ---------- Erreurs ---------- #

class BackendError(RuntimeError):
    """Echec d'un appel au backend (transport ou refus)."""


class AuthorizationError(BackendError):
    """Non connecté, ou droits insuffisants sur la facture / l'équipe."""


class InvoiceNotFoundError(BackendError):
    """La facture demandée n'existe pas (ou plus) côté backend."""


_AUTH_MARKERS = ("unauthenticated", "unauthorized", "not authorized", "viewers cannot", "only admins")


def _error_for(message: str, status_code: Optional[int] = None) -> BackendError:
    low = (message or "").lower()
    if status_code in (401, 403) or any(m in low for m in _AUTH_MARKERS):
        return AuthorizationError(message)
    if status_code == 404 or "not found" in low:
        return InvoiceNotFoundError(message)
    return BackendError(message)


# ---------- Session ---------- #

class AuthSession:
    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None
        self._listeners = ListenerRegistry("auth")

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    def sign_in(self, token: str) -> None:
        self._token = token or None
        self._listeners.notify(self.is_authenticated)

    def sign_out(self) -> None:
        self._token = None
        self._listeners.notify(False)

    def subscribe(self, listener: Callable[[bool], Any]) -> Unsubscribe:
        return self._listeners.add(listener)


# ---------- Contrat ---------- #

class InvoiceBackend(ABC):
    """Contrat du backend distant. Toute erreur est levée, jamais avalée ni rejouée."""

    @abstractmethod
    def list_invoices(self, team_id: Optional[str] = None) -> List[RemoteInvoice]:
        """Factures visibles par l'utilisateur, éventuellement limitées à une équipe."""

    @abstractmethod
    def create_invoice(self, fields: RemoteInvoiceFields, team_id: Optional[str] = None) -> str:
        """Crée la facture et renvoie l'id attribué par le backend."""

    @abstractmethod
    def update_invoice(self, invoice_id: str, fields: RemoteInvoiceFields) -> None:
        ...

    @abstractmethod
    def delete_invoice(self, invoice_id: str) -> None:
        ...

    @abstractmethod
    def batch_create_invoices(self, records: Sequence[RemoteInvoiceFields]) -> int:
        """Création en masse (migration locale -> cloud); renvoie le nombre créé."""

    @abstractmethod
    def next_invoice_number(self, team_id: Optional[str] = None) -> str:
        """Equivalent serveur de InvoiceStore.get_next_invoice_number()."""


# ---------- Format filaire ---------- #

def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.capitalize() for p in rest)

def _snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()

def fields_to_wire(fields: RemoteInvoiceFields, *, exclude: Sequence[str] = ()) -> Dict[str, Any]:
    data = fields.model_dump(exclude_none=True, exclude=set(exclude))
    return {_camel(k): v for k, v in data.items()}

def invoice_from_wire(doc: Mapping[str, Any]) -> RemoteInvoice:
    data: Dict[str, Any] = {}
    for k, v in doc.items():
        if k == "_id":
            data["id"] = v
        elif k == "_creationTime":
            if v is not None:
                data["creation_time"] = datetime.fromtimestamp(float(v) / 1000.0, tz=timezone.utc)
        else:
            data[_snake(k)] = v
    return RemoteInvoice(**data)


class HttpInvoiceBackend(InvoiceBackend):
    """
    Appels de fonctions backend en JSON over HTTP.

    POST {base_url}/api/query|mutation  {"path": "invoices:<fn>", "args": {...}, "format": "json"}
    Réponse: {"status": "success", "value": ...} ou {"status": "error", "errorMessage": "..."}
    """

    def __init__(
        self,
        base_url: str,
        auth: AuthSession,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, kind: str, path: str, args: Dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.auth.token:
            headers["Authorization"] = f"Bearer {self.auth.token}"
        url = f"{self.base_url}/api/{kind}"
        LOG.debug("backend %s %s", kind, path)
        try:
            resp = self.session.post(
                url,
                json={"path": path, "args": args, "format": "json"},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BackendError(f"{path}: {e}") from e

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        body_ok = isinstance(payload, dict)
        if not body_ok:
            payload = {}

        if resp.status_code >= 400 or payload.get("status") == "error":
            message = payload.get("errorMessage") or f"HTTP {resp.status_code}"
            LOG.warning("backend %s refusé: %s", path, message)
            raise _error_for(message, resp.status_code)
        if not body_ok:
            raise BackendError(f"{path}: réponse inattendue du backend")
        return payload.get("value")

    def list_invoices(self, team_id: Optional[str] = None) -> List[RemoteInvoice]:
        args = {"teamId": team_id} if team_id else {}
        docs = self._call("query", "invoices:list", args) or []
        return [invoice_from_wire(d) for d in docs]

    def create_invoice(self, fields: RemoteInvoiceFields, team_id: Optional[str] = None) -> str:
        args = fields_to_wire(fields, exclude=("team_id",))
        if team_id:
            args["teamId"] = team_id
        return str(self._call("mutation", "invoices:create", args))

    def update_invoice(self, invoice_id: str, fields: RemoteInvoiceFields) -> None:
        args = {"id": invoice_id, **fields_to_wire(fields, exclude=("team_id",))}
        self._call("mutation", "invoices:update", args)

    def delete_invoice(self, invoice_id: str) -> None:
        self._call("mutation", "invoices:remove", {"id": invoice_id})

    def batch_create_invoices(self, records: Sequence[RemoteInvoiceFields]) -> int:
        args = {"invoices": [fields_to_wire(r) for r in records]}
        return int(self._call("mutation", "invoices:batchCreate", args) or 0)

    def next_invoice_number(self, team_id: Optional[str] = None) -> str:
        args = {"teamId": team_id} if team_id else {}
        return str(self._call("mutation", "invoices:getNextInvoiceNumber", args))


class UnconfiguredBackend(InvoiceBackend):
    """Aucune URL de backend: tout appel distant est refusé."""

    def _refuse(self) -> BackendError:
        return BackendError("Aucun backend configuré (INVOICE_DESK_BACKEND_URL)")

    def list_invoices(self, team_id: Optional[str] = None) -> List[RemoteInvoice]:
        raise self._refuse()

    def create_invoice(self, fields: RemoteInvoiceFields, team_id: Optional[str] = None) -> str:
        raise self._refuse()

    def update_invoice(self, invoice_id: str, fields: RemoteInvoiceFields) -> None:
        raise self._refuse()

    def delete_invoice(self, invoice_id: str) -> None:
        raise self._refuse()

    def batch_create_invoices(self, records: Sequence[RemoteInvoiceFields]) -> int:
        raise self._refuse()

    def next_invoice_number(self, team_id: Optional[str] = None) -> str:
        raise self._refuse()
