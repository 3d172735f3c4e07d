"""
Contexte de requête : identifiant de corrélation partagé par les logs.
"""
import uuid
from contextvars import ContextVar
from typing import Optional

REQUEST_ID_HEADER = "x-request-id"

_request_id: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def get_request_id() -> Optional[str]:
    return _request_id.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Positionne l'identifiant de la requête courante (généré si absent)."""
    value = request_id or str(uuid.uuid4())
    _request_id.set(value)
    return value


def reset_request_id() -> None:
    _request_id.set(None)
