"""Request id shared by the HTTP middleware, error payloads and log lines.

Every CitySync API call carries an ``X-Request-ID``. The mobile client may
send its own so a failed review post or profile save can be traced from the
device to the server log; otherwise the middleware in :mod:`citysync.main`
mints one. The id is echoed in the response header, copied into every
``ErrorResponse.request_id`` and included in handler log lines.
"""

from __future__ import annotations

import re
import uuid
from contextvars import ContextVar, Token

__all__ = [
    "REQUEST_ID_CONTEXT",
    "REQUEST_ID_HEADER",
    "clear_request_id",
    "get_request_id",
    "resolve_request_id",
    "set_request_id",
]

REQUEST_ID_HEADER = "X-Request-ID"

# Ids supplied by callers end up in logs, so only short opaque tokens are kept.
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{8,64}$")

REQUEST_ID_CONTEXT: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(candidate: str | None) -> str:
    """Reuse a well-formed client id, or mint a fresh UUID4."""

    if candidate and _CLIENT_ID_PATTERN.fullmatch(candidate.strip()):
        return candidate.strip()
    return str(uuid.uuid4())


def set_request_id(request_id: str) -> Token[str]:
    """Bind ``request_id`` to the running task and return the reset token."""

    return REQUEST_ID_CONTEXT.set(request_id)


def get_request_id() -> str:
    return REQUEST_ID_CONTEXT.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    if token is not None:
        REQUEST_ID_CONTEXT.reset(token)
    else:
        REQUEST_ID_CONTEXT.set("")
