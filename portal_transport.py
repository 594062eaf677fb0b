"""Transport contract between the grid core and the portal endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from command_encoder import TransportRequest


class TransportError(RuntimeError):
    """The request never reached the portal or its reply was unreadable."""


@dataclass(frozen=True)
class TransportResponse:
    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Transport(Protocol):
    async def send(self, request: TransportRequest) -> TransportResponse: ...


def error_payload(response: TransportResponse) -> Any:
    """Return the failure payload of a response, or None when it succeeded.

    Non-2xx replies and bodies with an ``error`` member are both failures.
    """
    body = response.body
    if isinstance(body, dict) and body.get("error") is not None:
        return body["error"]
    if not response.ok:
        return body if body is not None else {"description": f"HTTP {response.status_code}"}
    return None


def describe_error(error: Any) -> str:
    if isinstance(error, dict):
        for key in ("description", "message", "code"):
            value = error.get(key)
            if isinstance(value, str) and value:
                return value
        return str(error)
    return str(error)
