"""Builds the per-request context from the browser-side session state."""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from command_encoder import RequestContext


CSRF_COOKIE = "csrf"


def csrf_from_cookies(cookies: httpx.Cookies | Mapping[str, str] | None) -> str | None:
    if cookies is None:
        return None
    token = cookies.get(CSRF_COOKIE)
    return token or None


def host_from_user(user: Mapping[str, Any] | None) -> str | None:
    if not isinstance(user, Mapping):
        return None
    host = user.get("host") or user.get("hostId")
    return host if isinstance(host, str) and host else None


def request_context(cookies: httpx.Cookies | Mapping[str, str] | None, user: Mapping[str, Any] | None) -> RequestContext:
    """Snapshot of the anti-forgery token and tenant identity for one call."""
    return RequestContext(csrf_token=csrf_from_cookies(cookies), host_id=host_from_user(user))
