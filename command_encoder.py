"""Envelope encoding for the portal query and command endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple
from urllib.parse import quote

from portalgrid.canonical_json import wire_dumps
from portalgrid.query_state import QueryState


DEFAULT_API_HOST = "lightapi.net"
DEFAULT_API_VERSION = "0.1.0"
DEFAULT_QUERY_PATH = "/portal/query"
DEFAULT_COMMAND_PATH = "/portal/command"
CSRF_HEADER = "X-CSRF-TOKEN"

Envelope = Dict[str, Any]


@dataclass
class EncodingError(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base


@dataclass(frozen=True)
class GridResource:
    service: str
    host: str = DEFAULT_API_HOST
    version: str = DEFAULT_API_VERSION
    query_path: str = DEFAULT_QUERY_PATH
    command_path: str = DEFAULT_COMMAND_PATH


@dataclass(frozen=True)
class RequestContext:
    """Cross-cutting values attached to every call; owned by the caller."""

    csrf_token: str | None = None
    host_id: str | None = None

    @property
    def ready(self) -> bool:
        return bool(self.host_id)


@dataclass(frozen=True)
class TransportRequest:
    method: str
    url: str
    headers: Tuple[Tuple[str, str], ...] = ()
    body: str | None = None

    def header_dict(self) -> dict:
        return dict(self.headers)


def _headers(context: RequestContext, with_body: bool) -> Tuple[Tuple[str, str], ...]:
    headers = [("Accept", "application/json")]
    if with_body:
        headers.append(("Content-Type", "application/json"))
    if context.csrf_token:
        headers.append((CSRF_HEADER, context.csrf_token))
    return tuple(headers)


def _envelope(resource: GridResource, action: str, data: Mapping[str, Any]) -> Envelope:
    if not isinstance(action, str) or not action:
        raise EncodingError("ACTION_INVALID", "action must be non-empty string", "action")
    if not resource.service:
        raise EncodingError("SERVICE_INVALID", "service must be non-empty string", "service")
    return {
        "host": resource.host,
        "service": resource.service,
        "action": action,
        "version": resource.version,
        "data": dict(data),
    }


def _coerce_filter_value(name: str, value: Any, boolean_fields: Iterable[str]) -> Any:
    if name in boolean_fields and isinstance(value, str):
        return value.strip().lower() == "true"
    return value


def encode_sorting(query_state: QueryState) -> str:
    return wire_dumps([{"id": s.field, "desc": s.desc} for s in query_state.sorting])


def encode_filters(query_state: QueryState, boolean_fields: Iterable[str] = ()) -> str:
    boolean_fields = frozenset(boolean_fields)
    return wire_dumps(
        [
            {"id": f.field, "value": _coerce_filter_value(f.field, f.value, boolean_fields)}
            for f in query_state.column_filters
        ]
    )


def build_query_envelope(
    resource: GridResource,
    action: str,
    query_state: QueryState,
    context: RequestContext,
    extra: Mapping[str, Any] | None = None,
    boolean_fields: Iterable[str] = (),
) -> Envelope:
    data: Dict[str, Any] = dict(extra or {})
    data.update(
        {
            "hostId": context.host_id,
            "offset": query_state.offset,
            "limit": query_state.limit,
            # the portal expects these two as JSON strings, "[]" when empty
            "sorting": encode_sorting(query_state),
            "filters": encode_filters(query_state, boolean_fields),
            "globalFilter": query_state.global_filter or "",
        }
    )
    return _envelope(resource, action, data)


def _read_request(resource: GridResource, envelope: Envelope, context: RequestContext) -> TransportRequest:
    try:
        cmd = wire_dumps(envelope)
    except (TypeError, ValueError) as exc:
        raise EncodingError("PAYLOAD_INVALID", str(exc), "data") from exc
    url = f"{resource.query_path}?cmd={quote(cmd, safe='')}"
    return TransportRequest(method="GET", url=url, headers=_headers(context, with_body=False))


def encode_query(
    resource: GridResource,
    action: str,
    query_state: QueryState,
    context: RequestContext,
    extra: Mapping[str, Any] | None = None,
    boolean_fields: Iterable[str] = (),
) -> TransportRequest:
    """Render a side-effect-free paged read as a GET with one ``cmd`` parameter."""
    envelope = build_query_envelope(resource, action, query_state, context, extra, boolean_fields)
    return _read_request(resource, envelope, context)


def encode_fresh(
    resource: GridResource,
    action: str,
    row: Mapping[str, Any],
    context: RequestContext,
) -> TransportRequest:
    """Render a single-row read used to load the latest copy of a record."""
    data = dict(row)
    data.setdefault("hostId", context.host_id)
    return _read_request(resource, _envelope(resource, action, data), context)


def encode_command(
    resource: GridResource,
    action: str,
    payload: Mapping[str, Any],
    context: RequestContext,
) -> TransportRequest:
    """Render a mutation as a POST carrying the envelope as its body."""
    if not isinstance(payload, Mapping):
        raise EncodingError("PAYLOAD_INVALID", "payload must be an object", "data")
    data = dict(payload)
    # rows scoped to no host (global rows) keep their own null hostId
    if "hostId" not in data:
        data["hostId"] = context.host_id
    envelope = _envelope(resource, action, data)
    try:
        body = wire_dumps(envelope)
    except (TypeError, ValueError) as exc:
        raise EncodingError("PAYLOAD_INVALID", str(exc), "data") from exc
    return TransportRequest(
        method="POST",
        url=resource.command_path,
        headers=_headers(context, with_body=True),
        body=body,
    )
