"""In-memory portal serving the grid query and command endpoints for local work."""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app import settings
from page_registry import GridPage


_logger = logging.getLogger("portalgrid.dev_portal")


def _error_response(code: str, description: str, status: int = 400) -> JSONResponse:
    body = {"error": {"statusCode": status, "code": code, "description": description}}
    return JSONResponse(jsonable_encoder(body), status_code=status)


def _ok_response(payload: dict, status: int = 200) -> JSONResponse:
    return JSONResponse(jsonable_encoder(payload), status_code=status)


def _parse_json_list(raw: Any, name: str) -> list:
    if raw in (None, ""):
        return []
    value = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(value, list):
        raise ValueError(f"{name} must be a JSON array")
    if not all(isinstance(item, dict) for item in value):
        raise ValueError(f"{name} entries must be objects")
    return value


def _matches_filter(value: Any, expected: Any) -> bool:
    if isinstance(expected, bool) or isinstance(value, bool):
        return value == expected
    if isinstance(value, str) and isinstance(expected, str):
        return expected.lower() in value.lower()
    return value == expected


def _matches_global(row: dict, needle: str) -> bool:
    needle = needle.lower()
    return any(isinstance(v, str) and needle in v.lower() for v in row.values())


def _sort_key(value: Any) -> tuple:
    if value is None:
        return (1, "")
    if isinstance(value, str):
        return (0, value.lower())
    return (0, value)


@dataclass
class DevTable:
    page: GridPage
    rows: List[dict] = field(default_factory=list)

    def key(self, row: dict) -> Tuple[Any, ...]:
        return tuple(row.get(name) for name in self.page.identity_fields)

    def query(self, data: dict) -> dict:
        host_id = data.get("hostId")
        rows = [r for r in self.rows if r.get("hostId") in (None, host_id)]
        for item in _parse_json_list(data.get("filters"), "filters"):
            name, expected = item.get("id"), item.get("value")
            rows = [r for r in rows if _matches_filter(r.get(name), expected)]
        needle = data.get("globalFilter") or ""
        if needle:
            rows = [r for r in rows if _matches_global(r, needle)]
        # stable sorts applied last-key-first give multi-column ordering
        for item in reversed(_parse_json_list(data.get("sorting"), "sorting")):
            name = item.get("id")
            rows = sorted(rows, key=lambda r: _sort_key(r.get(name)), reverse=bool(item.get("desc")))
        offset = max(int(data.get("offset") or 0), 0)
        limit = max(int(data.get("limit") or 10), 1)
        return {self.page.rows_key: copy.deepcopy(rows[offset : offset + limit]), "total": len(rows)}

    def find(self, data: dict) -> dict | None:
        key = self.key(data)
        for row in self.rows:
            if self.key(row) == key:
                return row
        return None


class DevPortalStore:
    def __init__(self) -> None:
        self._queries: Dict[Tuple[str, str], Tuple[str, DevTable]] = {}
        self._commands: Dict[Tuple[str, str], DevTable] = {}

    def add_table(self, page: GridPage, rows: List[dict]) -> DevTable:
        table = DevTable(page=page, rows=copy.deepcopy(rows))
        self._queries[(page.service, page.query_action)] = ("list", table)
        if page.fresh_action:
            self._queries[(page.service, page.fresh_action)] = ("fresh", table)
        if page.delete_action:
            self._commands[(page.service, page.delete_action)] = table
        return table

    def query_handler(self, service: str, action: str) -> Tuple[str, DevTable] | None:
        return self._queries.get((service, action))

    def command_handler(self, service: str, action: str) -> DevTable | None:
        return self._commands.get((service, action))


def _read_envelope(raw: Any) -> dict:
    envelope = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(envelope, dict):
        raise ValueError("envelope must be an object")
    for name in ("service", "action"):
        if not isinstance(envelope.get(name), str) or not envelope.get(name):
            raise ValueError(f"{name} must be non-empty string")
    if not isinstance(envelope.get("data"), dict):
        raise ValueError("data must be an object")
    return envelope


def create_app(store: DevPortalStore | None = None, csrf_token: str | None = None) -> FastAPI:
    store = store or DevPortalStore()
    expected_csrf = csrf_token if csrf_token is not None else settings.dev_portal_csrf_token()
    portal = FastAPI(title="portalgrid dev portal")
    portal.state.store = store

    def _csrf_rejected(request: Request) -> bool:
        return bool(expected_csrf) and request.headers.get("X-CSRF-TOKEN") != expected_csrf

    @portal.get(settings.query_path())
    async def portal_query(request: Request, cmd: str = "") -> JSONResponse:
        if _csrf_rejected(request):
            return _error_response("ERR_CSRF", "missing or invalid anti-forgery token", status=403)
        try:
            envelope = _read_envelope(cmd)
        except ValueError as exc:
            return _error_response("ERR_CMD_INVALID", str(exc))
        handler = store.query_handler(envelope["service"], envelope["action"])
        if handler is None:
            return _error_response("ERR_ACTION_UNKNOWN", f"unknown action {envelope['action']}", status=404)
        kind, table = handler
        data = envelope["data"]
        if kind == "fresh":
            row = table.find(data)
            if row is None:
                return _error_response("ERR_NOT_FOUND", "record not found", status=404)
            return _ok_response(copy.deepcopy(row))
        try:
            payload = table.query(data)
        except (ValueError, TypeError) as exc:
            return _error_response("ERR_QUERY_INVALID", str(exc))
        _logger.info("dev_query action=%s rows=%s total=%s", envelope["action"], len(payload[table.page.rows_key]), payload["total"])
        return _ok_response(payload)

    @portal.post(settings.command_path())
    async def portal_command(request: Request) -> JSONResponse:
        if _csrf_rejected(request):
            return _error_response("ERR_CSRF", "missing or invalid anti-forgery token", status=403)
        try:
            envelope = _read_envelope(await request.json())
        except ValueError as exc:
            return _error_response("ERR_CMD_INVALID", str(exc))
        table = store.command_handler(envelope["service"], envelope["action"])
        if table is None:
            return _error_response("ERR_ACTION_UNKNOWN", f"unknown action {envelope['action']}", status=404)
        data = envelope["data"]
        row = table.find(data)
        if row is None:
            return _error_response("ERR_NOT_FOUND", "record not found", status=404)
        version_field = table.page.version_field
        if version_field and data.get(version_field) != row.get(version_field):
            _logger.info("dev_command_stale action=%s expected=%s got=%s", envelope["action"], row.get(version_field), data.get(version_field))
            return _error_response("ERR_STALE_VERSION", f"{version_field} does not match the stored record", status=409)
        table.rows.remove(row)
        _logger.info("dev_command action=%s key=%s", envelope["action"], table.key(row))
        return _ok_response({"data": copy.deepcopy(row)})

    return portal
