"""Request lifecycle for grid reads: tickets, flags and stale-response discard."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Set

from command_encoder import RequestContext, TransportRequest
from portal_transport import Transport, TransportResponse, describe_error, error_payload
from portalgrid.grid_result import GridResult
from portalgrid.query_state import QueryState
from grid_store import GridStore


Encoder = Callable[[QueryState, RequestContext], TransportRequest]

_logger = logging.getLogger("portalgrid.fetch")


class FetchFailed(RuntimeError):
    """A read completed but produced no usable result."""


def parse_page(response: TransportResponse, rows_key: str, limit: int | None = None) -> GridResult:
    error = error_payload(response)
    if error is not None:
        raise FetchFailed(describe_error(error))
    body = response.body
    if not isinstance(body, dict):
        raise FetchFailed("response body must be an object")
    rows = body.get(rows_key) or []
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise FetchFailed(f"{rows_key} must be a list of objects")
    total = body.get("total") or 0
    if isinstance(total, bool) or not isinstance(total, int):
        raise FetchFailed("total must be an int")
    if limit is not None and len(rows) > limit:
        _logger.warning("fetch_rows_over_limit rows_key=%s rows=%s limit=%s", rows_key, len(rows), limit)
        rows = rows[:limit]
    return GridResult.from_rows(rows, total)


class FetchCoordinator:
    """Issues reads for a grid; only the latest ticket may commit.

    ``request`` does not wait for the network. Results land in the store:
    a superseded response is dropped without touching any flag, the latest
    one either replaces the result or raises ``is_error`` while keeping the
    rows already on screen.
    """

    def __init__(self, store: GridStore, transport: Transport, encode: Encoder, rows_key: str, name: str = "grid") -> None:
        self._store = store
        self._transport = transport
        self._encode = encode
        self._rows_key = rows_key
        self._name = name
        self._latest_ticket = 0
        self._tasks: Set[asyncio.Task] = set()

    @property
    def latest_ticket(self) -> int:
        return self._latest_ticket

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def request(self, query_state: QueryState, context: RequestContext) -> asyncio.Task:
        self._latest_ticket += 1
        ticket = self._latest_ticket
        if self._store.view.has_result:
            self._store.update(is_refetching=True)
        else:
            self._store.update(is_loading=True)
        _logger.debug("fetch_issued grid=%s ticket=%s offset=%s limit=%s", self._name, ticket, query_state.offset, query_state.limit)
        task = asyncio.get_running_loop().create_task(self._run(ticket, query_state, context))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, ticket: int, query_state: QueryState, context: RequestContext) -> bool:
        result: GridResult | None = None
        failure: Any = None
        try:
            request = self._encode(query_state, context)
            response = await self._transport.send(request)
            result = parse_page(response, self._rows_key, query_state.limit)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            failure = exc

        if ticket != self._latest_ticket:
            _logger.debug("fetch_discarded grid=%s ticket=%s latest=%s", self._name, ticket, self._latest_ticket)
            return False

        view = self._store.view
        if failure is not None:
            _logger.warning("fetch_failed grid=%s ticket=%s error=%s", self._name, ticket, failure)
            self._store.replace(view.evolve(is_error=True, is_loading=False, is_refetching=False))
            return True
        self._store.replace(
            view.evolve(result=result, has_result=True, is_error=False, is_loading=False, is_refetching=False)
        )
        _logger.debug("fetch_committed grid=%s ticket=%s rows=%s total=%s", self._name, ticket, len(result), result.total)
        return True

    async def drain(self) -> None:
        """Wait until every issued read has resolved."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
