"""Composition root binding one admin list page to the portal endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Tuple

from command_encoder import RequestContext, TransportRequest, encode_command, encode_fresh, encode_query
from fetch_coordinator import FetchCoordinator
from grid_store import GridStore, Listener
from optimistic_mutation import (
    KIND_DELETE,
    Confirm,
    MutationMessages,
    MutationOutcome,
    Notify,
    OptimisticMutationExecutor,
    command_payload,
)
from page_registry import GridPage, initial_query_state
from portal_transport import Transport, describe_error, error_payload
from portalgrid.grid_result import GridResult, GridView, Row, row_key
from portalgrid.query_state import QueryState


Render = Callable[[str, Mapping[str, Any]], str]

_logger = logging.getLogger("portalgrid.controller")


class GridController:
    """Live controller for one page; re-enters loading/refetching on every change.

    Reads are skipped while the request context has no host identity. The
    first context that carries one triggers exactly one fetch.
    """

    def __init__(
        self,
        page: GridPage,
        transport: Transport,
        *,
        render: Render,
        confirm: Confirm,
        notify: Notify,
        context: RequestContext | None = None,
        query_state: QueryState | None = None,
        extra_data: Mapping[str, Any] | None = None,
    ) -> None:
        self._page = page
        self._resource = page.resource
        self._transport = transport
        self._render = render
        self._notify = notify
        self._context = context or RequestContext()
        self._query_state = query_state or initial_query_state(page)
        self._extra_data = dict(extra_data or {})
        self._store = GridStore()
        self._fetcher = FetchCoordinator(self._store, transport, self._encode_query, page.rows_key, name=page.page_id)
        self._mutations = OptimisticMutationExecutor(
            self._store, transport, page.identity_fields, confirm, notify, name=page.page_id
        )
        self._started = False
        self._fetched_host: str | None = None
        self._refreshing_key: Tuple[Any, ...] | None = None

    @property
    def page(self) -> GridPage:
        return self._page

    @property
    def view(self) -> GridView:
        return self._store.view

    @property
    def result(self) -> GridResult:
        return self._store.result

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self._store.view.rows

    @property
    def total(self) -> int:
        return self._store.view.total

    @property
    def state(self) -> str:
        return self._store.view.state

    @property
    def query_state(self) -> QueryState:
        return self._query_state

    @property
    def context(self) -> RequestContext:
        return self._context

    @property
    def latest_ticket(self) -> int:
        return self._fetcher.latest_ticket

    @property
    def refreshing_key(self) -> Tuple[Any, ...] | None:
        return self._refreshing_key

    def subscribe(self, listener: Listener) -> Callable[[], bool]:
        return self._store.subscribe(listener)

    def _encode_query(self, query_state: QueryState, context: RequestContext) -> TransportRequest:
        return encode_query(
            self._resource,
            self._page.query_action,
            query_state,
            context,
            extra=self._extra_data,
            boolean_fields=self._page.boolean_fields,
        )

    def _fetch(self) -> asyncio.Task | None:
        if not self._started:
            return None
        if not self._context.ready:
            _logger.debug("fetch_deferred grid=%s reason=no_host", self._page.page_id)
            return None
        self._fetched_host = self._context.host_id
        return self._fetcher.request(self._query_state, self._context)

    def start(self) -> asyncio.Task | None:
        """Go live; fetches at once if the host identity is already known."""
        if self._started:
            return None
        self._started = True
        return self._fetch()

    def set_context(self, context: RequestContext) -> asyncio.Task | None:
        self._context = context
        if not context.ready or self._fetched_host == context.host_id:
            return None
        return self._fetch()

    def on_query_state_change(self, query_state: QueryState) -> asyncio.Task | None:
        if query_state == self._query_state:
            return None
        self._query_state = query_state
        return self._fetch()

    def update_query(self, partial: Mapping[str, Any] | None = None, **changes: Any) -> asyncio.Task | None:
        return self.on_query_state_change(self._query_state.with_change(partial, **changes))

    def go_to_page(self, page_index: int) -> asyncio.Task | None:
        return self.on_query_state_change(self._query_state.with_page(page_index))

    def refetch(self) -> asyncio.Task | None:
        return self._fetch()

    def _message(self, template: str, row: Mapping[str, Any]) -> str:
        ctx = dict(row)
        ctx.setdefault("label", self._page.label)
        return self._render(template, ctx)

    async def delete(self, row: Row) -> MutationOutcome:
        page = self._page
        if not page.delete_action:
            raise ValueError(f"page {page.page_id} has no delete action")

        def build_command(target: Row) -> TransportRequest:
            payload = command_payload(target, page.delete_fields, page.identity_fields, page.version_field)
            return encode_command(self._resource, page.delete_action, payload, self._context)

        messages = MutationMessages(
            confirm=self._message(page.confirm_template, row),
            failure=self._message(page.failure_template, row),
            network_failure=self._message(page.network_failure_template, row),
        )
        return await self._mutations.mutate(row, KIND_DELETE, build_command, messages)

    async def refresh_one(self, row: Row) -> Row | None:
        """Load the latest copy of ``row`` before handing it to an update form."""
        page = self._page
        if not page.fresh_action:
            return dict(row)
        self._refreshing_key = row_key(row, page.identity_fields)
        try:
            request = encode_fresh(self._resource, page.fresh_action, row, self._context)
            try:
                response = await self._transport.send(request)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                _logger.warning("refresh_failed grid=%s key=%s error=%s", page.page_id, self._refreshing_key, exc)
                self._notify(self._message(page.refresh_failure_template, row))
                return None
            error = error_payload(response)
            if error is not None or not isinstance(response.body, dict):
                _logger.info("refresh_rejected grid=%s key=%s error=%s", page.page_id, self._refreshing_key, describe_error(error))
                self._notify(self._message(page.refresh_failure_template, row))
                return None
            return dict(response.body)
        finally:
            self._refreshing_key = None

    async def drain(self) -> None:
        await self._fetcher.drain()

    def close(self) -> None:
        self._fetcher.close()
