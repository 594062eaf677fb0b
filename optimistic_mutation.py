"""Optimistic row mutations with rollback on failure."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Sequence, Union

from command_encoder import TransportRequest
from grid_store import GridStore
from portal_transport import Transport, describe_error, error_payload
from portalgrid.grid_result import GridResult, Row, row_key, without_row


KIND_DELETE = "delete"
KIND_UPDATE = "update"
MUTATION_KINDS = (KIND_DELETE, KIND_UPDATE)

COMMITTED = "committed"
ROLLED_BACK = "rolled_back"
CANCELLED = "cancelled"
NOT_FOUND = "not_found"

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]
Notify = Callable[[str], None]
CommandFactory = Callable[[Row], TransportRequest]

_logger = logging.getLogger("portalgrid.mutation")


@dataclass
class MutationRecord:
    row: Row
    kind: str
    snapshot_before_mutation: GridResult


@dataclass(frozen=True)
class MutationMessages:
    confirm: str = "Are you sure?"
    failure: str = "The change could not be saved. Please try again."
    network_failure: str = "The change could not be saved due to a network error."


@dataclass(frozen=True)
class MutationOutcome:
    status: str
    notice: str | None = None
    error: Any = None

    @property
    def committed(self) -> bool:
        return self.status == COMMITTED


def command_payload(
    row: Mapping[str, Any],
    fields: Iterable[str] | None,
    identity_fields: Sequence[str],
    version_field: str | None,
) -> Dict[str, Any]:
    """Payload for a write command; always carries identity and version token."""
    if fields is None:
        payload = dict(row)
    else:
        payload = {name: row.get(name) for name in fields if name in row}
    for name in identity_fields:
        payload.setdefault(name, row.get(name))
    if version_field:
        payload.setdefault(version_field, row.get(version_field))
    return payload


class OptimisticMutationExecutor:
    def __init__(
        self,
        store: GridStore,
        transport: Transport,
        identity_fields: Sequence[str],
        confirm: Confirm,
        notify: Notify,
        name: str = "grid",
    ) -> None:
        if not identity_fields:
            raise ValueError("identity_fields must not be empty")
        self._store = store
        self._transport = transport
        self._identity_fields = tuple(identity_fields)
        self._confirm = confirm
        self._notify = notify
        self._name = name
        self._lock = asyncio.Lock()

    async def _confirmed(self, message: str) -> bool:
        answer = self._confirm(message)
        if inspect.isawaitable(answer):
            answer = await answer
        return bool(answer)

    async def mutate(
        self,
        row: Row,
        kind: str,
        command_factory: CommandFactory,
        messages: MutationMessages | None = None,
    ) -> MutationOutcome:
        if kind not in MUTATION_KINDS:
            raise ValueError(f"unknown mutation kind: {kind}")
        messages = messages or MutationMessages()
        if not await self._confirmed(messages.confirm):
            return MutationOutcome(CANCELLED)

        async with self._lock:
            key = row_key(row, self._identity_fields)
            record = MutationRecord(row=row, kind=kind, snapshot_before_mutation=self._store.result)
            applied: GridResult | None = None
            if kind == KIND_DELETE:
                applied = without_row(record.snapshot_before_mutation, key, self._identity_fields)
                if applied is None:
                    _logger.info("mutation_row_missing grid=%s key=%s", self._name, key)
                    return MutationOutcome(NOT_FOUND)
                self._store.replace(self._store.view.evolve(result=applied))

            try:
                request = command_factory(row)
                response = await self._transport.send(request)
            except asyncio.CancelledError:
                self._rollback(record, applied)
                raise
            except Exception as exc:
                _logger.warning("mutation_failed grid=%s kind=%s key=%s error=%s", self._name, kind, key, exc)
                self._rollback(record, applied)
                self._notify(messages.network_failure)
                return MutationOutcome(ROLLED_BACK, notice=messages.network_failure, error=str(exc))

            error = error_payload(response)
            if error is not None:
                _logger.info(
                    "mutation_rejected grid=%s kind=%s key=%s status=%s error=%s",
                    self._name, kind, key, response.status_code, describe_error(error),
                )
                self._rollback(record, applied)
                self._notify(messages.failure)
                return MutationOutcome(ROLLED_BACK, notice=messages.failure, error=error)

            if applied is not None and self._store.result is not applied:
                # a read that left the server before the delete may have restored the row
                current = without_row(self._store.result, key, self._identity_fields)
                if current is not None:
                    self._store.replace(self._store.view.evolve(result=current))
            _logger.info("mutation_committed grid=%s kind=%s key=%s", self._name, kind, key)
            return MutationOutcome(COMMITTED)

    def _rollback(self, record: MutationRecord, applied: GridResult | None) -> None:
        if applied is None:
            return
        if self._store.result is not applied:
            # a read committed after the optimistic change; its data wins
            _logger.info("mutation_rollback_skipped grid=%s kind=%s", self._name, record.kind)
            return
        self._store.replace(self._store.view.evolve(result=record.snapshot_before_mutation))
