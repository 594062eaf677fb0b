"""Result set and view-state value types shared by the grid components."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Mapping, Sequence, Tuple


Row = Dict[str, Any]

STATE_IDLE = "idle"
STATE_LOADING = "loading"
STATE_REFETCHING = "refetching"
STATE_ERROR = "error"


@dataclass(frozen=True)
class GridResult:
    rows: Tuple[Row, ...] = ()
    total: int = 0

    @classmethod
    def from_rows(cls, rows: Iterable[Mapping[str, Any]], total: int) -> "GridResult":
        return cls(rows=tuple(copy.deepcopy(dict(r)) for r in rows), total=max(int(total), 0))

    def __len__(self) -> int:
        return len(self.rows)


def row_key(row: Mapping[str, Any], identity_fields: Sequence[str]) -> Tuple[Any, ...]:
    """Identity of a row; composite when the page names several fields."""
    return tuple(row.get(name) for name in identity_fields)


def without_row(result: GridResult, key: Tuple[Any, ...], identity_fields: Sequence[str]) -> GridResult | None:
    """Drop the row with ``key`` and decrement total, or None if absent."""
    kept = tuple(r for r in result.rows if row_key(r, identity_fields) != key)
    if len(kept) == len(result.rows):
        return None
    removed = len(result.rows) - len(kept)
    return GridResult(rows=kept, total=max(result.total - removed, 0))


@dataclass(frozen=True)
class GridView:
    """Everything the presentation layer renders for one grid."""

    result: GridResult = field(default_factory=GridResult)
    is_loading: bool = False
    is_refetching: bool = False
    is_error: bool = False
    has_result: bool = False

    @property
    def rows(self) -> Tuple[Row, ...]:
        return self.result.rows

    @property
    def total(self) -> int:
        return self.result.total

    @property
    def state(self) -> str:
        if self.is_loading:
            return STATE_LOADING
        if self.is_refetching:
            return STATE_REFETCHING
        if self.is_error:
            return STATE_ERROR
        return STATE_IDLE

    def evolve(self, **changes: Any) -> "GridView":
        return replace(self, **changes)
