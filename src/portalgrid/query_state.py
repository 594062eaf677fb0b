"""Immutable description of the slice of data a grid wants."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping, Tuple, Union


FilterValue = Union[str, bool, int, float]

SORT_DIRECTIONS = ("asc", "desc")
DEFAULT_PAGE_SIZE = 10


class QueryStateError(ValueError):
    pass


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = "asc"

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field:
            raise QueryStateError("sort field must be non-empty string")
        if self.direction not in SORT_DIRECTIONS:
            raise QueryStateError(f"sort direction must be one of {SORT_DIRECTIONS}")

    @property
    def desc(self) -> bool:
        return self.direction == "desc"


@dataclass(frozen=True)
class ColumnFilter:
    field: str
    value: FilterValue


@dataclass(frozen=True)
class Pagination:
    offset: int = 0
    limit: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if isinstance(self.offset, bool) or not isinstance(self.offset, int) or self.offset < 0:
            raise QueryStateError("offset must be a non-negative int")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit <= 0:
            raise QueryStateError("limit must be a positive int")


def _coerce_sort(item: Any) -> SortSpec:
    if isinstance(item, SortSpec):
        return item
    if isinstance(item, Mapping):
        # accepts both {"field", "direction"} and the table widget's {"id", "desc"}
        name = item.get("field", item.get("id"))
        if "direction" in item:
            return SortSpec(name, item["direction"])
        return SortSpec(name, "desc" if item.get("desc") else "asc")
    if isinstance(item, (tuple, list)) and len(item) == 2:
        return SortSpec(item[0], item[1])
    raise QueryStateError(f"invalid sort entry: {item!r}")


def normalize_sorting(items: Iterable[Any] | None) -> Tuple[SortSpec, ...]:
    return tuple(_coerce_sort(item) for item in (items or ()))


def normalize_filters(items: Iterable[Any] | Mapping[str, Any] | None) -> Tuple[ColumnFilter, ...]:
    """Collapse filters to one per field; the last write wins.

    A ``None`` or empty-string value clears the field's filter.
    """
    if items is None:
        return ()
    if isinstance(items, Mapping):
        items = [ColumnFilter(k, v) for k, v in items.items()]
    merged: dict[str, FilterValue | None] = {}
    for item in items:
        if isinstance(item, ColumnFilter):
            name, value = item.field, item.value
        elif isinstance(item, Mapping):
            name, value = item.get("field", item.get("id")), item.get("value")
        elif isinstance(item, (tuple, list)) and len(item) == 2:
            name, value = item[0], item[1]
        else:
            raise QueryStateError(f"invalid filter entry: {item!r}")
        if not isinstance(name, str) or not name:
            raise QueryStateError("filter field must be non-empty string")
        merged.pop(name, None)
        merged[name] = value
    return tuple(
        ColumnFilter(name, value)
        for name, value in merged.items()
        if value is not None and value != ""
    )


_RESETTING_KEYS = ("limit", "sorting", "column_filters", "global_filter")
_KNOWN_KEYS = ("offset",) + _RESETTING_KEYS


@dataclass(frozen=True)
class QueryState:
    pagination: Pagination = field(default_factory=Pagination)
    sorting: Tuple[SortSpec, ...] = ()
    column_filters: Tuple[ColumnFilter, ...] = ()
    global_filter: str = ""

    @classmethod
    def create(
        cls,
        offset: int = 0,
        limit: int = DEFAULT_PAGE_SIZE,
        sorting: Iterable[Any] | None = None,
        column_filters: Iterable[Any] | Mapping[str, Any] | None = None,
        global_filter: str | None = "",
    ) -> "QueryState":
        return cls(
            pagination=Pagination(offset, limit),
            sorting=normalize_sorting(sorting),
            column_filters=normalize_filters(column_filters),
            global_filter=global_filter or "",
        )

    @property
    def offset(self) -> int:
        return self.pagination.offset

    @property
    def limit(self) -> int:
        return self.pagination.limit

    @property
    def page_index(self) -> int:
        return self.pagination.offset // self.pagination.limit

    def filter_value(self, name: str) -> FilterValue | None:
        for item in self.column_filters:
            if item.field == name:
                return item.value
        return None

    def with_change(self, partial: Mapping[str, Any] | None = None, **changes: Any) -> "QueryState":
        """Return a new snapshot with ``partial`` applied.

        Changing limit, sorting, column filters or the global filter moves
        back to the first page. An offset-only change leaves the rest alone.
        """
        merged = dict(partial or {})
        merged.update(changes)
        unknown = set(merged) - set(_KNOWN_KEYS)
        if unknown:
            raise QueryStateError(f"unknown query state keys: {sorted(unknown)}")

        limit = merged.get("limit", self.limit)
        sorting = normalize_sorting(merged["sorting"]) if "sorting" in merged else self.sorting
        column_filters = (
            normalize_filters(merged["column_filters"]) if "column_filters" in merged else self.column_filters
        )
        global_filter = (merged.get("global_filter") or "") if "global_filter" in merged else self.global_filter

        reset = (
            limit != self.limit
            or sorting != self.sorting
            or column_filters != self.column_filters
            or global_filter != self.global_filter
        )
        offset = 0 if reset else merged.get("offset", self.offset)
        return replace(
            self,
            pagination=Pagination(offset, limit),
            sorting=sorting,
            column_filters=column_filters,
            global_filter=global_filter,
        )

    def with_page(self, page_index: int) -> "QueryState":
        if isinstance(page_index, bool) or not isinstance(page_index, int) or page_index < 0:
            raise QueryStateError("page index must be a non-negative int")
        return self.with_change(offset=page_index * self.limit)
