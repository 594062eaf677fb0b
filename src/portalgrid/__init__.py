"""Portal grid kernel value types."""

from .canonical_json import WireJsonTypeError, wire_dumps
from .grid_result import GridResult, GridView, row_key
from .query_state import ColumnFilter, Pagination, QueryState, QueryStateError, SortSpec

__all__ = [
    "ColumnFilter",
    "GridResult",
    "GridView",
    "Pagination",
    "QueryState",
    "QueryStateError",
    "SortSpec",
    "WireJsonTypeError",
    "row_key",
    "wire_dumps",
]
