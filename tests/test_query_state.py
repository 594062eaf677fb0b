import os
import sys
import unittest


ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from portalgrid.query_state import ColumnFilter, QueryState, QueryStateError, SortSpec


class TestQueryState(unittest.TestCase):
    def _on_page_three(self) -> QueryState:
        return QueryState.create(offset=20, limit=10, sorting=[("name", "asc")], column_filters={"active": True}, global_filter="ab")

    def test_defaults(self) -> None:
        state = QueryState()
        self.assertEqual(state.offset, 0)
        self.assertEqual(state.limit, 10)
        self.assertEqual(state.sorting, ())
        self.assertEqual(state.column_filters, ())
        self.assertEqual(state.global_filter, "")

    def test_changes_that_alter_result_set_reset_offset(self) -> None:
        base = self._on_page_three()
        changes = [
            {"limit": 25},
            {"sorting": [("name", "desc")]},
            {"sorting": []},
            {"column_filters": {"active": False}},
            {"column_filters": []},
            {"global_filter": "abc"},
            {"global_filter": ""},
        ]
        for change in changes:
            with self.subTest(change=change):
                self.assertEqual(base.with_change(change).offset, 0)

    def test_reset_wins_over_explicit_offset(self) -> None:
        base = self._on_page_three()
        state = base.with_change(offset=30, global_filter="xyz")
        self.assertEqual(state.offset, 0)

    def test_offset_only_change_keeps_everything_else(self) -> None:
        base = self._on_page_three()
        state = base.with_change(offset=40)
        self.assertEqual(state.offset, 40)
        self.assertEqual(state.limit, base.limit)
        self.assertEqual(state.sorting, base.sorting)
        self.assertEqual(state.column_filters, base.column_filters)
        self.assertEqual(state.global_filter, base.global_filter)

    def test_unchanged_values_are_not_a_change(self) -> None:
        base = self._on_page_three()
        state = base.with_change(limit=10, global_filter="ab", column_filters={"active": True})
        self.assertEqual(state.offset, 20)
        self.assertEqual(state, base)

    def test_with_change_returns_new_snapshot(self) -> None:
        base = QueryState()
        state = base.with_change(offset=10)
        self.assertIsNot(state, base)
        self.assertEqual(base.offset, 0)

    def test_filters_unique_per_field_last_write_wins(self) -> None:
        state = QueryState.create(column_filters=[("active", "true"), ("name", "x"), ("active", "false")])
        self.assertEqual(state.column_filters, (ColumnFilter("name", "x"), ColumnFilter("active", "false")))
        self.assertEqual(state.filter_value("active"), "false")

    def test_empty_filter_value_clears_field(self) -> None:
        state = QueryState.create(column_filters={"name": "x", "active": False})
        cleared = state.with_change(column_filters=[*state.column_filters, ColumnFilter("name", "")])
        self.assertIsNone(cleared.filter_value("name"))
        self.assertIs(cleared.filter_value("active"), False)

    def test_sorting_accepts_table_widget_shape(self) -> None:
        state = QueryState.create(sorting=[{"id": "name", "desc": True}, {"field": "id", "direction": "asc"}])
        self.assertEqual(state.sorting, (SortSpec("name", "desc"), SortSpec("id", "asc")))

    def test_invalid_values_raise(self) -> None:
        with self.assertRaises(QueryStateError):
            QueryState.create(offset=-1)
        with self.assertRaises(QueryStateError):
            QueryState.create(limit=0)
        with self.assertRaises(QueryStateError):
            SortSpec("name", "sideways")
        with self.assertRaises(QueryStateError):
            QueryState().with_change(page=2)

    def test_with_page_aligns_offset_to_limit(self) -> None:
        state = QueryState.create(limit=25).with_page(3)
        self.assertEqual(state.offset, 75)
        self.assertEqual(state.page_index, 3)


if __name__ == "__main__":
    unittest.main()
