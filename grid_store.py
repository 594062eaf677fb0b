"""Holder of the single GridView tuple owned by one grid controller."""

from __future__ import annotations

import logging
from typing import Callable, List

from portalgrid.grid_result import GridResult, GridView


Listener = Callable[[GridView], None]

_logger = logging.getLogger("portalgrid.store")


class GridStore:
    """Every write replaces the whole view, so readers never see a half update."""

    def __init__(self, view: GridView | None = None) -> None:
        self._view = view or GridView()
        self._listeners: List[Listener] = []

    @property
    def view(self) -> GridView:
        return self._view

    @property
    def result(self) -> GridResult:
        return self._view.result

    def replace(self, view: GridView) -> GridView:
        previous = self._view
        self._view = view
        if view != previous:
            self._notify(view)
        return previous

    def update(self, **changes) -> GridView:
        self.replace(self._view.evolve(**changes))
        return self._view

    def subscribe(self, listener: Listener) -> Callable[[], bool]:
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        try:
            self._listeners.remove(listener)
            return True
        except ValueError:
            return False

    def _notify(self, view: GridView) -> None:
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                _logger.exception("grid_listener_failed listener=%r", listener)
