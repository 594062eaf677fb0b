"""Coalesces bursts of free-text filter input into one query change."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from app import settings


class Debouncer:
    """Calls ``callback`` with the last pushed value once input has been quiet.

    Presentation code pushes every keystroke; the grid controller only sees
    the value that survives ``delay`` seconds without a newer one.
    """

    _UNSET = object()

    def __init__(self, callback: Callable[[Any], Any], delay: float | None = None) -> None:
        self._callback = callback
        self._delay = settings.filter_debounce_seconds() if delay is None else delay
        self._handle: asyncio.TimerHandle | None = None
        self._value: Any = self._UNSET

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._value = value
        self._handle = asyncio.get_running_loop().call_later(self._delay, self._fire)

    def flush(self) -> None:
        if self._handle is None:
            return
        self._handle.cancel()
        self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._value = self._UNSET

    def _fire(self) -> None:
        value, self._value = self._value, self._UNSET
        self._handle = None
        if value is not self._UNSET:
            self._callback(value)
