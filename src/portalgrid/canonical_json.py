"""Deterministic JSON for wire envelopes."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from typing import Any


class WireJsonTypeError(TypeError):
    """Raised when a value cannot travel inside an envelope."""


def _normalize(obj: Any, path: str = "$") -> Any:
    if isinstance(obj, Mapping):
        out = {}
        for key, value in obj.items():
            if not isinstance(key, str):
                raise WireJsonTypeError(f"Unsupported key type at {path}: {type(key).__name__}")
            out[key] = _normalize(value, f"{path}.{key}")
        return out
    if isinstance(obj, (list, tuple)):
        return [_normalize(item, f"{path}[{idx}]") for idx, item in enumerate(obj)]
    if obj is None or isinstance(obj, (str, bool, int)):
        return obj
    if isinstance(obj, float):
        if not math.isfinite(obj):
            raise ValueError(f"Non-finite float at {path}: {obj!r}")
        return obj
    raise WireJsonTypeError(f"Unsupported type at {path}: {type(obj).__name__}")


def wire_dumps(obj: Any) -> str:
    """Serialize to compact JSON with sorted keys.

    Tuples are written as arrays so frozen value types can be passed
    straight through. The same input always yields the same string.
    """
    return json.dumps(
        _normalize(obj),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        allow_nan=False,
    )
