"""Sandboxed rendering of confirmation and failure notices from row fields."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from jinja2 import TemplateSyntaxError, meta
from jinja2.sandbox import ImmutableSandboxedEnvironment

_ALLOWED_FILTERS = {
    "default",
    "lower",
    "upper",
    "title",
    "trim",
    "replace",
    "truncate",
    "length",
}


class _NoticeSandbox(ImmutableSandboxedEnvironment):
    def is_safe_attribute(self, obj, attr, value) -> bool:
        return False

    def is_safe_callable(self, obj) -> bool:
        return False


def _env(strict: bool) -> _NoticeSandbox:
    if strict:
        from jinja2 import StrictUndefined
        undefined_cls = StrictUndefined
    else:
        from jinja2 import Undefined
        undefined_cls = Undefined
    env = _NoticeSandbox(autoescape=False, undefined=undefined_cls)
    env.globals = {}
    env.filters = {key: val for key, val in env.filters.items() if key in _ALLOWED_FILTERS}
    return env


def _plain(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _plain(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(val) for val in value]
    return str(value)


def render_template(text: str | None, context: Mapping[str, Any], strict: bool = False) -> str:
    """Render ``text`` against a row; unknown fields render empty unless strict."""
    tmpl = _env(strict=strict).from_string(text or "")
    return tmpl.render(_plain(dict(context or {})))


def template_fields(text: str | None) -> set[str]:
    if not text:
        return set()
    return set(meta.find_undeclared_variables(_env(strict=False).parse(text)))


def validate_templates(templates: Iterable[tuple[str, str | None]]) -> list[dict]:
    errors: list[dict] = []
    env = _env(strict=False)
    for label, text in templates:
        if not text:
            continue
        try:
            env.parse(text)
        except TemplateSyntaxError as exc:
            errors.append({"message": f"{label}: {exc.message}", "line": exc.lineno or 1})
    return errors
