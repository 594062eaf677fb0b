"""Environment configuration for the grid client and the dev portal."""

from __future__ import annotations

import logging
import os


def portal_base_url() -> str:
    return (os.getenv("PORTAL_BASE_URL") or "http://localhost:8080").strip().rstrip("/")


def query_path() -> str:
    return (os.getenv("PORTAL_QUERY_PATH") or "/portal/query").strip()


def command_path() -> str:
    return (os.getenv("PORTAL_COMMAND_PATH") or "/portal/command").strip()


def api_host() -> str:
    return (os.getenv("PORTAL_API_HOST") or "lightapi.net").strip()


def api_version() -> str:
    return (os.getenv("PORTAL_API_VERSION") or "0.1.0").strip()


def request_timeout() -> float | None:
    """Seconds before a portal call fails; empty means wait indefinitely."""
    raw = os.getenv("PORTAL_TIMEOUT_SECONDS", "30").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return 30.0
    return value if value > 0 else None


def page_size() -> int | None:
    raw = os.getenv("PORTALGRID_PAGE_SIZE", "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        return None
    return int(raw)


def filter_debounce_seconds() -> float:
    raw = os.getenv("PORTALGRID_FILTER_DEBOUNCE_MS", "1000").strip()
    try:
        return max(float(raw), 0.0) / 1000.0
    except ValueError:
        return 1.0


def dev_portal_csrf_token() -> str | None:
    return os.getenv("DEV_PORTAL_CSRF_TOKEN", "").strip() or None


def log_level() -> int:
    name = os.getenv("PORTALGRID_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    logging.basicConfig(level=log_level())
    logging.getLogger("portalgrid").setLevel(log_level())


def dev_portal_seed_file() -> str | None:
    return os.getenv("DEV_PORTAL_SEED_FILE", "").strip() or None


def cors_origins() -> set[str]:
    return {
        origin.strip().rstrip("/")
        for origin in os.getenv("PORTALGRID_CORS_ORIGINS", "").split(",")
        if origin.strip()
    }
