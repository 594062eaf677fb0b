"""Dev portal entry point: ``uvicorn app.main:app``."""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List

from fastapi.middleware.cors import CORSMiddleware

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def _load_env_file(path: Path) -> None:
    if not path.exists():
        return
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


_load_env_file(ROOT / "app" / ".env")

from app import settings
from app.dev_portal import DevPortalStore, create_app
from app.template_render import validate_templates
from page_registry import PageRegistry, default_registry


logger = logging.getLogger("portalgrid.dev_portal")
_LOCAL_CORS_REGEX = r"^http://(localhost|127\.0\.0\.1):\d+$"


def load_seed(path: str | Path) -> Dict[str, List[dict]]:
    """Seed file maps page ids to the rows each in-memory table starts with."""
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("seed file must hold an object keyed by page id")
    seed: Dict[str, List[dict]] = {}
    for page_id, rows in raw.items():
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise ValueError(f"seed rows for {page_id} must be a list of objects")
        seed[page_id] = rows
    return seed


def build_store(seed: Dict[str, Any] | None = None, registry: PageRegistry | None = None) -> DevPortalStore:
    registry = registry or default_registry(validate_templates)
    store = DevPortalStore()
    seed = seed or {}
    for page in registry.list():
        store.add_table(page, seed.get(page.page_id, []))
    unknown = sorted(set(seed) - {page.page_id for page in registry.list()})
    if unknown:
        logger.warning("dev_seed_unknown_pages pages=%s", ",".join(unknown))
    return store


def build_app():
    settings.configure_logging()
    seed_file = settings.dev_portal_seed_file()
    store = build_store(load_seed(seed_file) if seed_file else None)
    portal = create_app(store)
    portal.add_middleware(
        CORSMiddleware,
        allow_origins=sorted(settings.cors_origins()),
        allow_origin_regex=_LOCAL_CORS_REGEX,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    logger.info("dev_portal_ready seed=%s", seed_file or "-")
    return portal


app = build_app()
