"""Wires a registered page to the live portal: transport, context, templates."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Mapping

from app import settings
from app.portal_client import PortalClient
from app.session import request_context
from app.template_render import render_template, validate_templates
from grid_controller import GridController
from optimistic_mutation import Confirm, Notify
from page_registry import GridPage, PageRegistry, default_registry, initial_query_state


def configured_page(page: GridPage) -> GridPage:
    """Apply environment overrides for the portal host, version and paths."""
    return replace(
        page,
        api_host=settings.api_host(),
        api_version=settings.api_version(),
        query_path=settings.query_path(),
        command_path=settings.command_path(),
    )


def build_controller(
    page_id: str,
    client: PortalClient,
    user: Mapping[str, Any] | None,
    confirm: Confirm,
    notify: Notify,
    prefilter: Mapping[str, Any] | None = None,
    registry: PageRegistry | None = None,
) -> GridController:
    page = configured_page((registry or default_registry(validate_templates)).get(page_id))
    return GridController(
        page,
        client,
        render=render_template,
        confirm=confirm,
        notify=notify,
        context=request_context(client.cookies, user),
        query_state=initial_query_state(page, prefilter, page_size=settings.page_size()),
    )
