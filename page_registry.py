"""Declarative configuration for the portal's admin list pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple

from command_encoder import DEFAULT_API_HOST, DEFAULT_API_VERSION, DEFAULT_COMMAND_PATH, DEFAULT_QUERY_PATH, GridResource
from portalgrid.query_state import DEFAULT_PAGE_SIZE, QueryState


@dataclass
class PageRegistryError(Exception):
    code: str
    message: str
    path: str | None = None

    def __str__(self) -> str:  # pragma: no cover - simple formatting
        base = f"{self.code}: {self.message}"
        return f"{base} (path={self.path})" if self.path else base


@dataclass(frozen=True)
class GridPage:
    page_id: str
    service: str
    query_action: str
    rows_key: str
    identity_fields: Tuple[str, ...]
    label: str
    delete_action: str | None = None
    fresh_action: str | None = None
    version_field: str = "aggregateVersion"
    boolean_fields: Tuple[str, ...] = ()
    default_filters: Tuple[Tuple[str, Any], ...] = ()
    default_page_size: int = DEFAULT_PAGE_SIZE
    # None sends the whole row as the delete payload
    delete_fields: Tuple[str, ...] | None = None
    confirm_template: str = "Are you sure you want to delete this {{ label }}?"
    failure_template: str = "Failed to delete {{ label }}. Please try again."
    network_failure_template: str = "Failed to delete {{ label }} due to a network error."
    refresh_failure_template: str = "Could not load the latest {{ label }} data. Please try again."
    api_host: str = DEFAULT_API_HOST
    api_version: str = DEFAULT_API_VERSION
    query_path: str = DEFAULT_QUERY_PATH
    command_path: str = DEFAULT_COMMAND_PATH

    @property
    def resource(self) -> GridResource:
        return GridResource(
            service=self.service,
            host=self.api_host,
            version=self.api_version,
            query_path=self.query_path,
            command_path=self.command_path,
        )


def initial_query_state(page: GridPage, prefilter: Mapping[str, Any] | None = None, page_size: int | None = None) -> QueryState:
    """Starting state for a page: its default filters, then navigation prefilters.

    Prefilter entries with falsy values are dropped, so an empty form field
    carried over from a detail page does not narrow the list.
    """
    filters: Dict[str, Any] = dict(page.default_filters)
    for name, value in (prefilter or {}).items():
        if value:
            filters[name] = value
    return QueryState.create(limit=page_size or page.default_page_size, column_filters=filters)


TemplateCheck = Callable[[Iterable[Tuple[str, str | None]]], List[dict]]

_TEMPLATE_FIELDS = ("confirm_template", "failure_template", "network_failure_template", "refresh_failure_template")


def validate_page(page: GridPage, template_check: TemplateCheck | None = None) -> None:
    for name in ("page_id", "service", "query_action", "rows_key", "label"):
        value = getattr(page, name)
        if not isinstance(value, str) or not value:
            raise PageRegistryError("PAGE_FIELD_INVALID", f"{name} must be non-empty string", name)
    if not page.identity_fields:
        raise PageRegistryError("PAGE_IDENTITY_MISSING", "identity_fields must not be empty", "identity_fields")
    if page.default_page_size <= 0:
        raise PageRegistryError("PAGE_SIZE_INVALID", "default_page_size must be positive", "default_page_size")
    if template_check is not None:
        errors = template_check([(name, getattr(page, name)) for name in _TEMPLATE_FIELDS])
        if errors:
            raise PageRegistryError("PAGE_TEMPLATE_INVALID", errors[0]["message"], page.page_id)


class PageRegistry:
    def __init__(self, template_check: TemplateCheck | None = None) -> None:
        self._template_check = template_check
        self._pages: Dict[str, GridPage] = {}

    def register(self, page: GridPage) -> GridPage:
        validate_page(page, self._template_check)
        if page.page_id in self._pages:
            raise PageRegistryError("PAGE_ALREADY_REGISTERED", "page already registered", page.page_id)
        self._pages[page.page_id] = page
        return page

    def get(self, page_id: str) -> GridPage:
        page = self._pages.get(page_id)
        if page is None:
            raise PageRegistryError("PAGE_NOT_FOUND", "unknown page", page_id)
        return page

    def list(self) -> list[GridPage]:
        return [self._pages[pid] for pid in sorted(self._pages)]

    def __contains__(self, page_id: object) -> bool:
        return page_id in self._pages


def _named_confirm(label: str, name_field: str) -> str:
    return "Are you sure you want to delete %s: {{ %s }}?" % (label, name_field)


BUILTIN_PAGES: Tuple[GridPage, ...] = (
    GridPage(
        page_id="category",
        service="category",
        query_action="getCategory",
        delete_action="deleteCategory",
        rows_key="categories",
        identity_fields=("categoryId",),
        label="category",
        default_page_size=25,
        delete_fields=("categoryId", "hostId", "aggregateVersion"),
        confirm_template=_named_confirm("category", "categoryName"),
    ),
    GridPage(
        page_id="authClient",
        service="oauth",
        query_action="getClient",
        delete_action="deleteClient",
        rows_key="clients",
        identity_fields=("clientId",),
        label="client",
        boolean_fields=("active",),
        confirm_template=_named_confirm("client", "clientName"),
    ),
    GridPage(
        page_id="authProvider",
        service="oauth",
        query_action="getProvider",
        delete_action="deleteProvider",
        rows_key="providers",
        identity_fields=("providerId",),
        label="provider",
        confirm_template=_named_confirm("provider", "providerName"),
    ),
    GridPage(
        page_id="providerClient",
        service="oauth",
        query_action="getProviderClient",
        delete_action="deleteProviderClient",
        rows_key="authProviderClients",
        identity_fields=("hostId", "clientId", "providerId"),
        label="provider client",
    ),
    GridPage(
        page_id="refreshToken",
        service="oauth",
        query_action="getRefreshToken",
        delete_action="deleteRefreshToken",
        rows_key="tokens",
        identity_fields=("refreshToken",),
        label="refresh token",
    ),
    GridPage(
        page_id="configInstanceApi",
        service="config",
        query_action="getConfigInstanceApi",
        delete_action="deleteConfigInstanceApi",
        fresh_action="getFreshConfigInstanceApi",
        rows_key="instanceApis",
        identity_fields=("instanceApiId", "configId", "propertyName"),
        label="config instance api property",
        boolean_fields=("active", "isKafkaApp"),
        default_filters=(("active", "true"),),
        confirm_template="Are you sure you want to delete this property from the instance API?",
    ),
    GridPage(
        page_id="configInstanceApp",
        service="config",
        query_action="getConfigInstanceApp",
        delete_action="deleteConfigInstanceApp",
        rows_key="instanceApps",
        identity_fields=("instanceAppId", "configId", "propertyName"),
        label="config instance app property",
        boolean_fields=("active",),
        default_filters=(("active", "true"),),
        confirm_template="Are you sure you want to delete this property from the instance app?",
    ),
    GridPage(
        page_id="configEnvironment",
        service="config",
        query_action="getConfigEnvironment",
        delete_action="deleteConfigEnvironment",
        rows_key="configEnvironments",
        identity_fields=("environment", "configId", "propertyName"),
        label="environment property",
    ),
    GridPage(
        page_id="deploymentInstance",
        service="deployment",
        query_action="getDeploymentInstance",
        delete_action="deleteDeploymentInstance",
        rows_key="deploymentInstances",
        identity_fields=("deploymentInstanceId",),
        label="deployment instance",
        confirm_template=_named_confirm("deployment instance", "deploymentInstanceId"),
    ),
    GridPage(
        page_id="instanceApp",
        service="instance",
        query_action="getInstanceApp",
        delete_action="deleteInstanceApp",
        rows_key="instanceApps",
        identity_fields=("instanceAppId",),
        label="instance app",
        boolean_fields=("active",),
    ),
    GridPage(
        page_id="instanceApiPathPrefix",
        service="instance",
        query_action="getInstanceApiPathPrefix",
        delete_action="deleteInstanceApiPathPrefix",
        rows_key="instanceApiPathPrefixes",
        identity_fields=("instanceApiId", "pathPrefix"),
        label="path prefix",
    ),
    GridPage(
        page_id="user",
        service="user",
        query_action="listUserByHostId",
        delete_action="deleteUserById",
        fresh_action="getUserById",
        rows_key="users",
        identity_fields=("userId",),
        label="user",
        boolean_fields=("verified", "locked"),
        delete_fields=("hostId", "userId"),
        confirm_template=_named_confirm("user", "email"),
    ),
    GridPage(
        page_id="hostUser",
        service="host",
        query_action="getUserHost",
        delete_action="deleteUserHost",
        rows_key="userHosts",
        identity_fields=("hostId", "userId"),
        label="user host",
    ),
    GridPage(
        page_id="refTable",
        service="ref",
        query_action="getRefTable",
        delete_action="deleteRefTable",
        rows_key="refTables",
        identity_fields=("tableId",),
        label="reference table",
        boolean_fields=("active", "editable", "common"),
        confirm_template=_named_confirm("reference table", "tableName"),
    ),
    GridPage(
        page_id="refLocale",
        service="ref",
        query_action="getRefLocale",
        delete_action="deleteRefLocale",
        rows_key="locales",
        identity_fields=("valueId", "language"),
        label="locale",
    ),
    GridPage(
        page_id="schema",
        service="schema",
        query_action="getSchema",
        delete_action="deleteJsonSchema",
        fresh_action="getFreshSchema",
        rows_key="schemas",
        identity_fields=("schemaId",),
        label="schema",
        confirm_template=_named_confirm("schema", "schemaId"),
    ),
    GridPage(
        page_id="groupRowFilter",
        service="group",
        query_action="getGroupRowFilter",
        delete_action="deleteGroupRowFilter",
        fresh_action="getFreshGroupRowFilter",
        rows_key="groupRowFilters",
        identity_fields=("groupId", "endpointId", "colName"),
        label="group row filter",
    ),
    GridPage(
        page_id="rule",
        service="rule",
        query_action="getRule",
        delete_action="deleteRule",
        rows_key="rules",
        identity_fields=("ruleId",),
        label="rule",
        confirm_template=_named_confirm("rule", "ruleId"),
    ),
)


def default_registry(template_check: TemplateCheck | None = None) -> PageRegistry:
    registry = PageRegistry(template_check)
    for page in BUILTIN_PAGES:
        registry.register(page)
    return registry
