"""CRUD service factory.

A :class:`ServiceFactory` binds one REST resource endpoint to (at most)
one lazily created store. It performs the network calls through the
request layer, injects the default notification options centrally and
optionally mirrors list responses into its store.

Usage::

    products = ServiceFactory[Product, ProductIn, ProductPatch](
        ServiceConfig(endpoint="/products", sync_with_store=True, store=StoreConfig())
    )
    await products.get_all({"page": 1})
    products.use_store().state["list"]
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, Field

from arkestone import api as _api
from arkestone.exceptions import ArkestoneConfigError, MissingIdentifierError, StoreNotConfiguredError
from arkestone.storage import Storage
from arkestone.store import Methods, Migrate, State, Store, create_store
from arkestone.transport import Transport

_logger = logging.getLogger(__name__)

T = TypeVar("T")
C = TypeVar("C")
U = TypeVar("U")

HttpMethod = Literal["get", "post", "put", "delete"]
_METHODS: frozenset[str] = frozenset({"get", "post", "put", "delete"})

Identifier = str | int


class ListResponse(BaseModel, Generic[T]):
    """Standard shape of a paginated list response."""

    data: list[T] = Field(default_factory=list)
    meta: Any = None
    links: Any = None


def default_list_state() -> dict[str, Any]:
    return {"list": [], "selected": None, "loading": False}


@dataclass
class StoreConfig:
    """Store configuration for a service binding.

    Without a ``persist_name`` the store lives in memory only.
    """

    initial_state: Mapping[str, Any] = field(default_factory=default_list_state)
    persist_name: str | None = None
    methods: Methods | None = None
    version: int = 0
    migrate: Migrate | None = None
    storage: Storage | None = None


@dataclass
class ServiceConfig:
    """Configuration for one service.

    Parameters
    ----------
    endpoint : str or callable
        Base endpoint (``"/users"``), or a zero-argument callable resolved
        on every request for runtime-computed bases.
    entity_name : str or None
        Name used in log and error messages.
    sync_with_store : bool
        Overwrite ``store["list"]`` with every :meth:`ServiceFactory.get_all` response.
    store : StoreConfig or None
        Enables :meth:`ServiceFactory.use_store`.
    """

    endpoint: str | Callable[[], str]
    entity_name: str | None = None
    sync_with_store: bool = False
    store: StoreConfig | None = None


def _require_id(identifier: Identifier | None, operation: str) -> Identifier:
    if identifier is None or identifier == "":
        raise MissingIdentifierError(f"An id must be provided for {operation}")
    return identifier


class ServiceFactory(Generic[T, C, U]):
    """Universal base for application services.

    ``T`` is the entity type, ``C`` the create payload and ``U`` the update
    payload. Subclasses may override :meth:`_apply_middleware` to inject
    headers or other per-request options.
    """

    def __init__(self, config: ServiceConfig, *, transport: Transport | None = None) -> None:
        self.config = config
        self._transport = transport
        self._store: Store | None = None
        _logger.debug("Service %s instantiated", self.entity_name)

    @property
    def entity_name(self) -> str:
        return self.config.entity_name or "Unknown"

    # ------------------------------------------------------------------
    # Store binding
    # ------------------------------------------------------------------

    def use_store(self) -> Store:
        """Return this service's store, creating it on first access."""
        store_config = self.config.store
        if store_config is None:
            raise StoreNotConfiguredError(f"Store not configured for service: {self.entity_name}")

        if self._store is None:
            _logger.debug("Creating store for service %s", self.entity_name)
            self._store = create_store(
                store_config.initial_state,
                persist_name=store_config.persist_name,
                methods=store_config.methods,
                version=store_config.version,
                migrate=store_config.migrate,
                storage=store_config.storage,
            )
        return self._store

    @property
    def store_api(self) -> State:
        """Snapshot of the bound store's current state."""
        return self.use_store().get_state()

    # ------------------------------------------------------------------
    # Endpoint handling
    # ------------------------------------------------------------------

    def get_endpoint(self, suffix: str = "") -> str:
        """Resolve the base endpoint, drop one trailing slash and append *suffix*."""
        endpoint = self.config.endpoint
        base = endpoint() if callable(endpoint) else endpoint
        if base.endswith("/"):
            base = base[:-1]
        return f"{base}{suffix}"

    # ------------------------------------------------------------------
    # CRUD operations
    # ------------------------------------------------------------------

    async def get_all(self, params: Mapping[str, Any] | None = None, **options: Any) -> Any:
        """Fetch the list (or a page of it).

        With ``sync_with_store`` the store ``list`` is overwritten from the
        response as a side effect.
        """
        merged = self._options({"display_error": True, "display_success": False, "params": dict(params or {})}, options)
        response = await _api.request("get", self.get_endpoint(), **merged)

        if self.config.sync_with_store:
            _logger.debug("Syncing %s list into store", self.entity_name)
            self.use_store().set_state({"list": self._extract_list(response)})

        return response

    async def get_by_id(self, identifier: Identifier, **options: Any) -> T | None:
        identifier = _require_id(identifier, f"{self.entity_name} lookup")
        merged = self._options({"display_error": True, "display_success": False}, options)
        return await _api.request("get", self.get_endpoint(f"/{identifier}"), **merged)

    async def create(self, data: C, **options: Any) -> T | None:
        """Create an entity. The bound store is left untouched."""
        merged = self._options({"data": data, "display_error": True, "display_success": True}, options)
        return await _api.request("post", self.get_endpoint(), **merged)

    async def update(self, identifier: Identifier, data: U, **options: Any) -> T | None:
        """Update an entity. The bound store is left untouched."""
        identifier = _require_id(identifier, f"{self.entity_name} update")
        merged = self._options({"data": data, "display_error": True, "display_success": True}, options)
        return await _api.request("put", self.get_endpoint(f"/{identifier}"), **merged)

    async def delete(self, identifier: Identifier, **options: Any) -> Any:
        """Delete an entity. The bound store is left untouched."""
        identifier = _require_id(identifier, f"{self.entity_name} delete")
        merged = self._options({"display_error": True, "display_success": True}, options)
        return await _api.request("delete", self.get_endpoint(f"/{identifier}"), **merged)

    async def custom_action(self, method: HttpMethod, path: str, **options: Any) -> Any:
        """Call a non-CRUD endpoint below the base, e.g. ``("post", "/1/approve")``."""
        verb = method.lower()
        if verb not in _METHODS:
            raise ArkestoneConfigError(f"Unsupported method for custom action: {method!r}")
        merged = self._options({"display_error": True, "display_success": False}, options)
        return await _api.request(verb, self.get_endpoint(path), **merged)

    # ------------------------------------------------------------------
    # Internals & middleware
    # ------------------------------------------------------------------

    def _apply_middleware(self, options: dict[str, Any]) -> dict[str, Any]:
        """Hook run on the merged options of every request."""
        return options

    def _options(self, defaults: dict[str, Any], options: Mapping[str, Any]) -> dict[str, Any]:
        merged = {**defaults, **options}
        if self._transport is not None:
            merged.setdefault("transport", self._transport)
        return self._apply_middleware(merged)

    def _extract_list(self, response: Any) -> list[Any] | None:
        if isinstance(response, list):
            return response
        if isinstance(response, Mapping) and isinstance(response.get("data"), list):
            return ListResponse[Any].model_validate(response).data
        _logger.warning("%s list response has no list payload; store list cleared", self.entity_name)
        return None
