"""Process-wide registry of named stores.

Stores that behave as application singletons (configuration, access
control) are created on first access through :func:`get_store` and then
shared by every caller. Creation is check-then-create, which is race free
on a single event loop.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable

from arkestone.store import Store

_logger = logging.getLogger(__name__)

_stores: dict[Hashable, Store] = {}


def get_store(key: Hashable, factory: Callable[[], Store]) -> Store:
    """Return the store registered under *key*, creating it with *factory* once."""
    store = _stores.get(key)
    if store is None:
        _logger.debug("Registering store %r", key)
        store = factory()
        _stores[key] = store
    return store


def has_store(key: Hashable) -> bool:
    return key in _stores


def clear_stores() -> None:
    """Forget every registered store (next access recreates it)."""
    _stores.clear()
