"""Role/permission resolution engine.

The engine is a store (built with :func:`arkestone.store.create_store`)
whose custom actions are ``configure`` and ``check``. ``check`` is a pure
decision over the configured groups and permissions:

* a requirement matching one of the user's roles passes;
* a requirement naming a group passes when the group shares a role with
  the user;
* a requirement passes when any user role lists it as a permission, either
  literally or through an entry ending in ``*`` whose prefix starts the
  requirement. The wildcard is a plain string-prefix test, so
  ``"product.*"`` also grants ``"product.editor"``.

Until :func:`configure` has completed every check is ``False``.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from arkestone.exceptions import AccessDeniedError
from arkestone.registry import get_store
from arkestone.storage import Storage
from arkestone.store import SetState, State, Store, create_store

_logger = logging.getLogger(__name__)

ACL_STORE_NAME = "acl-system"

Role = str
Permission = str
Accessor = str | Iterable[str]

N = TypeVar("N")


class AccessMode(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"


class AccessStatus(StrEnum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    READY = "ready"


class RemoteAccessConfig(BaseModel):
    """Partial configuration returned by a remote fetcher."""

    model_config = ConfigDict(extra="ignore")

    groups: dict[str, list[Role]] = Field(default_factory=dict)
    permissions: dict[Role, list[Permission]] = Field(default_factory=dict)


class AccessConfig(BaseModel):
    """Access configuration supplied by the host application.

    Parameters
    ----------
    mode : AccessMode
        ``remote`` additionally awaits ``fetch_remote_config`` in
        :func:`configure`.
    groups : dict
        ``{"staff": ["admin", "manager"]}``.
    permissions : dict
        ``{"manager": ["product.create", "product.*"]}``.
    fetch_remote_config : callable or None
        Zero-argument callable (sync or async) returning a mapping with
        optional ``groups`` and ``permissions``. Never stored in state.
    """

    model_config = ConfigDict(extra="ignore")

    mode: AccessMode = AccessMode.LOCAL
    groups: dict[str, list[Role]] = Field(default_factory=dict)
    permissions: dict[Role, list[Permission]] = Field(default_factory=dict)
    fetch_remote_config: Callable[[], Any] | None = Field(default=None, exclude=True)


def _initial_state() -> State:
    return {
        "config": AccessConfig().model_dump(mode="json"),
        "status": AccessStatus.UNCONFIGURED.value,
    }


async def _fetch_remote(config: AccessConfig) -> RemoteAccessConfig:
    assert config.fetch_remote_config is not None  # noqa: S101
    remote = config.fetch_remote_config()
    if inspect.isawaitable(remote):
        remote = await remote
    if isinstance(remote, BaseModel):
        remote = remote.model_dump()
    return RemoteAccessConfig.model_validate(remote or {})


def _normalize(accessor: Accessor) -> list[str]:
    if isinstance(accessor, str):
        return [accessor]
    return list(accessor)


def _grants(entry: Permission, requirement: str) -> bool:
    if entry == requirement:
        return True
    return entry.endswith("*") and requirement.startswith(entry[:-1])


def _satisfies(
    requirement: str,
    user_roles: list[Role],
    groups: Mapping[str, list[Role]],
    permissions: Mapping[Role, list[Permission]],
) -> bool:
    if requirement in user_roles:
        return True

    group_roles = groups.get(requirement)
    if group_roles and any(role in group_roles for role in user_roles):
        return True

    for role in user_roles:
        if any(_grants(entry, requirement) for entry in permissions.get(role) or []):
            return True
    return False


def _acl_methods(set_state: SetState, get: Callable[[], Store]) -> dict[str, Any]:
    async def configure(config: AccessConfig | Mapping[str, Any]) -> None:
        """Apply *config*; in remote mode merge the fetched groups and permissions first."""
        access = config if isinstance(config, AccessConfig) else AccessConfig.model_validate(config)

        def mark_configuring(state: State) -> None:
            state["status"] = AccessStatus.CONFIGURING.value

        set_state(mark_configuring)

        groups = dict(access.groups)
        permissions = dict(access.permissions)
        if access.mode == AccessMode.REMOTE and access.fetch_remote_config is not None:
            try:
                remote = await _fetch_remote(access)
            except Exception:
                _logger.warning("ACL: remote configuration fetch failed; using local configuration", exc_info=True)
            else:
                groups.update(remote.groups)
                permissions.update(remote.permissions)

        final = access.model_copy(update={"groups": groups, "permissions": permissions})

        def mark_ready(state: State) -> None:
            state["config"] = final.model_dump(mode="json")
            state["status"] = AccessStatus.READY.value

        set_state(mark_ready)
        _logger.debug("ACL configured mode=%s groups=%d roles=%d", final.mode, len(groups), len(permissions))

    def check(user_roles: Iterable[Role], accessor: Accessor, match_all: bool = False) -> bool:
        """Return ``True`` when *user_roles* satisfy *accessor* (all of it with *match_all*)."""
        store = get()
        if store.select("status") != AccessStatus.READY:
            return False

        config = store.select("config") or {}
        groups = config.get("groups") or {}
        permissions = config.get("permissions") or {}
        roles = list(user_roles)

        results = (_satisfies(req, roles, groups, permissions) for req in _normalize(accessor))
        return all(results) if match_all else any(results)

    return {"configure": configure, "check": check}


def create_acl_store(*, persist_name: str | None = None, storage: Storage | None = None) -> Store:
    """Build an access-control engine on a fresh store."""
    return create_store(_initial_state(), persist_name=persist_name, methods=_acl_methods, storage=storage)


def get_acl_store() -> Store:
    """Return the process-wide access-control engine."""
    return get_store(ACL_STORE_NAME, create_acl_store)


def is_ready(store: Store | None = None) -> bool:
    store = store if store is not None else get_acl_store()
    return store.select("status") == AccessStatus.READY


async def configure(config: AccessConfig | Mapping[str, Any], store: Store | None = None) -> None:
    """Configure the process-wide engine (or *store*)."""
    store = store if store is not None else get_acl_store()
    await store.configure(config)


def check(
    user_roles: Iterable[Role],
    accessor: Accessor,
    match_all: bool = False,
    store: Store | None = None,
) -> bool:
    store = store if store is not None else get_acl_store()
    return bool(store.check(user_roles, accessor, match_all))


@dataclass(frozen=True)
class Access:
    """UI-facing access helpers bound to one user's roles."""

    user_roles: tuple[Role, ...]
    store: Store

    @property
    def is_ready(self) -> bool:
        return is_ready(self.store)

    def can(self, accessor: Accessor, match_all: bool = False) -> bool:
        if not self.is_ready or not self.user_roles:
            return False
        return check(self.user_roles, accessor, match_all, store=self.store)

    def must(self, accessor: Accessor, message: str = "Access Denied") -> None:
        if not self.can(accessor):
            raise AccessDeniedError(message)

    def can_render(self, node: N, accessor: Accessor, match_all: bool = False) -> N | None:
        """Return *node* when access is granted, otherwise ``None``."""
        return node if check(self.user_roles, accessor, match_all, store=self.store) else None


def use_access(user_roles: Iterable[Role] = (), store: Store | None = None) -> Access:
    return Access(user_roles=tuple(user_roles), store=store if store is not None else get_acl_store())
