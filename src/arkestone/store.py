"""Generic state-container factory.

A :class:`Store` holds a ``dict`` snapshot that can only change through
:meth:`Store.update` (or the helpers built on it). Reads always hand out
deep copies, so callers can never mutate the container by accident.

When a ``persist_name`` is supplied the snapshot is loaded once from
durable storage at creation and written back after every commit, as a
JSON document ``{"version": <int>, "state": {...}}``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from arkestone.exceptions import ArkestoneConfigError
from arkestone.storage import Storage, get_default_storage

_logger = logging.getLogger(__name__)

State = dict[str, Any]
Producer = Callable[[State], Mapping[str, Any] | None]
SetState = Callable[[Producer], None]
Listener = Callable[[State, State], None]
Migrate = Callable[[State, int], Mapping[str, Any]]
Methods = Callable[[SetState, Callable[[], "Store"]], Mapping[str, Callable[..., Any]]]


class PersistedSnapshot(BaseModel):
    """On-disk shape of a persisted store."""

    model_config = ConfigDict(extra="ignore")

    version: int = 0
    state: dict[str, Any] = Field(default_factory=dict)


class Store:
    """Mutation-tracked state container.

    Parameters
    ----------
    initial_state : Mapping
        Default snapshot; also the target of :meth:`reset`.
    persist_name : str or None
        Storage key. ``None`` keeps the store purely in memory.
    methods : callable or None
        ``methods(set, get)`` returning a mapping of custom actions.
        ``set`` is :meth:`update`; ``get`` returns this store, so actions
        can read state and call each other.
    version : int
        Current schema version of the persisted snapshot.
    migrate : callable or None
        ``migrate(state, stored_version)`` run when the stored version
        differs from *version*. Without it the stored state is used as-is.
    storage : Storage or None
        Backend for persistence. Defaults to the process-wide storage.
    """

    def __init__(
        self,
        initial_state: Mapping[str, Any],
        *,
        persist_name: str | None = None,
        methods: Methods | None = None,
        version: int = 0,
        migrate: Migrate | None = None,
        storage: Storage | None = None,
    ) -> None:
        self._initial: State = copy.deepcopy(dict(initial_state))
        self._persist_name = persist_name
        self._version = version
        self._migrate = migrate
        self._storage: Storage | None = None
        if persist_name is not None:
            self._storage = storage if storage is not None else get_default_storage()
        self._listeners: list[Listener] = []
        self._actions: dict[str, Callable[..., Any]] = {}
        self._state: State = copy.deepcopy(self._initial)

        if persist_name is not None:
            self._hydrate()

        if methods is not None:
            actions = dict(methods(self.update, lambda: self))
            clashes = sorted(name for name in actions if name in _RESERVED_NAMES or name.startswith("_"))
            if clashes:
                raise ArkestoneConfigError(f"Custom store methods clash with built-in names: {', '.join(clashes)}")
            self._actions = actions

    def __getattr__(self, name: str) -> Any:
        actions = self.__dict__.get("_actions", {})
        try:
            return actions[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!s} has no attribute or action {name!r}") from None

    def __repr__(self) -> str:
        return f"Store(persist_name={self._persist_name!r}, keys={sorted(self._state)!r})"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> State:
        """A deep copy of the current snapshot."""
        return copy.deepcopy(self._state)

    def get_state(self) -> State:
        return copy.deepcopy(self._state)

    def select(self, key: str, default: Any = None) -> Any:
        """Return a copy of a single top-level value."""
        return copy.deepcopy(self._state.get(key, default))

    @property
    def actions(self) -> tuple[str, ...]:
        return tuple(self._actions)

    @property
    def persist_name(self) -> str | None:
        return self._persist_name

    @property
    def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def update(self, fn: Producer) -> None:
        """Apply *fn* to a private draft and commit the result.

        *fn* may mutate the draft in place and return ``None``, or return a
        new mapping which then becomes the snapshot.
        """
        draft = copy.deepcopy(self._state)
        result = fn(draft)
        if result is None:
            new_state = draft
        elif isinstance(result, Mapping):
            new_state = copy.deepcopy(dict(result))
        else:
            raise TypeError(f"update() producer must return a mapping or None, got {type(result).__name__}")
        self._commit(new_state)

    def set_state(self, partial: Mapping[str, Any]) -> None:
        """Shallow-merge *partial* into the snapshot."""
        self._commit({**self._state, **copy.deepcopy(dict(partial))})

    def reset(self) -> None:
        """Restore the initial snapshot."""
        self._commit(copy.deepcopy(self._initial))

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(state, previous)``; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear_persisted(self) -> None:
        """Remove the persisted snapshot without touching in-memory state."""
        if self._persist_name is not None and self._storage is not None:
            self._storage.remove_item(self._persist_name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit(self, new_state: State) -> None:
        previous = self._state
        self._state = new_state
        self._persist()
        for listener in list(self._listeners):
            listener(copy.deepcopy(new_state), copy.deepcopy(previous))

    def _persist(self) -> None:
        if self._persist_name is None or self._storage is None:
            return
        try:
            snapshot = PersistedSnapshot(version=self._version, state=self._state)
            self._storage.set_item(self._persist_name, snapshot.model_dump_json())
        except (OSError, ValueError):
            _logger.warning("Failed to persist store %r", self._persist_name, exc_info=True)

    def _hydrate(self) -> None:
        assert self._persist_name is not None  # noqa: S101
        assert self._storage is not None  # noqa: S101
        name = self._persist_name

        try:
            raw = self._storage.get_item(name)
        except (OSError, UnicodeDecodeError):
            _logger.warning("Could not read persisted store %r; using initial state", name, exc_info=True)
            return
        if raw is None:
            _logger.debug("No persisted state for store %r", name)
            return

        try:
            snapshot = PersistedSnapshot.model_validate_json(raw)
        except ValidationError:
            _logger.warning("Discarding corrupt persisted state for store %r", name, exc_info=True)
            return

        persisted: State = snapshot.state
        migrated = False
        if snapshot.version != self._version and self._migrate is not None:
            _logger.debug("Migrating store %r from version %d to %d", name, snapshot.version, self._version)
            try:
                persisted = dict(self._migrate(copy.deepcopy(persisted), snapshot.version))
            except Exception:
                _logger.warning("Migration failed for store %r; using initial state", name, exc_info=True)
                return
            migrated = True

        # Shallow merge: persisted top-level keys replace defaults wholesale.
        self._state = {**self._state, **persisted}
        if migrated:
            self._persist()


_RESERVED_NAMES = frozenset(name for name in dir(Store) if not name.startswith("_"))


def create_store(
    initial_state: Mapping[str, Any],
    *,
    persist_name: str | None = None,
    methods: Methods | None = None,
    version: int = 0,
    migrate: Migrate | None = None,
    storage: Storage | None = None,
) -> Store:
    """Create a new :class:`Store`. See the class docstring for parameters."""
    _logger.debug("Creating store persist_name=%s", persist_name)
    return Store(
        initial_state,
        persist_name=persist_name,
        methods=methods,
        version=version,
        migrate=migrate,
        storage=storage,
    )
