"""Process-wide configuration for arkestone.

The configuration is itself held in a store (see :func:`get_config_store`)
so a host can switch API environments at runtime; the request layer reads
``state["api"]`` on every call instead of caching it.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from arkestone.exceptions import ArkestoneConfigError
from arkestone.registry import get_store
from arkestone.store import SetState, State, Store, create_store

CONFIG_STORE_NAME = "app-config"
DEFAULT_API_URL = "/api/v1"

Theme = Literal["light", "dark"]
Currency = Literal["USD", "LKR", "EUR"]


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


class ApiSettings(BaseModel):
    """Transport settings consumed by the request layer.

    Parameters
    ----------
    url : str or None
        Base URL joined with relative request URLs.
    is_same_origin : bool
        When ``False`` the CORS request headers are sent as well.
    with_credentials : bool
        Keep cookies between requests. Disabled means a dummy cookie jar.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str | None = DEFAULT_API_URL
    is_same_origin: bool = False
    with_credentials: bool = False


class FeatureFlags(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    reviews_enabled: bool = True
    wishlist_enabled: bool = True
    product_zoom: bool = False


class AppConfig(BaseModel):
    """Global configuration for the framework."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    theme: Theme = "light"
    currency: Currency = "USD"
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    api: ApiSettings = Field(default_factory=ApiSettings)

    @classmethod
    def from_env(cls, **overrides: Any) -> AppConfig:
        """Create configuration from ``ARKESTONE_*`` environment variables.

        Explicit keyword arguments override environment values; ``api`` may
        be passed as a mapping or an :class:`ApiSettings`.
        """
        env = os.environ

        api_kwargs: dict[str, Any] = {}
        url = env.get("ARKESTONE_API_URL")
        if url is not None:
            api_kwargs["url"] = url
        api_kwargs["is_same_origin"] = _env_bool(env.get("ARKESTONE_API_SAME_ORIGIN"), False)
        api_kwargs["with_credentials"] = _env_bool(env.get("ARKESTONE_API_WITH_CREDENTIALS"), False)

        api_overrides = overrides.pop("api", None)
        if isinstance(api_overrides, ApiSettings):
            api_kwargs = api_overrides.model_dump()
        elif isinstance(api_overrides, Mapping):
            api_kwargs.update(api_overrides)

        config_kwargs: dict[str, Any] = {"api": ApiSettings(**api_kwargs)}
        theme = env.get("ARKESTONE_THEME")
        if theme is not None:
            config_kwargs["theme"] = theme
        currency = env.get("ARKESTONE_CURRENCY")
        if currency is not None:
            config_kwargs["currency"] = currency

        config_kwargs.update(overrides)
        return cls.model_validate(config_kwargs)


def _config_methods(set_state: SetState, get: Any) -> dict[str, Any]:
    def toggle_theme(theme: Theme | None = None) -> None:
        def apply(state: State) -> None:
            state["theme"] = theme or ("dark" if state.get("theme") == "light" else "light")

        set_state(apply)

    def toggle_feature(key: str) -> None:
        if key not in get().select("features", {}):
            raise ArkestoneConfigError(f"Unknown feature flag: {key!r}")

        def apply(state: State) -> None:
            state["features"][key] = not state["features"][key]

        set_state(apply)

    def set_api(api: ApiSettings | Mapping[str, Any]) -> None:
        settings = api if isinstance(api, ApiSettings) else ApiSettings.model_validate(api)

        def apply(state: State) -> None:
            state["api"] = settings.model_dump()

        set_state(apply)

    return {"toggle_theme": toggle_theme, "toggle_feature": toggle_feature, "set_api": set_api}


def create_config_store(
    config: AppConfig | None = None,
    *,
    persist_name: str | None = CONFIG_STORE_NAME,
    **store_options: Any,
) -> Store:
    """Build a configuration store seeded from *config* (or the environment)."""
    initial = (config or AppConfig.from_env()).model_dump()
    return create_store(initial, persist_name=persist_name, methods=_config_methods, **store_options)


def get_config_store() -> Store:
    """Return the process-wide configuration store."""
    return get_store(CONFIG_STORE_NAME, create_config_store)


def get_api_settings(store: Store | None = None) -> ApiSettings:
    """Read the current API settings fresh from the configuration store."""
    store = store if store is not None else get_config_store()
    return ApiSettings.model_validate(store.select("api") or {})
