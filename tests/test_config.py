from __future__ import annotations

import json

import pytest

from arkestone.config import ApiSettings, AppConfig, create_config_store, get_api_settings, get_config_store
from arkestone.exceptions import ArkestoneConfigError
from arkestone.storage import MemoryStorage


def test_defaults() -> None:
    config = AppConfig.from_env()

    assert config.theme == "light"
    assert config.currency == "USD"
    assert config.api == ApiSettings(url="/api/v1", is_same_origin=False, with_credentials=False)


def test_from_env_with_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ARKESTONE_API_URL", "https://api.example.com/v2")
    monkeypatch.setenv("ARKESTONE_API_SAME_ORIGIN", "yes")
    monkeypatch.setenv("ARKESTONE_API_WITH_CREDENTIALS", "maybe")
    monkeypatch.setenv("ARKESTONE_THEME", "dark")

    config = AppConfig.from_env(currency="EUR")

    assert config.api.url == "https://api.example.com/v2"
    assert config.api.is_same_origin is True
    assert config.api.with_credentials is False
    assert config.theme == "dark"
    assert config.currency == "EUR"

    overridden = AppConfig.from_env(api={"with_credentials": True})
    assert overridden.api.url == "https://api.example.com/v2"
    assert overridden.api.with_credentials is True


def test_config_store_actions(storage: MemoryStorage) -> None:
    store = get_config_store()

    store.toggle_theme()
    store.toggle_feature("product_zoom")
    store.set_api(ApiSettings(url="https://api.example.com", with_credentials=True))

    assert store.state["theme"] == "dark"
    assert store.state["features"]["product_zoom"] is True
    assert get_api_settings() == ApiSettings(url="https://api.example.com", with_credentials=True)

    store.toggle_theme("dark")
    assert store.state["theme"] == "dark"

    persisted = json.loads(storage.get_item("app-config") or "")
    assert persisted["state"]["api"]["url"] == "https://api.example.com"


def test_unknown_feature_flag_is_rejected() -> None:
    with pytest.raises(ArkestoneConfigError):
        get_config_store().toggle_feature("dark_mode")


def test_config_survives_store_recreation(storage: MemoryStorage) -> None:
    create_config_store().set_api({"url": "https://persisted.example.com"})

    assert get_api_settings(create_config_store()).url == "https://persisted.example.com"
