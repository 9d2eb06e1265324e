from __future__ import annotations

import importlib
from datetime import date

import pytest
from fastapi.testclient import TestClient

import signaldesk.oracle.router as router_module
from signaldesk.core.settings import get_settings
from signaldesk.oracle.store import StateStore

PANEL_TOKEN = "panel-token"


@pytest.fixture()
def api_module(tmp_path, monkeypatch):
    monkeypatch.setenv("PANEL_API_TOKENS", f"{PANEL_TOKEN}@2099-01-01,old-token@2000-01-01")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://localhost:3000")
    monkeypatch.delenv("PANEL_API_TOKEN", raising=False)
    store = StateStore(tmp_path / "state.db")
    monkeypatch.setattr(router_module, "get_state_store", lambda: store)
    get_settings.cache_clear()
    yield importlib.reload(importlib.import_module("signaldesk.app.main"))
    get_settings.cache_clear()


@pytest.fixture()
def client(api_module):
    return TestClient(api_module.app)


def test_health_endpoint_returns_ok(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.json()
    assert payload.get("ok") is True
    assert "time" in payload
    assert "backend_configured" in payload


def test_oracle_routes_require_panel_token(client: TestClient) -> None:
    assert client.get("/oracle/watchlist").status_code == 401
    assert client.get("/oracle/watchlist", headers={"X-Panel-Token": "wrong"}).status_code == 401


def test_expired_panel_token_is_rejected(client: TestClient) -> None:
    assert client.get("/oracle/watchlist", headers={"X-Panel-Token": "old-token"}).status_code == 401


def test_oracle_routes_accept_valid_token(client: TestClient) -> None:
    response = client.get("/oracle/watchlist", headers={"X-Panel-Token": PANEL_TOKEN})
    assert response.status_code == 200
    assert response.json()["assets"]


def test_parse_panel_tokens_skips_bad_expiry(api_module) -> None:
    tokens = api_module.parse_panel_tokens("a@2030-01-01, b@not-a-date, ,c")
    assert [token.value for token in tokens] == ["a", "b", "c"]
    assert tokens[1].expires is None


def test_panel_token_expiry(api_module) -> None:
    token = api_module.PanelToken("abc", date(2030, 1, 1))
    assert token.accepts("abc", date(2030, 1, 1))
    assert not token.accepts("abc", date(2030, 1, 2))
    assert not token.accepts("abd", date(2029, 1, 1))


def test_settings_from_env_drive_app(api_module) -> None:
    assert api_module.SETTINGS.origins == ["http://localhost:3000"]
    assert [token.value for token in api_module.PANEL_TOKENS] == [PANEL_TOKEN, "old-token"]
