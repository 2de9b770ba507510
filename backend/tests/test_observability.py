"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib

from camino.observability import client as client_module
from camino.observability.tracing import trace


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import camino.main as main_module

    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")


def test_opik_stays_disabled_without_api_key(monkeypatch) -> None:
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    client_module.reset_opik_client()

    try:
        assert client_module.init_opik() is None
        assert client_module.get_opik_client() is None
    finally:
        client_module.reset_opik_client()


def test_trace_yields_none_when_disabled(monkeypatch) -> None:
    monkeypatch.setattr(client_module, "get_opik_client", lambda: None)

    with trace("planner.build", metadata={"model": "gpt-test"}) as span:
        assert span is None
