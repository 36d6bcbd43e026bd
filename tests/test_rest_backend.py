"""Tests for the REST backend wrapper."""

from __future__ import annotations

import importlib
from typing import Any, Dict, List

import pytest
import requests

rest_backend = importlib.import_module("form_builder.rest_backend")


class DummyResponse:
    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.content = b"" if payload is None else b"x"

    def json(self) -> Any:
        return self._payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def calls(monkeypatch) -> List[Dict[str, Any]]:
    recorded: List[Dict[str, Any]] = []

    def fake(method: str, response: DummyResponse):
        def _call(url, **kwargs):
            recorded.append({"method": method, "url": url, **kwargs})
            return response

        return _call

    monkeypatch.setattr(rest_backend.requests, "get", fake("get", DummyResponse([{"id": "a"}])))
    monkeypatch.setattr(rest_backend.requests, "post", fake("post", DummyResponse([{"id": "b"}], 201)))
    monkeypatch.setattr(rest_backend.requests, "patch", fake("patch", DummyResponse([{"id": "c"}])))
    monkeypatch.setattr(rest_backend.requests, "delete", fake("delete", DummyResponse(None, 204)))
    return recorded


def _backend(**kwargs):
    return rest_backend.RestBackend(url="https://db.example.com/", api_key="anon", **kwargs)


def test_filter_expressions():
    """Filter values become PostgREST expressions."""

    assert rest_backend.filter_expression("x") == "eq.x"
    assert rest_backend.filter_expression(True) == "eq.true"
    assert rest_backend.filter_expression(["a", "b"]) == "in.(a,b)"


def test_select_builds_query(calls):
    """Select sends the table URL, filters and headers."""

    rows = _backend().select("plans", {"id": ["1", "2"], "active": True}, order="sort_order.asc")

    assert rows == [{"id": "a"}]
    call = calls[0]
    assert call["url"] == "https://db.example.com/rest/v1/plans"
    assert call["params"] == {
        "select": "*",
        "id": "in.(1,2)",
        "active": "eq.true",
        "order": "sort_order.asc",
    }
    assert call["headers"]["apikey"] == "anon"
    assert call["headers"]["Authorization"] == "Bearer anon"
    assert call["timeout"] == 10


def test_access_token_and_schema_headers(calls):
    """A user token and schema change the headers."""

    _backend(access_token="user-token", schema="admin").select("plans")

    headers = calls[0]["headers"]
    assert headers["Authorization"] == "Bearer user-token"
    assert headers["Accept-Profile"] == "admin"


def test_upsert_merges_duplicates(calls):
    """Upserts ask the backend to merge duplicates."""

    rows = _backend().upsert("questionnaire_config", {"id": "f"})

    assert rows == [{"id": "b"}]
    assert calls[0]["json"] == [{"id": "f"}]
    assert "resolution=merge-duplicates" in calls[0]["headers"]["Prefer"]


def test_insert_accepts_single_row_and_skips_empty(calls):
    """Single rows are wrapped and empty inserts skipped."""

    backend = _backend()

    backend.insert("plans", {"name": "Basic"})
    assert backend.insert("plans", []) == []

    assert len(calls) == 1
    assert calls[0]["json"] == [{"name": "Basic"}]


def test_update_and_delete_require_filters(calls):
    """Unfiltered updates and deletes are refused."""

    backend = _backend()

    with pytest.raises(ValueError):
        backend.update("plans", {"name": "x"}, {})
    with pytest.raises(ValueError):
        backend.delete("plans", {})

    backend.update("plans", {"name": "x"}, {"id": "1"})
    backend.delete("plans", {"id": "1"})
    assert [call["method"] for call in calls] == ["patch", "delete"]
    assert calls[1]["params"] == {"id": "eq.1"}


def test_http_errors_propagate(monkeypatch):
    """HTTP errors are raised to the caller."""

    monkeypatch.setattr(
        rest_backend.requests, "get", lambda url, **kwargs: DummyResponse({"message": "nope"}, 401)
    )

    with pytest.raises(requests.HTTPError):
        _backend().select("plans")


def test_backend_from_secrets():
    """Backends are built from nested or flat secrets."""

    assert rest_backend.backend_from_secrets({}) is None

    nested = rest_backend.backend_from_secrets({"backend": {"url": "https://a", "api_key": "k", "schema": "s"}})
    assert nested.url == "https://a"
    assert nested.schema == "s"

    legacy = rest_backend.backend_from_secrets({"backend_url": "https://b", "backend_api_key": "k2"})
    assert legacy.api_key == "k2"
