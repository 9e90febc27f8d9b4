"""Shared fixtures for connector tests."""

import json
from urllib.parse import urlparse

import pytest
import requests


class FakeResponse:
    """Minimal stand-in for requests.Response."""

    def __init__(self, status_code=200, payload=None, reason="OK", body=None):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload
        self._body = body
        if body is not None:
            self.content = body.encode()
        else:
            self.content = b"" if payload is None else json.dumps(payload).encode()

    def json(self):
        if self._body is not None:
            raise requests.exceptions.JSONDecodeError("Expecting value", self._body, 0)
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records GET calls and answers them from registered routes.

    Routes are keyed by the path below ``rest/api/``; a route may be a
    FakeResponse or a callable receiving the query params.
    """

    def __init__(self):
        self.headers = {}
        self.auth = None
        self.calls = []
        self._routes = {}

    def route(self, path, payload=None, status=200, reason="OK"):
        self._routes[path] = FakeResponse(status, payload, reason)

    def route_text(self, path, body, status=200):
        self._routes[path] = FakeResponse(status, reason="OK", body=body)

    def route_fn(self, path, handler):
        self._routes[path] = handler

    def get(self, url, params=None, timeout=None):
        path = urlparse(url).path.split("/rest/api/", 1)[1]
        self.calls.append((path, dict(params or {})))
        handler = self._routes.get(path)
        if handler is None:
            return FakeResponse(404, {"errorMessages": [f"no route {path}"]}, "Not Found")
        if callable(handler):
            return handler(dict(params or {}))
        return handler

    @property
    def paths(self):
        return [path for path, _ in self.calls]


@pytest.fixture
def fake_session() -> FakeSession:
    """Create a recording session."""
    return FakeSession()


@pytest.fixture
def fake_response():
    """Expose the FakeResponse class to tests building custom routes."""
    return FakeResponse


@pytest.fixture(scope="session")
def key_store():
    """Generate one RSA signing key for the test session."""
    from jira_connector.integrations.oauth1 import KeyStore

    return KeyStore.generate()
