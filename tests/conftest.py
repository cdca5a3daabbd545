"""Shared fixtures: a scripted fake backend behind httpx.MockTransport."""

from __future__ import annotations

import inspect
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from api import AuraApi
from auth_state import AuthState
from gateway import Gateway, get_http_client
from schemas import Identity
from session_store import SessionStore

BASE_URL = "http://backend.test"


def make_user(role: str = "donor", user_id: str = "u1", premium: bool = False, **extra: Any) -> dict:
    return {
        "_id": user_id,
        "fullName": "Dana Scully",
        "email": "dana@example.com",
        "role": role,
        "isPremium": premium,
        **extra,
    }


def make_identity(role: str = "donor", **kwargs: Any) -> Identity:
    return Identity.model_validate(make_user(role, **kwargs))


class FakeBackend:
    """Answers requests from a (method, path) table and records every call."""

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], Any] = {}

    def on(self, method: str, path: str, status: int = 200, json: Any = None,
           handler: Callable | None = None) -> None:
        self._routes[(method, path)] = handler or (status, json)

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self._routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "Not found"})
        if callable(route):
            response = route(request)
            if inspect.isawaitable(response):
                response = await response
            return response
        status, body = route
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.calls if r.method == method and r.url.path == path)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def http_client(backend: FakeBackend) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(backend))


@pytest.fixture
def storage() -> dict:
    return {}


@pytest.fixture
def store(storage: dict) -> SessionStore:
    return SessionStore(storage)


@pytest.fixture
def auth(store: SessionStore) -> AuthState:
    return AuthState(store)


@pytest.fixture
def api(http_client: httpx.AsyncClient, auth: AuthState) -> AuraApi:
    return AuraApi(Gateway(http_client, auth))


@pytest.fixture
def logged_in(auth: AuthState) -> Callable[..., Identity]:
    def _login(role: str = "donor", **kwargs: Any) -> Identity:
        identity = make_identity(role, **kwargs)
        auth.login(identity, "tok-123")
        return identity

    return _login


@pytest.fixture
def client(http_client: httpx.AsyncClient):
    """The web app wired to the fake backend."""
    from main import app

    app.dependency_overrides[get_http_client] = lambda: http_client
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def web_login(client: TestClient, backend: FakeBackend):
    def _login(role: str = "donor", **kwargs: Any) -> dict:
        user = make_user(role, **kwargs)
        backend.on("POST", "/login", json={"user": user, "token": "tok-web"})
        resp = client.post(
            "/login",
            data={"email": user["email"], "password": "pw"},
            follow_redirects=False,
        )
        assert resp.status_code == 303
        return user

    return _login
