"""Shared fixtures: a fake Spotify upstream and an app wired to it."""

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app
from oauth.stores import SessionStore
from spotify_client import SpotifyClient


class FakeSpotify:
    """Records outbound requests and answers from a routing table."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], object] = {}

    def respond(self, method: str, path: str, status: int = 200, json=None):
        self.routes[(method, path)] = (status, json if json is not None else {})

    def fail(self, method: str, path: str):
        """Simulate a connection error on this route."""
        self.routes[(method, path)] = httpx.ConnectError("connection refused")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"error": {"status": 404, "message": "Not found"}})
        if isinstance(route, Exception):
            raise route
        status, body = route
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def settings(tmp_path):
    return Settings({
        "client_id": "cid",
        "client_secret": "secret",
        "redirect_uri": "http://localhost:8888/callback/",
        "app_redirect_uri": "http://localhost:1234/token",
        "allowed_origin": "http://localhost:1234",
        "static_dir": str(tmp_path / "no-static"),
    })


@pytest.fixture
def upstream():
    return FakeSpotify()


@pytest.fixture
def spotify(settings, upstream):
    return SpotifyClient(settings, transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def store():
    return SessionStore()


@pytest.fixture
def client(settings, spotify, store):
    app = create_app(settings, spotify=spotify, store=store)
    with TestClient(app) as test_client:
        yield test_client


def login(client, upstream, user_id="alice", access_token="abc", refresh_token="xyz"):
    """Run the app login flow end to end; returns the /appCallback response."""
    upstream.respond("POST", "/api/token", json={
        "access_token": access_token,
        "refresh_token": refresh_token,
        "token_type": "Bearer",
        "expires_in": 3600,
    })
    upstream.respond("GET", "/v1/me", json={"id": user_id, "display_name": user_id.title()})

    state = client.get("/appLogin").json()["stateValue"]
    return client.get("/appCallback", params={"code": "auth-code", "state": state})
