"""Tests for the playlist proxy endpoints."""

from oauth.middleware import SESSION_COOKIE
from oauth.stores import SessionState
from playlists import filter_owned_playlists

from conftest import login


def playlist(playlist_id, name, owner):
    return {
        "id": playlist_id,
        "name": name,
        "href": f"https://api.spotify.com/v1/playlists/{playlist_id}",
        "owner": {"id": owner, "display_name": owner.title()},
        "public": True,
        "tracks": {"total": 12},
    }


class TestFilterOwnedPlaylists:
    def test_keeps_only_owned_items(self):
        items = [playlist("p1", "Mine", "alice"), playlist("p2", "Followed", "bob")]

        assert filter_owned_playlists(items, "alice") == [
            {"name": "Mine", "id": "p1", "href": "https://api.spotify.com/v1/playlists/p1"},
        ]

    def test_item_without_owner_is_dropped(self):
        assert filter_owned_playlists([{"id": "p1", "name": "x", "href": "h"}], "alice") == []

    def test_empty_input(self):
        assert filter_owned_playlists(None, "alice") == []


class TestListPlaylists:
    def test_requires_session(self, client, upstream):
        response = client.get("/playlists")

        assert response.status_code == 401
        assert response.json() == {"error": "unauthorized"}
        assert upstream.requests == []

    def test_pending_session_is_rejected(self, client, upstream, store):
        session = store.create("abc", "xyz")
        client.cookies.set(SESSION_COOKIE, session.session_id)

        response = client.get("/playlists")

        assert response.status_code == 401
        assert upstream.calls("/v1/me/playlists") == []

    def test_filters_by_owner(self, client, upstream):
        login(client, upstream, user_id="alice")
        upstream.respond("GET", "/v1/me/playlists", json={
            "items": [playlist("p1", "Road Trip", "alice"), playlist("p2", "Top Hits", "spotify")],
            "total": 2,
        })

        response = client.get("/playlists")

        assert response.status_code == 200
        assert response.json() == [
            {"name": "Road Trip", "id": "p1", "href": "https://api.spotify.com/v1/playlists/p1"},
        ]
        assert upstream.calls("/v1/me/playlists")[0].headers["Authorization"] == "Bearer abc"

    def test_sessions_are_isolated(self, settings, spotify, upstream, store):
        from fastapi.testclient import TestClient
        from main import create_app

        app = create_app(settings, spotify=spotify, store=store)
        upstream.respond("GET", "/v1/me/playlists", json={
            "items": [playlist("p1", "Alice's", "alice"), playlist("p2", "Bob's", "bob")],
        })

        with TestClient(app) as alice, TestClient(app) as bob:
            login(alice, upstream, user_id="alice", access_token="token-a")
            login(bob, upstream, user_id="bob", access_token="token-b")

            assert [p["id"] for p in alice.get("/playlists").json()] == ["p1"]
            assert [p["id"] for p in bob.get("/playlists").json()] == ["p2"]

    def test_upstream_401_expires_session(self, client, upstream, store):
        login(client, upstream)
        upstream.respond("GET", "/v1/me/playlists", status=401, json={
            "error": {"status": 401, "message": "The access token expired"},
        })

        response = client.get("/playlists")

        assert response.status_code == 401
        session = store.get(client.cookies.get(SESSION_COOKIE))
        assert session.state is SessionState.EXPIRED

        # Expired session is gated without another upstream call
        calls = len(upstream.calls("/v1/me/playlists"))
        assert client.get("/playlists").status_code == 401
        assert len(upstream.calls("/v1/me/playlists")) == calls

    def test_upstream_400_maps_to_unauthorized(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/me/playlists", status=400, json={"error": {"status": 400}})

        assert client.get("/playlists").status_code == 401

    def test_upstream_server_error(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/me/playlists", status=503, json={"error": {"status": 503}})

        response = client.get("/playlists")

        assert response.status_code == 502
        assert response.json() == {"error": "upstream_error", "status": 503}

    def test_playlists_body_not_an_object(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/me/playlists", json="oops")

        response = client.get("/playlists")

        assert response.status_code == 502


class TestPlaylistTracks:
    def test_requires_session(self, client, upstream):
        response = client.get("/playlist/p1")

        assert response.status_code == 401
        assert upstream.requests == []

    def test_returns_items(self, client, upstream):
        login(client, upstream)
        items = [
            {"track": {"name": "Song A", "href": "https://api.spotify.com/v1/tracks/a",
                       "album": {"name": "Album", "href": "https://api.spotify.com/v1/albums/x"}}},
        ]
        upstream.respond("GET", "/v1/playlists/p1/tracks", json={"items": items})

        response = client.get("/playlist/p1")

        assert response.status_code == 200
        assert response.json() == items

        call = upstream.calls("/v1/playlists/p1/tracks")[0]
        assert call.url.params["fields"] == "items(track(name,href,album(name,href)))"
        assert call.headers["Authorization"] == "Bearer abc"

    def test_missing_items_gives_empty_list(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/playlists/p1/tracks", json={})

        assert client.get("/playlist/p1").json() == []

    def test_upstream_401(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/playlists/p1/tracks", status=401, json={"error": {"status": 401}})

        assert client.get("/playlist/p1").status_code == 401

    def test_non_object_body(self, client, upstream):
        login(client, upstream)
        upstream.respond("GET", "/v1/playlists/p1/tracks", json=["unexpected"])

        response = client.get("/playlist/p1")

        assert response.status_code == 502
        assert response.json() == {"error": "upstream_error", "status": 502}
