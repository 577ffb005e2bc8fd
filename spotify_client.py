"""Async client for the Spotify Accounts service and Web API.

Covers only what the relay needs:
- Authorization URL construction
- Token endpoint (authorization_code and refresh_token grants)
- /me, /me/playlists and /playlists/{id}/tracks
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote, urlencode

import httpx

from config import Settings

logger = logging.getLogger(__name__)

TRACK_FIELDS = "items(track(name,href,album(name,href)))"


class SpotifyAPIError(Exception):
    """Non-200 answer (or no answer) from Spotify."""

    def __init__(self, status_code: int, payload: Any = None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        super().__init__(f"Spotify returned {status_code}: {self.payload}")

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (400, 401)


@dataclass
class TokenSet:
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    @classmethod
    def from_response(cls, body: dict) -> "TokenSet":
        return cls(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            expires_in=body.get("expires_in"),
            scope=body.get("scope"),
        )


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return {"error": response.text}


class SpotifyClient:
    """Thin wrapper over httpx.AsyncClient.

    Args:
        settings: Credentials and base URLs.
        transport: Optional httpx transport (used by the tests).
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport = None):
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.settings.http_timeout, transport=self.transport)

    def authorize_url(self, redirect_uri: str, state: str) -> str:
        """Build the Spotify authorization URL for the code flow."""
        params = urlencode({
            "response_type": "code",
            "client_id": self.settings.client_id,
            "scope": self.settings.scope,
            "redirect_uri": redirect_uri,
            "state": state,
        })
        return f"{self.settings.accounts_url}/authorize?{params}"

    # ============== Token Endpoint ==============

    async def _token_request(self, form: dict) -> TokenSet:
        url = f"{self.settings.accounts_url}/api/token"
        auth = httpx.BasicAuth(self.settings.client_id, self.settings.client_secret)
        try:
            async with self._client() as client:
                response = await client.post(url, data=form, auth=auth)
        except httpx.HTTPError as e:
            logger.warning(f"[TOKEN] Token endpoint unreachable: {e}")
            raise SpotifyAPIError(502, {"error": "upstream_unavailable", "error_description": str(e)})

        body = _decode(response)
        if response.status_code != 200:
            logger.info(f"[TOKEN] {form['grant_type']} grant rejected with {response.status_code}")
            raise SpotifyAPIError(response.status_code, body)
        if not isinstance(body, dict) or "access_token" not in body:
            raise SpotifyAPIError(502, {"error": "invalid_token_response"})
        return TokenSet.from_response(body)

    async def exchange_code(self, code: str, redirect_uri: str) -> TokenSet:
        """Exchange an authorization code for an access/refresh token pair."""
        return await self._token_request({
            "code": code,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        })

    async def refresh(self, refresh_token: str) -> TokenSet:
        """Exchange a refresh token for a new access token."""
        return await self._token_request({
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })

    # ============== Web API ==============

    async def _get(self, path: str, access_token: str, params: dict = None) -> Any:
        url = f"{self.settings.api_url}{path}"
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._client() as client:
                response = await client.get(url, headers=headers, params=params)
        except httpx.HTTPError as e:
            logger.warning(f"[API] GET {path} failed: {e}")
            raise SpotifyAPIError(502, {"error": "upstream_unavailable", "error_description": str(e)})

        body = _decode(response)
        if response.status_code != 200:
            raise SpotifyAPIError(response.status_code, body)
        if not isinstance(body, dict):
            logger.warning(f"[API] GET {path} returned a non-object body")
            raise SpotifyAPIError(502, {"error": "invalid_api_response"})
        return body

    async def get_me(self, access_token: str) -> dict:
        return await self._get("/me", access_token)

    async def get_playlists(self, access_token: str) -> dict:
        return await self._get("/me/playlists", access_token)

    async def get_playlist_tracks(self, access_token: str, playlist_id: str) -> dict:
        path = f"/playlists/{quote(playlist_id, safe='')}/tracks"
        return await self._get(path, access_token, params={"fields": TRACK_FIELDS})
