"""Playlist proxy endpoints.

Forwards two read-only Spotify calls on behalf of a logged-in session:
- /playlists: the user's own playlists, reduced to {name, id, href}
- /playlist/{playlist_id}: the tracks of one playlist
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from oauth.middleware import get_session
from spotify_client import SpotifyAPIError, SpotifyClient

logger = logging.getLogger(__name__)

# Router for playlist endpoints
router = APIRouter(tags=["playlists"])

# Set by init_playlist_routes()
_spotify: SpotifyClient = None


def init_playlist_routes(spotify_client: SpotifyClient):
    """Initialize playlist routes with the Spotify client.

    Must be called before including the router in the app.
    """
    global _spotify
    _spotify = spotify_client


def unauthorized_response() -> JSONResponse:
    return JSONResponse({"error": "unauthorized"}, status_code=401)


def upstream_error_response(request: Request, error: SpotifyAPIError) -> JSONResponse:
    """Map an upstream failure onto 401 (token problems) or 502."""
    if error.is_auth_error:
        session = get_session(request)
        if session:
            session.expire()
        return unauthorized_response()
    return JSONResponse({"error": "upstream_error", "status": error.status_code}, status_code=502)


def filter_owned_playlists(items: list, user_id: str) -> list:
    """Keep playlists owned by user_id, each reduced to name, id and href."""
    owned = []
    for item in items or []:
        owner = item.get("owner") or {}
        if owner.get("id") != user_id:
            continue
        owned.append({"name": item.get("name"), "id": item.get("id"), "href": item.get("href")})
    return owned


@router.get("/playlists")
async def list_playlists(request: Request):
    """List the current user's own playlists."""
    session = get_session(request)
    if session is None or not session.is_ready():
        logger.info("[PLAYLISTS] Rejected: no ready session")
        return unauthorized_response()

    try:
        body = await _spotify.get_playlists(session.access_token)
    except SpotifyAPIError as e:
        logger.warning(f"[PLAYLISTS] Upstream error {e.status_code} for user {session.user_id}")
        return upstream_error_response(request, e)

    playlists = filter_owned_playlists(body.get("items", []), session.user_id)
    logger.info(f"[PLAYLISTS] {len(playlists)} playlists for user {session.user_id}")
    return playlists


@router.get("/playlist/{playlist_id}")
async def list_playlist_tracks(request: Request, playlist_id: str):
    """List the tracks of one playlist."""
    session = get_session(request)
    if session is None or not session.is_ready():
        logger.info("[PLAYLISTS] Rejected track listing: no ready session")
        return unauthorized_response()

    try:
        body = await _spotify.get_playlist_tracks(session.access_token, playlist_id)
    except SpotifyAPIError as e:
        logger.warning(f"[PLAYLISTS] Upstream error {e.status_code} for playlist {playlist_id}")
        return upstream_error_response(request, e)

    return body.get("items") or []
