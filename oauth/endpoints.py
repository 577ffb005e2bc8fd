"""Spotify Authorization Code flow endpoints.

This module contains all OAuth-related endpoints:
- Authorization redirect (/login, /appLogin)
- Callback + token exchange (/callback, /appCallback)
- Token refresh (/refresh_token)
- Logout (/logout)

The browser and app variants share one callback handler; a Flow object
supplies the redirect URI and the response shape.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response

from config import Settings
from logging_config import mask_token
from oauth.middleware import SESSION_COOKIE, get_session
from oauth.state import generate_random_string
from oauth.stores import SessionStore
from spotify_client import SpotifyAPIError, SpotifyClient, TokenSet

logger = logging.getLogger(__name__)

# Router for OAuth endpoints
router = APIRouter(tags=["oauth"])

STATE_KEY = "spotify_auth_state"
AC_KEY = "spotify-ac-key"

# These will be set by init_oauth_routes()
_settings: Settings = None
_spotify: SpotifyClient = None
_store: SessionStore = None


def init_oauth_routes(settings: Settings, spotify_client: SpotifyClient, store: SessionStore):
    """Initialize OAuth routes with settings, Spotify client and session store.

    Must be called before including the router in the app.
    """
    global _settings, _spotify, _store
    _settings = settings
    _spotify = spotify_client
    _store = store


# ============== Flows ==============

class Flow(ABC):
    """Response shape of one login variant."""

    name = "flow"

    @abstractmethod
    def redirect_uri(self) -> str:
        ...

    @abstractmethod
    def state_mismatch(self) -> Response:
        ...

    @abstractmethod
    def exchange_failed(self, error: SpotifyAPIError) -> Response:
        ...

    @abstractmethod
    def profile_failed(self) -> Response:
        ...

    @abstractmethod
    def success(self, tokens: TokenSet) -> Response:
        ...


class BrowserFlow(Flow):
    """Redirects back to the static client with the result in the URL fragment."""

    name = "browser"

    def redirect_uri(self) -> str:
        return _settings.redirect_uri

    @staticmethod
    def _fragment(params: dict) -> RedirectResponse:
        return RedirectResponse(url=f"/#{urlencode(params)}", status_code=302)

    def state_mismatch(self) -> Response:
        return self._fragment({"error": "state_mismatch"})

    def exchange_failed(self, error: SpotifyAPIError) -> Response:
        return self._fragment({"error": "invalid_token"})

    def profile_failed(self) -> Response:
        return self._fragment({"error": "profile_unavailable"})

    def success(self, tokens: TokenSet) -> Response:
        return self._fragment({
            "access_token": tokens.access_token,
            "refresh_token": tokens.refresh_token or "",
        })


class AppFlow(Flow):
    """JSON responses for a separately hosted front-end application."""

    name = "app"

    def redirect_uri(self) -> str:
        return _settings.app_redirect_uri

    def state_mismatch(self) -> Response:
        return JSONResponse({"error": "state_mismatch"}, status_code=400)

    def exchange_failed(self, error: SpotifyAPIError) -> Response:
        # Upstream error body is passed through as-is
        return JSONResponse(error.payload, status_code=400)

    def profile_failed(self) -> Response:
        return JSONResponse({"error": "profile_unavailable"}, status_code=502)

    def success(self, tokens: TokenSet) -> Response:
        return JSONResponse({"ac": tokens.access_token, "key": AC_KEY})


BROWSER_FLOW = BrowserFlow()
APP_FLOW = AppFlow()


# ============== Authorization Redirect ==============

def _start_login(flow: Flow) -> tuple[str, str]:
    """Create a state token and the matching authorization URL."""
    state = generate_random_string(16)
    login_url = _spotify.authorize_url(flow.redirect_uri(), state)
    logger.info(f"[LOGIN] Starting {flow.name} login")
    return state, login_url


@router.get("/login")
async def login():
    """Redirect the user agent to Spotify's authorization page."""
    state, login_url = _start_login(BROWSER_FLOW)
    response = RedirectResponse(url=login_url, status_code=302)
    response.set_cookie(STATE_KEY, state)
    return response


@router.get("/appLogin")
async def app_login():
    """Hand the authorization URL to the app instead of redirecting."""
    state, login_url = _start_login(APP_FLOW)
    response = JSONResponse({"stateKey": STATE_KEY, "stateValue": state, "loginUrl": login_url})
    response.set_cookie(STATE_KEY, state)
    return response


# ============== Callback ==============

async def complete_login(request: Request, flow: Flow, code: Optional[str], state: Optional[str]) -> Response:
    """Validate state, exchange the code and open a session."""
    stored_state = request.cookies.get(STATE_KEY)

    # Empty values count as missing
    if not state or not stored_state or state != stored_state:
        logger.info(f"[CALLBACK] State mismatch on {flow.name} callback")
        return flow.state_mismatch()

    try:
        tokens = await _spotify.exchange_code(code, flow.redirect_uri())
    except SpotifyAPIError as e:
        logger.warning(f"[CALLBACK] Token exchange failed ({e.status_code})")
        response = flow.exchange_failed(e)
        response.delete_cookie(STATE_KEY)
        return response

    logger.info(f"[CALLBACK] Access token issued: {mask_token(tokens.access_token)}")

    # A new login replaces whatever session this browser held before
    previous = get_session(request)
    if previous:
        _store.discard(previous.session_id)

    # Session stays PENDING until the profile lookup completes
    session = _store.create(tokens.access_token, tokens.refresh_token)
    try:
        profile = await _spotify.get_me(tokens.access_token)
        user_id = profile.get("id")
        if not user_id:
            raise SpotifyAPIError(502, {"error": "profile_without_id"})
    except SpotifyAPIError as e:
        logger.warning(f"[CALLBACK] Profile lookup failed ({e.status_code}), discarding session")
        session.expire()
        _store.discard(session.session_id)
        response = flow.profile_failed()
        response.delete_cookie(STATE_KEY)
        response.set_cookie(AC_KEY, tokens.access_token)
        if previous:
            response.delete_cookie(SESSION_COOKIE)
        return response

    session.mark_ready(user_id)
    logger.info(f"[CALLBACK] Session ready for user: {user_id}")

    response = flow.success(tokens)
    response.delete_cookie(STATE_KEY)
    response.set_cookie(AC_KEY, tokens.access_token)
    response.set_cookie(SESSION_COOKIE, session.session_id, httponly=True)
    return response


@router.get("/callback")
async def callback(request: Request, code: Optional[str] = None, state: Optional[str] = None):
    """Spotify redirects the browser here after the user approves."""
    return await complete_login(request, BROWSER_FLOW, code, state)


@router.get("/appCallback")
async def app_callback(request: Request, code: Optional[str] = None, state: Optional[str] = None):
    """Same as /callback, answering in JSON for the app."""
    return await complete_login(request, APP_FLOW, code, state)


# ============== Refresh ==============

@router.get("/refresh_token")
async def refresh_token(request: Request, refresh_token: Optional[str] = None):
    """Exchange a refresh token for a new access token."""
    session = get_session(request)
    token = refresh_token or (session.refresh_token if session else None)

    if not token:
        return JSONResponse(
            {"error": "missing_refresh_token", "error_description": "No refresh token supplied"},
            status_code=400
        )

    try:
        tokens = await _spotify.refresh(token)
    except SpotifyAPIError as e:
        logger.warning(f"[REFRESH] Refresh failed ({e.status_code})")
        return JSONResponse(e.payload, status_code=e.status_code)

    # Only a token belonging to the attached session may update it
    if session and token == session.refresh_token:
        session.update_tokens(tokens.access_token, tokens.refresh_token)
    logger.info(f"[REFRESH] New access token: {mask_token(tokens.access_token)}")

    response = JSONResponse({"access_token": tokens.access_token})
    response.set_cookie(AC_KEY, tokens.access_token)
    return response


# ============== Logout ==============

@router.get("/logout")
async def logout(request: Request):
    """Forget the session and clear the token cookies."""
    session = get_session(request)
    if session:
        _store.discard(session.session_id)
        logger.info(f"[LOGOUT] Session closed for user: {session.user_id}")

    response = JSONResponse({"status": "logged_out"})
    response.delete_cookie(AC_KEY)
    response.delete_cookie(SESSION_COOKIE)
    return response
