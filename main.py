"""Spotify OAuth relay server.

It handles:
- Spotify Authorization Code flow (/login, /callback, /appLogin, /appCallback)
- Token refresh (/refresh_token) and logout (/logout)
- Read-only playlist proxy (/playlists, /playlist/{id})
- Static browser client from ./public
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import Settings, load_settings
from logging_config import setup_logging
from oauth.endpoints import router as oauth_router, init_oauth_routes
from oauth.middleware import SessionMiddleware
from oauth.stores import SessionStore
from playlists import router as playlist_router, init_playlist_routes
from spotify_client import SpotifyClient

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


def create_app(settings: Settings, spotify: SpotifyClient = None, store: SessionStore = None) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Loaded configuration.
        spotify: Spotify client (a default one is built from settings).
        store: Session store (a fresh in-memory one by default).
    """
    spotify = spotify or SpotifyClient(settings)
    store = store if store is not None else SessionStore(ttl=settings.session_ttl)

    if not settings.is_valid():
        logger.warning("[STARTUP] CLIENT_ID / CLIENT_SECRET not set, token exchange will fail")

    app = FastAPI(
        title="Spotify OAuth Relay",
        description="Authorization Code relay and playlist proxy for the Spotify Web API",
        version=VERSION,
    )
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(SessionMiddleware, store=store)

    # Browser client on another origin sends cookies along
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.allowed_origin],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ============== Include Routers ==============

    init_oauth_routes(settings, spotify, store)
    app.include_router(oauth_router)

    init_playlist_routes(spotify)
    app.include_router(playlist_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "spotify-oauth-relay", "sessions": len(store)}

    # Static files last: the mount at "/" would shadow any later route
    static_dir = settings.static_dir
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
    else:
        logger.info(f"[STARTUP] No static directory at {static_dir}")

    return app


settings = load_settings()
setup_logging(settings.log_level, settings.log_format)
app = create_app(settings)


def run():
    """Console entry point."""
    import uvicorn
    logger.info(f"[STARTUP] Listening on {settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port)


# ============== Main Entry Point ==============

if __name__ == "__main__":
    run()
