"""Session middleware.

Resolves the session cookie to a Session record and attaches it to
request.state.session, so route handlers never touch shared globals.
"""

import logging

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from oauth.stores import SessionStore

logger = logging.getLogger(__name__)

SESSION_COOKIE = "spotify-session"


class SessionMiddleware(BaseHTTPMiddleware):
    """Attach the caller's session (or None) to the request."""

    def __init__(self, app, store: SessionStore):
        super().__init__(app)
        self.store = store

    async def dispatch(self, request: Request, call_next):
        session_id = request.cookies.get(SESSION_COOKIE)
        session = self.store.get(session_id)
        if session_id and session is None:
            logger.debug("[SESSION] Unknown session cookie, treating request as anonymous")
        request.state.session = session
        return await call_next(request)


def get_session(request: Request):
    """Return the session attached by SessionMiddleware, if any."""
    return getattr(request.state, "session", None)
