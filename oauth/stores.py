"""In-memory session store for authenticated Spotify users.

Each browser gets its own session record (keyed by the session cookie)
holding the tokens and the Spotify user id. A session only becomes READY
once the user's profile lookup has completed.
"""

import enum
import secrets
import time
from dataclasses import dataclass, field
from typing import Optional


class SessionState(str, enum.Enum):
    PENDING = "pending"
    READY = "ready"
    EXPIRED = "expired"


@dataclass
class Session:
    session_id: str
    access_token: str
    refresh_token: Optional[str] = None
    user_id: Optional[str] = None
    state: SessionState = SessionState.PENDING
    created_at: int = field(default_factory=lambda: int(time.time()))

    def is_ready(self) -> bool:
        return self.state is SessionState.READY and bool(self.user_id)

    def mark_ready(self, user_id: str) -> None:
        self.user_id = user_id
        self.state = SessionState.READY

    def expire(self) -> None:
        self.state = SessionState.EXPIRED

    def update_tokens(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Store a refreshed token pair; a known user comes back to READY."""
        self.access_token = access_token
        if refresh_token:
            self.refresh_token = refresh_token
        if self.user_id:
            self.state = SessionState.READY


DEFAULT_SESSION_TTL = 24 * 60 * 60  # 24 hours


class SessionStore:
    """Sessions by id. One store per application instance.

    Sessions older than ttl seconds (counted from created_at) are dropped
    on lookup and swept whenever a new session is created.
    """

    def __init__(self, ttl: int = DEFAULT_SESSION_TTL):
        self.ttl = ttl
        self._sessions: dict[str, Session] = {}

    def _is_stale(self, session: Session, now: float) -> bool:
        return now - session.created_at >= self.ttl

    def sweep(self) -> int:
        """Remove stale sessions; returns how many were dropped."""
        now = time.time()
        stale = [sid for sid, s in self._sessions.items() if self._is_stale(s, now)]
        for session_id in stale:
            del self._sessions[session_id]
        return len(stale)

    def create(self, access_token: str, refresh_token: Optional[str] = None) -> Session:
        self.sweep()
        session = Session(
            session_id=secrets.token_urlsafe(32),
            access_token=access_token,
            refresh_token=refresh_token,
        )
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is not None and self._is_stale(session, time.time()):
            del self._sessions[session_id]
            return None
        return session

    def discard(self, session_id: Optional[str]) -> None:
        if session_id:
            self._sessions.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._sessions)
