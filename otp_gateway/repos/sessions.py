from __future__ import annotations
import secrets
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

from ..models import Session


def new_token() -> str:
    # 24 random bytes, hex encoded
    return secrets.token_hex(24)


class SessionStore:
    def __init__(self, ttl: Optional[timedelta] = None) -> None:
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        self._ttl = ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, email: str, now: datetime) -> Session:
        with self._lock:
            token = new_token()
            while token in self._sessions:
                token = new_token()
            session = Session(token=token, email=email, created_at=now)
            self._sessions[token] = session
            return session

    def resolve(self, token: str, now: datetime) -> Optional[Session]:
        """Live session for ``token``; sessions past the TTL are dropped on sight."""
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if self._ttl is not None and now > session.created_at + self._ttl:
                del self._sessions[token]
                return None
            return session

    def peek(self, token: str, now: datetime) -> Optional[Session]:
        """Like resolve, but never deletes an expired session."""
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if self._ttl is not None and now > session.created_at + self._ttl:
                return None
            return session

    def delete(self, token: str) -> bool:
        with self._lock:
            return self._sessions.pop(token, None) is not None
