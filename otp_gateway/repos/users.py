from __future__ import annotations
import threading
from typing import Dict, Optional

from ..models import UserProfile


class UserDirectory:
    """email -> UserProfile. Records are never deleted."""

    def __init__(self) -> None:
        self._users: Dict[str, UserProfile] = {}
        self._lock = threading.Lock()

    def __contains__(self, email: str) -> bool:
        with self._lock:
            return email in self._users

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def get_by_email(self, email: str) -> Optional[UserProfile]:
        with self._lock:
            return self._users.get(email)

    def create(self, email: str, name: Optional[str] = None) -> Optional[UserProfile]:
        """Insert a new profile; returns None when the email is already taken."""
        with self._lock:
            if email in self._users:
                return None
            user = UserProfile(email=email, name=name or "")
            self._users[email] = user
            return user

    def get_or_create(self, email: str) -> UserProfile:
        with self._lock:
            user = self._users.get(email)
            if user is None:
                user = UserProfile(email=email, name="")
                self._users[email] = user
            return user
