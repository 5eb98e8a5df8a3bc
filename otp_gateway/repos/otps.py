from __future__ import annotations
import threading
from typing import Dict, Optional

from ..models import OtpChallenge


class OtpStore:
    """At most one outstanding challenge per email; a new one overwrites the old."""

    def __init__(self) -> None:
        self._challenges: Dict[str, OtpChallenge] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def put(self, email: str, challenge: OtpChallenge) -> None:
        with self._lock:
            self._challenges[email] = challenge

    def get(self, email: str) -> Optional[OtpChallenge]:
        with self._lock:
            return self._challenges.get(email)

    def discard(self, email: str) -> None:
        with self._lock:
            self._challenges.pop(email, None)

    def consume_if(self, email: str, challenge: OtpChallenge) -> bool:
        """Delete the challenge only if it is still the one the caller checked.

        Returns False when it was overwritten or consumed in the meantime.
        """
        with self._lock:
            if self._challenges.get(email) is not challenge:
                return False
            del self._challenges[email]
            return True
