from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


# ---------- USERS ----------
@dataclass
class UserProfile:
    email: str
    name: str = ""


# ---------- OTP CHALLENGES ----------
@dataclass(frozen=True)
class OtpChallenge:
    code: str               # 6 decimal digits
    expires_at: datetime    # aware, UTC

    def is_expired(self, now: datetime) -> bool:
        # valid up to and including expires_at
        return now > self.expires_at


# ---------- SESSIONS ----------
@dataclass(frozen=True)
class Session:
    token: str
    email: str
    created_at: datetime
