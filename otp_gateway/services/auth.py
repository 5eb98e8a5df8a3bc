"""OTP issuance/verification and bearer sessions over in-memory stores.

Per-email OTP lifecycle::

    NoChallenge -> Pending (send_otp)
    Pending -> NoChallenge (verified, or found expired on a verify attempt)
    Pending -> Pending (re-issued; the old code stops working)

The challenge is stored before the email is attempted, so a failed delivery
leaves a valid challenge behind.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Protocol

from ..config import Settings, get_settings
from ..errors import (
    Conflict,
    DeliveryFailed,
    Expired,
    InternalError,
    InvalidCode,
    MissingField,
    NoChallenge,
    Unauthenticated,
)
from ..models import OtpChallenge, UserProfile
from ..observability.metrics import OTP_ISSUED, OTP_VERIFY, SESSIONS_CREATED, SESSIONS_ENDED
from ..repos.otps import OtpStore
from ..repos.sessions import SessionStore
from ..repos.users import UserDirectory
from .mailer import SmtpMailer, render_otp_email

log = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def generate_otp() -> str:
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Token from a header of exactly ``"Bearer <token>"``, else None."""
    parts = (authorization or "").split(" ")
    if len(parts) != 2 or parts[0] != "Bearer":
        return None
    return parts[1]


class Mailer(Protocol):
    @property
    def configured(self) -> bool: ...

    async def send(self, *, to: str, subject: str, html_body: str) -> None: ...


@dataclass(frozen=True)
class IssueResult:
    simulated: bool


class AuthService:
    def __init__(self, settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> None:
        self.settings = settings or get_settings()
        self.mailer: Mailer = mailer if mailer is not None else SmtpMailer(self.settings)
        self.users = UserDirectory()
        self.otps = OtpStore()
        ttl = self.settings.SESSION_TTL_MINUTES
        self.sessions = SessionStore(ttl=timedelta(minutes=ttl) if ttl else None)
        self.otp_ttl = timedelta(minutes=self.settings.OTP_TTL_MINUTES)

    # ---- registration ----
    def register(self, email: Optional[str], name: Optional[str] = None) -> UserProfile:
        if not email:
            raise MissingField("Email required")
        user = self.users.create(email, name)
        if user is None:
            raise Conflict("User already exists")
        log.info("user registered: %s", email)
        return user

    # ---- OTP issuance ----
    async def send_otp(self, email: Optional[str]) -> IssueResult:
        if not email:
            raise MissingField("Email required")
        try:
            return await self._issue(email)
        except DeliveryFailed:
            raise
        except Exception as exc:
            log.exception("send-otp failed for %s", email)
            raise InternalError("Failed to send OTP") from exc

    async def _issue(self, email: str) -> IssueResult:
        user = self.users.get_or_create(email)

        now = _now_utc()
        code = generate_otp()
        self.otps.put(email, OtpChallenge(code=code, expires_at=now + self.otp_ttl))

        if not self.mailer.configured:
            log.warning("(Simulated) OTP for %s: %s", email, code)
            OTP_ISSUED.labels(delivery="simulated").inc()
            return IssueResult(simulated=True)

        html = render_otp_email(
            code=code,
            name=user.name,
            now=now,
            ttl_minutes=self.settings.OTP_TTL_MINUTES,
        )
        try:
            await self.mailer.send(to=email, subject=self.settings.OTP_EMAIL_SUBJECT, html_body=html)
        except Exception as exc:  # includes asyncio.TimeoutError
            # challenge stays stored
            log.error("OTP delivery to %s failed: %s", email, exc)
            OTP_ISSUED.labels(delivery="failed").inc()
            raise DeliveryFailed("Failed to send OTP") from exc

        OTP_ISSUED.labels(delivery="sent").inc()
        return IssueResult(simulated=False)

    # ---- OTP verification ----
    def verify_otp(self, email: Optional[str], code: Any) -> str:
        # JSON 0 / false count as absent, like an empty string
        if not email or code in (None, "", 0, False):
            raise MissingField("Email and code required")
        submitted = str(code).strip()

        challenge = self.otps.get(email)
        if challenge is None:
            OTP_VERIFY.labels(outcome="no_challenge").inc()
            raise NoChallenge("No OTP requested for this email")

        # expiry wins over a correct code
        now = _now_utc()
        if challenge.is_expired(now):
            self.otps.consume_if(email, challenge)
            OTP_VERIFY.labels(outcome="expired").inc()
            raise Expired("OTP expired")

        if not secrets.compare_digest(challenge.code.encode(), submitted.encode()):
            OTP_VERIFY.labels(outcome="invalid").inc()
            raise InvalidCode("Invalid OTP code")

        if not self.otps.consume_if(email, challenge):
            # lost a race with another verify or a re-issue
            OTP_VERIFY.labels(outcome="no_challenge").inc()
            raise NoChallenge("No OTP requested for this email")

        session = self.sessions.create(email, now)
        OTP_VERIFY.labels(outcome="ok").inc()
        SESSIONS_CREATED.inc()
        log.info("session created for %s", email)
        return session.token

    # ---- sessions ----
    def resolve_email(self, authorization: Optional[str]) -> str:
        token = parse_bearer(authorization)
        if token is None:
            raise Unauthenticated("Missing token")
        session = self.sessions.resolve(token, _now_utc())
        if session is None:
            raise Unauthenticated("Invalid token")
        return session.email

    def peek_email(self, authorization: Optional[str]) -> Optional[str]:
        """Email behind a live bearer token without touching the store, else None."""
        token = parse_bearer(authorization)
        if token is None:
            return None
        session = self.sessions.peek(token, _now_utc())
        return session.email if session else None

    def profile(self, authorization: Optional[str]) -> UserProfile:
        email = self.resolve_email(authorization)
        return self.users.get_by_email(email) or UserProfile(email=email, name="")

    def logout(self, authorization: Optional[str]) -> None:
        token = parse_bearer(authorization)
        if token is not None and self.sessions.delete(token):
            SESSIONS_ENDED.inc()
