from __future__ import annotations
from typing import List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from otp_gateway.config import Settings
from otp_gateway.main import create_app
from otp_gateway.services.auth import AuthService


class FakeMailer:
    """Mailer double: records every send, optionally raises instead of sending."""

    def __init__(self, configured: bool = True, error: Optional[BaseException] = None) -> None:
        self._configured = configured
        self.error = error
        self.sent: List[dict] = []

    @property
    def configured(self) -> bool:
        return self._configured

    async def send(self, *, to: str, subject: str, html_body: str) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append({"to": to, "subject": subject, "html_body": html_body})


def mk_settings(**overrides) -> Settings:
    values = dict(
        ENV="test",
        SMTP_HOST=None,
        SMTP_USER=None,
        SMTP_PASS=None,
        FROM_EMAIL=None,
        SESSION_TTL_MINUTES=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings() -> Settings:
    return mk_settings()


@pytest.fixture
def mailer() -> FakeMailer:
    return FakeMailer(configured=True)


@pytest.fixture
def service(settings, mailer) -> AuthService:
    return AuthService(settings, mailer=mailer)


@pytest.fixture
def app(settings):
    # no transport configured: send-otp answers with simulated delivery
    return create_app(settings, mailer=FakeMailer(configured=False))


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# ---------- helpers ----------
def pending_code(auth: AuthService, email: str) -> str:
    challenge = auth.otps.get(email)
    assert challenge is not None, f"no challenge for {email}"
    return challenge.code


async def login(client: AsyncClient, auth: AuthService, email: str) -> str:
    r = await client.post("/api/send-otp", json={"email": email})
    assert r.status_code == 200
    r = await client.post("/api/verify-otp", json={"email": email, "code": pending_code(auth, email)})
    assert r.status_code == 200
    return r.json()["token"]
