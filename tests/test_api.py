import pytest

from otp_gateway.main import create_app
from tests.conftest import FakeMailer, login, pending_code

pytestmark = pytest.mark.asyncio


async def test_register_send_verify_profile_logout(client, app):
    auth = app.state.auth

    r = await client.post("/api/register", json={"email": "a@x.com"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "message": "Registered"}

    r = await client.post("/api/send-otp", json={"email": "a@x.com"})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True and body["simulated"] is True

    r = await client.post("/api/verify-otp", json={"email": "a@x.com", "code": pending_code(auth, "a@x.com")})
    assert r.status_code == 200
    token = r.json()["token"]
    assert r.json()["ok"] is True

    headers = {"Authorization": f"Bearer {token}"}
    r = await client.get("/api/profile", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "user": {"email": "a@x.com", "name": ""}}

    r = await client.post("/api/logout", headers=headers)
    assert r.json() == {"ok": True}

    r = await client.get("/api/profile", headers=headers)
    assert r.status_code == 401
    assert r.json() == {"error": "Invalid token"}


async def test_register_errors(client):
    r = await client.post("/api/register", json={"name": "No Email"})
    assert r.status_code == 400
    assert r.json() == {"error": "Email required"}

    await client.post("/api/register", json={"email": "dup@x.com", "name": "D"})
    r = await client.post("/api/register", json={"email": "dup@x.com"})
    assert r.status_code == 400
    assert r.json() == {"error": "User already exists"}


async def test_register_keeps_name_for_profile(client, app):
    await client.post("/api/register", json={"email": "n@x.com", "name": "Nia"})
    token = await login(client, app.state.auth, "n@x.com")

    r = await client.get("/api/profile", headers={"Authorization": f"Bearer {token}"})
    assert r.json()["user"] == {"email": "n@x.com", "name": "Nia"}


async def test_send_otp_requires_email(client):
    r = await client.post("/api/send-otp", json={})
    assert r.status_code == 400
    assert r.json() == {"error": "Email required"}


async def test_send_otp_real_delivery_and_failure(settings):
    mailer = FakeMailer(configured=True)
    app = create_app(settings, mailer=mailer)
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.post("/api/send-otp", json={"email": "m@x.com"})
        assert r.status_code == 200
        assert r.json() == {"ok": True, "message": "OTP sent"}
        assert mailer.sent[0]["to"] == "m@x.com"

        mailer.error = OSError("connection refused")
        r = await ac.post("/api/send-otp", json={"email": "m@x.com"})
        assert r.status_code == 500
        assert r.json() == {"error": "Failed to send OTP"}

        # challenge from the failed attempt still verifies
        code = pending_code(app.state.auth, "m@x.com")
        r = await ac.post("/api/verify-otp", json={"email": "m@x.com", "code": code})
        assert r.status_code == 200


@pytest.mark.parametrize(
    "body,error",
    [
        ({"email": "v@x.com"}, "Email and code required"),
        ({"code": "123456"}, "Email and code required"),
        ({"email": "nobody@x.com", "code": "123456"}, "No OTP requested for this email"),
    ],
)
async def test_verify_otp_errors(client, body, error):
    r = await client.post("/api/verify-otp", json=body)
    assert r.status_code == 400
    assert r.json() == {"error": error}


async def test_verify_otp_invalid_code(client, app):
    await client.post("/api/send-otp", json={"email": "w@x.com"})
    code = pending_code(app.state.auth, "w@x.com")
    wrong = str(int(code) - 1) if code != "100000" else "100001"

    r = await client.post("/api/verify-otp", json={"email": "w@x.com", "code": wrong})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid OTP code"}


async def test_verify_otp_accepts_numeric_code(client, app):
    await client.post("/api/send-otp", json={"email": "num@x.com"})
    code = pending_code(app.state.auth, "num@x.com")

    r = await client.post("/api/verify-otp", json={"email": "num@x.com", "code": int(code)})
    assert r.status_code == 200


@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": ""},
        {"Authorization": "Bearer"},
        {"Authorization": "Token abc"},
        {"Authorization": "bearer abc"},
        {"Authorization": "Bearer a b"},
        {"Authorization": "Bearer unknown-token"},
    ],
)
async def test_profile_bad_authorization_is_401(client, headers):
    r = await client.get("/api/profile", headers=headers)
    assert r.status_code == 401
    assert "error" in r.json()


@pytest.mark.parametrize("headers", [{}, {"Authorization": "junk"}, {"Authorization": "Bearer never-issued"}])
async def test_logout_always_ok(client, headers):
    r = await client.post("/api/logout", headers=headers)
    assert r.status_code == 200
    assert r.json() == {"ok": True}


async def test_logout_only_ends_its_own_session(client, app):
    auth = app.state.auth
    t1 = await login(client, auth, "s1@x.com")
    t2 = await login(client, auth, "s1@x.com")

    await client.post("/api/logout", headers={"Authorization": f"Bearer {t1}"})

    assert (await client.get("/api/profile", headers={"Authorization": f"Bearer {t1}"})).status_code == 401
    assert (await client.get("/api/profile", headers={"Authorization": f"Bearer {t2}"})).status_code == 200


async def test_malformed_body_is_400(client):
    r = await client.post("/api/verify-otp", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400
    assert "error" in r.json()

    r = await client.post("/api/register", json=["a@x.com"])
    assert r.status_code == 400


async def test_missing_body_is_treated_as_empty(client):
    r = await client.post("/api/send-otp")
    assert r.status_code == 400
    assert r.json() == {"error": "Email required"}


async def test_apps_do_not_share_state(settings):
    a = create_app(settings, mailer=FakeMailer(configured=False))
    b = create_app(settings, mailer=FakeMailer(configured=False))
    a.state.auth.register("only-a@x.com")
    assert b.state.auth.users.get_by_email("only-a@x.com") is None


async def test_landing_page_health_and_metrics(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert "text/html" in r.headers["content-type"]

    r = await client.get("/health")
    assert r.json()["status"] == "ok"
    assert r.json()["mailer"] == "simulated"

    r = await client.get("/metrics")
    assert r.status_code == 200
    assert "http_requests_total" in r.text


async def test_metrics_disabled_is_404():
    from httpx import ASGITransport, AsyncClient
    from tests.conftest import mk_settings

    app = create_app(mk_settings(METRICS_ENABLED=False), mailer=FakeMailer(configured=False))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/metrics")
    assert r.status_code == 404


async def test_request_id_is_echoed(client):
    r = await client.get("/health/liveness", headers={"X-Request-ID": "rid-123"})
    assert r.headers["X-Request-ID"] == "rid-123"

    r = await client.get("/health/liveness")
    assert len(r.headers["X-Request-ID"]) == 32


async def test_request_logging_does_not_expire_sessions(monkeypatch):
    from datetime import datetime, timedelta, timezone
    from httpx import ASGITransport, AsyncClient
    from otp_gateway.services import auth as auth_service
    from tests.conftest import mk_settings

    t0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    app = create_app(mk_settings(SESSION_TTL_MINUTES=30), mailer=FakeMailer(configured=False))
    session = app.state.auth.sessions.create("old@x.com", t0)
    monkeypatch.setattr(auth_service, "_now_utc", lambda: t0 + timedelta(hours=1))

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        r = await ac.get("/health/liveness", headers={"Authorization": f"Bearer {session.token}"})
    assert r.status_code == 200
    assert len(app.state.auth.sessions) == 1


async def test_register_rejects_non_string_name(client):
    r = await client.post("/api/register", json={"email": "obj@x.com", "name": {"first": "A"}})
    assert r.status_code == 400
    assert r.json() == {"error": "Invalid request body"}
