from __future__ import annotations
import logging
import time
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..observability.logging import bind_record, get_request_id

log = logging.getLogger("otp_gateway.request")


def _session_email(request: Request) -> str | None:
    auth = getattr(request.app.state, "auth", None)
    header = request.headers.get("authorization")
    if auth is None or not header:
        return None
    return auth.peek_email(header)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        header = request.app.state.settings.REQUEST_ID_HEADER
        rid = get_request_id(request, header)
        start = time.perf_counter()
        timestamp = datetime.now(timezone.utc).isoformat()

        # resolved before the handler runs so a logout still logs who it was
        email = _session_email(request)
        user_info = f"email={email}" if email else "user=anonymous"

        try:
            response = await call_next(request)
        except Exception:
            dur_ms = int((time.perf_counter() - start) * 1000)
            rec = bind_record(logging.LogRecord(
                name=log.name, level=logging.ERROR, pathname=__file__, lineno=0,
                msg="unhandled_error", args=(), exc_info=None
            ), request_id=rid, extra=f"timestamp={timestamp} path={request.url.path} method={request.method} ms={dur_ms} {user_info}")
            log.handle(rec)
            raise

        dur_ms = int((time.perf_counter() - start) * 1000)
        response.headers[header] = rid
        rec = bind_record(logging.LogRecord(
            name=log.name, level=logging.INFO, pathname=__file__, lineno=0,
            msg="request", args=(), exc_info=None
        ), request_id=rid, extra=f"timestamp={timestamp} path={request.url.path} method={request.method} status={response.status_code} ms={dur_ms} {user_info}")
        log.handle(rec)
        return response
