from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .config import Settings, get_settings
from .api.routers import auth as auth_router
from .api.routers import health as health_router
from .api.routers import metrics as metrics_router
from .api.routers import pages as pages_router
from .errors import AuthError, auth_error_handler, validation_error_handler
from .observability.logging import setup_logging
from .middleware.request_context import RequestContextMiddleware
from .observability.metrics import MetricsHTTPMiddleware
from .services.auth import AuthService, Mailer


def create_app(settings: Optional[Settings] = None, mailer: Optional[Mailer] = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

    # one service per app; handlers reach it through app.state
    app.state.settings = settings
    app.state.auth = AuthService(settings, mailer=mailer)

    if settings.CORS_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # then our own middlewares
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(MetricsHTTPMiddleware)

    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(pages_router.router)
    app.include_router(auth_router.router)
    app.include_router(health_router.router)
    app.include_router(metrics_router.router)

    return app


def _build_default_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)
    return create_app(settings)


app = _build_default_app()


if __name__ == "__main__":
    S = get_settings()
    uvicorn.run("otp_gateway.main:app", host=S.APP_HOST, port=S.APP_PORT, reload=S.DEBUG)
