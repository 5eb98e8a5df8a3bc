from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: Literal["dev", "prod", "test"] = "prod"
    DEBUG: bool = False

    # App
    APP_NAME: str = "otp-gateway"
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = Field(default=3000, validation_alias=AliasChoices("APP_PORT", "PORT"))
    CORS_ORIGINS: list[str] = []

    # SMTP (no defaults for credentials; unset means simulated delivery)
    SMTP_HOST: Optional[str] = None
    SMTP_PORT: int = 465
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    FROM_EMAIL: Optional[str] = None
    SMTP_USE_TLS: Optional[bool] = None   # implicit TLS; None -> port 465 only
    SMTP_TIMEOUT: float = 10.0            # seconds

    # OTP / sessions
    OTP_TTL_MINUTES: int = 10
    OTP_EMAIL_SUBJECT: str = "Verify your identity"
    SESSION_TTL_MINUTES: Optional[int] = None   # None: sessions live until logout

    # Logging / Observability
    LOG_LEVEL: str = "INFO"
    METRICS_ENABLED: bool = True
    REQUEST_ID_HEADER: str = "X-Request-ID"

    @model_validator(mode="after")
    def default_tls_from_port(self):
        if self.SMTP_USE_TLS is None:
            self.SMTP_USE_TLS = self.SMTP_PORT == 465
        return self

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_HOST and self.SMTP_USER and self.SMTP_PASS)

    @property
    def mail_from(self) -> str:
        return self.FROM_EMAIL or self.SMTP_USER or "no-reply@example.com"


def get_settings() -> Settings:
    # slightly faster singleton
    global _SETTINGS_SINGLETON
    try:
        return _SETTINGS_SINGLETON  # type: ignore[name-defined]
    except NameError:
        _SETTINGS_SINGLETON = Settings()  # type: ignore[assignment]
        return _SETTINGS_SINGLETON
