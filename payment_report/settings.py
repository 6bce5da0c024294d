from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when a required credential or environment value is missing"""
    pass


class Settings(BaseSettings):
    """
    Centralized configuration for the payment report.
    Loads from .env file or environment variables.

    Built once per process by the CLI entry points (see load_settings) and
    passed explicitly to clients, the cache and the orchestrator.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sentry
    SENTRY_TOKEN: Optional[str] = None
    SENTRY_ORG: str = "xajeet"
    SENTRY_BASE_URL: str = "https://sentry.io/api/0"
    PAYMENT_ERROR_ISSUE_ID: str = "6722248692"
    PAYMENT_SUCCESS_ISSUE_ID: str = "6722249177"

    # Gravity Forms
    GRAVITY_FORMS_URL: Optional[str] = None
    GRAVITY_FORMS_KEY: Optional[str] = None
    GRAVITY_FORMS_SECRET: Optional[str] = None

    # SendGrid Configuration
    SENDGRID_API_KEY: Optional[str] = None
    SENDGRID_FROM_EMAIL: Optional[str] = None
    REPORT_RECIPIENTS_STR: str = ""

    # Storage
    DATA_DIR: Path = Path("data")

    # HTTP
    HTTP_TIMEOUT_SECONDS: float = 60.0

    @field_validator("GRAVITY_FORMS_URL")
    @classmethod
    def strip_trailing_slash(cls, value: Optional[str]) -> Optional[str]:
        return value.rstrip("/") if value else value

    @property
    def RAW_DIR(self) -> Path:
        """Per-source chunk directories live here"""
        return self.DATA_DIR / "raw"

    @property
    def MANUAL_DIR(self) -> Path:
        return self.DATA_DIR / "manual"

    @property
    def PROCESSED_DIR(self) -> Path:
        return self.DATA_DIR / "processed"

    @property
    def REPORT_RECIPIENTS(self) -> List[str]:
        """Parse comma-separated recipients into a list"""
        return [r.strip() for r in self.REPORT_RECIPIENTS_STR.split(",") if r.strip()]

    # ------------------------------------------------------------------
    # Stage guards
    # ------------------------------------------------------------------

    def require_sentry(self) -> str:
        if not self.SENTRY_TOKEN:
            raise ConfigurationError("SENTRY_TOKEN environment variable is required")
        return self.SENTRY_TOKEN

    def require_gravity_forms(self) -> None:
        if not (self.GRAVITY_FORMS_URL and self.GRAVITY_FORMS_KEY and self.GRAVITY_FORMS_SECRET):
            raise ConfigurationError(
                "Missing Gravity Forms credentials. Set GRAVITY_FORMS_URL, "
                "GRAVITY_FORMS_KEY, and GRAVITY_FORMS_SECRET environment variables."
            )

    def require_email(self) -> None:
        missing = [
            name for name, value in (
                ("SENDGRID_API_KEY", self.SENDGRID_API_KEY),
                ("SENDGRID_FROM_EMAIL", self.SENDGRID_FROM_EMAIL),
                ("REPORT_RECIPIENTS_STR", self.REPORT_RECIPIENTS_STR.strip()),
            ) if not value
        ]
        if missing:
            raise ConfigurationError(f"Email delivery not configured (missing: {', '.join(missing)})")


def load_settings(**overrides) -> Settings:
    """
    Build the process-wide Settings once.
    Pydantic validation failures surface as ConfigurationError.
    """
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
