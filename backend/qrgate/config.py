"""
QRGate: Application Configuration
==================================

What:  Centralized configuration management using Pydantic Settings.
Why:   Type-safe environment variable loading with validation on startup.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py; the app factory passes it down to every component.
When:  Loaded once at module import time; immutable afterwards.

Deployment modes:
    AUTH_MODE=token   POST /generate-qr, shared-secret token, two rate-limit scopes
    AUTH_MODE=origin  GET /qr, Referer allow-list, no rate limiting
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Used when API_TOKEN is not set. Startup logs a warning whenever it is active.
DEFAULT_API_TOKEN = "development_token_change_me"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for local development. Production
    deployments MUST override API_TOKEN (token mode) or ALLOWED_DOMAINS
    (origin mode).
    """

    # ── Deployment ────────────────────────────────────────────────────────
    # What: Which transport binding and authentication strategy to mount
    # Only one strategy is ever active in a process
    auth_mode: Literal["token", "origin"] = Field(default="token")

    # What: development exposes encoder error detail in 500 responses and
    # lowers the default log level to DEBUG
    app_env: Literal["development", "production"] = Field(default="production")

    # ── Authentication ────────────────────────────────────────────────────
    # What: Shared secret compared against the `token` body field
    api_token: str = Field(default=DEFAULT_API_TOKEN)

    # What: Comma-separated substrings; a request is admitted when its
    # Referer contains any of them. Empty means every origin is admitted.
    allowed_domains: str = Field(default="")

    @property
    def allowed_domains_list(self) -> List[str]:
        """Splits ALLOWED_DOMAINS into trimmed, non-empty entries."""
        return [d.strip() for d in self.allowed_domains.split(",") if d.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)

    # What: Controls verbosity of logging
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL (None = pick by app_env)
    log_level: Optional[str] = Field(default=None)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Optional[str]) -> Optional[str]:
        """Ensures log level is a valid Python logging level name."""
        if v is None:
            return v
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # What: Coarse per-client budget applied to every route except /health
    global_rate_limit_requests: int = Field(default=100, ge=1, le=100_000)
    global_rate_limit_window: int = Field(default=900, ge=1, le=86_400)  # seconds

    # What: Stricter per-client budget applied only to POST /generate-qr
    generate_rate_limit_requests: int = Field(default=30, ge=1, le=100_000)
    generate_rate_limit_window: int = Field(default=300, ge=1, le=86_400)  # seconds

    # What: Upper bound on tracked (scope, client) windows
    rate_limit_max_keys: int = Field(default=10_000, ge=1)

    # What: Use the first X-Forwarded-For entry as the client key
    # Only enable behind a proxy that overwrites the header
    trust_proxy: bool = Field(default=False)

    # ── QR Rendering ──────────────────────────────────────────────────────
    # What: Quiet zone width in modules around the code
    qr_border: int = Field(default=1, ge=0, le=10)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level
        return "DEBUG" if self.is_development else "INFO"

    def configuration_warnings(self) -> List[str]:
        """
        What:  Lists insecure-but-allowed configuration choices.
        When:  Called during app startup (lifespan) and logged at WARNING.
        Why:   The service still starts, but operators must see the risk.
        """
        warnings = []
        if self.auth_mode == "token" and self.api_token == DEFAULT_API_TOKEN:
            warnings.append(
                "Running with default API token. "
                "Set API_TOKEN environment variable in production."
            )
        if self.auth_mode == "origin" and not self.allowed_domains_list:
            warnings.append(
                "ALLOWED_DOMAINS is not set: the referrer check is DISABLED and "
                "every origin is admitted. Only use this for local development."
            )
        return warnings


# Singleton instance used by the module-level app in main.py
settings = Settings()
