"""Env var config loading with pydantic-settings."""

from __future__ import annotations

import structlog
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cspolicy.policy.nonce import NONCE_GENERATORS

logger = structlog.get_logger()

DEFAULT_NONCE_DIRECTIVES = "script-src,style-src"


class PolicySettings(BaseSettings):
    """Process-wide CSP settings, overridable by ``CSP_*`` env vars."""

    model_config = SettingsConfigDict(
        env_prefix="CSP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    report_only: bool = False
    # "" disables nonces; otherwise a key of NONCE_GENERATORS
    nonce_generator: str = ""
    # Comma-separated; only these directives ever receive a nonce
    nonce_directives: str = DEFAULT_NONCE_DIRECTIVES
    session_cookie_name: str = "session"

    log_level: str = "info"
    log_json: bool = True

    @field_validator("nonce_generator")
    @classmethod
    def _known_generator(cls, value: str) -> str:
        value = value.strip().lower()
        if value and value not in NONCE_GENERATORS:
            raise ValueError(
                f"unknown nonce generator {value!r}; expected one of {sorted(NONCE_GENERATORS)}"
            )
        return value

    def nonce_directive_list(self) -> list[str]:
        return [part.strip().lower() for part in self.nonce_directives.split(",") if part.strip()]


_settings: PolicySettings | None = None


def get_settings() -> PolicySettings:
    """Get or create the singleton settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def load_settings() -> PolicySettings:
    """Load settings from env vars (env vars override model defaults)."""
    global _settings
    _settings = PolicySettings()
    logger.info(
        "config_loaded",
        report_only=_settings.report_only,
        nonce_generator=_settings.nonce_generator or None,
        nonce_directives=_settings.nonce_directive_list(),
    )
    return _settings

