"""
accesslog: Configuration
==========================

What:  Settings for the access-log shim, loaded with Pydantic Settings.
How:   Reads ACCESSLOG_* environment variables (or a .env file), validates
       them on load and exposes a module-level `settings` singleton.
Who:   The record builder, the logging sink and the middleware. Each of
       them also accepts an explicit AccessLogSettings instance, which is
       what the tests use.

List-valued fields (redacted_params, excluded_paths) are given as JSON in the
environment, e.g. ACCESSLOG_REDACTED_PARAMS='["p", "token"]'.
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AccessLogSettings(BaseSettings):
    """
    Access-log settings.

    Defaults match the common-log-format conventions: `-` for missing
    fields, `p` as the password query parameter, `u` as the username
    query parameter.
    """

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    # "common": Apache-style access line; "json": one JSON object per record
    log_format: str = Field(default="common")

    # Logger the default LoggingSink writes to
    logger_name: str = Field(default="accesslog.access")

    # ── Redaction ─────────────────────────────────────────────────────────
    redacted_params: List[str] = Field(default_factory=lambda: ["p"])
    redaction_marker: str = Field(default="[REDACTED]")

    # ── Record fields ─────────────────────────────────────────────────────
    username_param: str = Field(default="u")
    request_id_header: str = Field(default="Request-Id")
    placeholder: str = Field(default="-", min_length=1)
    error_tag: str = Field(default="encountered error")

    # ── Middleware ────────────────────────────────────────────────────────
    # Requests to these paths are passed through without a log record
    excluded_paths: List[str] = Field(default_factory=list)

    model_config = SettingsConfigDict(
        env_prefix="ACCESSLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        lower = v.lower()
        if lower not in {"common", "json"}:
            raise ValueError(f"Invalid log_format '{v}'. Must be 'common' or 'json'")
        return lower


settings = AccessLogSettings()
