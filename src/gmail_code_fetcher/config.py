"""Configuration management for Gmail Code Fetcher.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

import re
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

GMAIL_SCOPE_READONLY = "https://www.googleapis.com/auth/gmail.readonly"
DEFAULT_CODE_PATTERN = "([0-9]{8})"


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Most settings can be overridden via environment variables with the
    GMAIL_CODE_ prefix (e.g., GMAIL_CODE_TOKEN_PATH). The query settings
    also read the unprefixed QUERY, MAX_RESULTS and CODE_PATTERN variables.
    """

    model_config = SettingsConfigDict(
        env_prefix="GMAIL_CODE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # OAuth Configuration
    credentials_path: Path = Field(
        default=Path("google_client_secret.json"),
        description="Path to the OAuth client secrets file downloaded from Google Cloud",
    )
    token_path: Path = Field(
        default=Path(".credentials") / "gmail-token.json",
        description="Path where the authorized token record is cached",
    )
    gmail_scope: str = Field(
        default=GMAIL_SCOPE_READONLY,
        description="OAuth scope used for Gmail access. Reading codes only needs gmail.readonly.",
    )
    oauth_port: int = Field(
        default=0,
        ge=0,
        description="Loopback port for the consent redirect (0 picks a free port)",
    )
    open_browser: bool = Field(
        default=True,
        description="Open the consent URL in a browser during interactive auth",
    )
    refresh_expired_tokens: bool = Field(
        default=True,
        description="Refresh a cached token before use when it has expired",
    )

    # Gmail Configuration
    user_id: str = Field(
        default="me",
        description="Mailbox to read; 'me' is the authenticated account",
    )
    query: str = Field(
        default="",
        validation_alias=AliasChoices("query", "QUERY", "GMAIL_QUERY"),
        description="Gmail search expression (empty lists all mail)",
    )
    max_results: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("max_results", "MAX_RESULTS", "GMAIL_MAX"),
        description="Maximum number of messages to list",
    )
    code_pattern: str = Field(
        default=DEFAULT_CODE_PATTERN,
        validation_alias=AliasChoices("code_pattern", "CODE_PATTERN", "CODE_REGEX"),
        description="Regular expression whose first group is the verification code",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("code_pattern")
    @classmethod
    def _validate_code_pattern(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"code_pattern is not a valid regular expression: {exc}") from exc
        return v

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
