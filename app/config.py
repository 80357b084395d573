"""
Configuration Management Module

Settings for the CodeCraft backend, read from the environment (and .env)
with Pydantic Settings, plus the immutable GitHub App config built from them.

Design Decisions:
- Everything has a default except the GitHub App credentials
- Build an explicit GitHub App config object once at startup (fail-fast)
- Accept two variable-name pairs for the GitHub App credentials
- Support both file path and direct content for private key
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class RetryPolicy(BaseModel):
    """Retry ceiling and backoff delays for outbound GitHub calls."""

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=3, ge=1, description="Total attempts, first call included")
    base_delay: float = Field(default=1.0, ge=0.0, description="Exponential backoff base in seconds")
    rate_limit_delay: float = Field(default=5.0, ge=0.0, description="Linear backoff step for HTTP 429")


class GitHubAppConfig(BaseModel):
    """
    Immutable GitHub App configuration.

    Constructed once at process start by Settings.github_app_config() and
    passed by reference into the token issuer and the GitHub client.
    """

    model_config = ConfigDict(frozen=True)

    app_id: str
    private_key: str
    api_base: str = "https://api.github.com"
    user_agent: str = "CodeCraft"
    timeout: float = 30.0
    rate_limit: int = 5000
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class Settings(BaseSettings):
    """
    Environment-backed settings.

    Credentials only ever come from the environment; they are never logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # =========================================================================
    # GitHub App Configuration
    # =========================================================================
    github_app_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_APP_ID", "APP_ID"),
        description="GitHub App ID from app settings"
    )

    github_private_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_APP_PRIVATE_KEY", "PRIVATE_KEY"),
        description="GitHub App private key content (PEM or raw base64 body)"
    )

    github_private_key_path: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_PRIVATE_KEY_PATH", "PRIVATE_KEY_PATH"),
        description="Path to GitHub App private key .pem file"
    )

    github_api_base: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL"
    )

    github_user_agent: str = Field(
        default="CodeCraft",
        description="User-Agent sent with every GitHub API request"
    )

    # =========================================================================
    # Outbound HTTP / Retry Configuration
    # =========================================================================
    http_timeout: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Per-request timeout for GitHub API calls in seconds"
    )

    github_rate_limit: int = Field(
        default=5000,
        ge=100,
        description="GitHub API rate limit per hour"
    )

    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for a retryable GitHub call"
    )

    retry_base_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Base delay between retries in seconds"
    )

    retry_rate_limit_delay: float = Field(
        default=5.0,
        ge=0.0,
        description="Delay step applied per attempt after HTTP 429"
    )

    # =========================================================================
    # Storage Configuration
    # =========================================================================
    database_path: Optional[str] = Field(
        default=None,
        description="SQLite database file; unset keeps data in memory"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    cors_origins: str = Field(
        default="*",
        description="Comma-separated origins allowed by CORS"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable request/response logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def cors_origins_list(self) -> List[str]:
        """Get list of allowed CORS origins."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            base_delay=self.retry_base_delay,
            rate_limit_delay=self.retry_rate_limit_delay,
        )

    def get_private_key(self) -> str:
        """
        Get the GitHub App private key content.

        Supports two modes:
        1. Direct content via GITHUB_APP_PRIVATE_KEY (or PRIVATE_KEY)
        2. File path via GITHUB_PRIVATE_KEY_PATH

        The returned key is normalized to a PEM block.

        Returns:
            Private key content as string

        Raises:
            ConfigurationError: If neither option is configured or file doesn't exist
        """
        # Imported here: github_auth depends on this module
        from app.services.github_auth import normalize_private_key

        # Direct content takes precedence
        if self.github_private_key and self.github_private_key.strip():
            return normalize_private_key(self.github_private_key)

        # Fall back to file path
        if self.github_private_key_path:
            key_path = Path(self.github_private_key_path)
            if not key_path.exists():
                raise ConfigurationError(f"Private key file not found: {key_path}")
            return normalize_private_key(key_path.read_text())

        raise ConfigurationError(
            "GitHub private key not configured. "
            "Set GITHUB_APP_PRIVATE_KEY (or PRIVATE_KEY) or GITHUB_PRIVATE_KEY_PATH"
        )

    def github_app_config(self) -> GitHubAppConfig:
        """
        Build the GitHub App configuration object.

        Raises:
            ConfigurationError: If the App ID or private key is absent
        """
        if not self.github_app_id or not self.github_app_id.strip():
            raise ConfigurationError(
                "GitHub App ID not configured. Set GITHUB_APP_ID (or APP_ID)"
            )

        return GitHubAppConfig(
            app_id=self.github_app_id.strip(),
            private_key=self.get_private_key(),
            api_base=self.github_api_base.rstrip("/"),
            user_agent=self.github_user_agent,
            timeout=self.http_timeout,
            rate_limit=self.github_rate_limit,
            retry=self.retry_policy,
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Settings read once per process.
    """
    return Settings()
