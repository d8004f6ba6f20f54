"""Application settings and configuration.

This module defines all configuration options for the Assembly Stage service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from assembly_stage.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Assembly Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Administrator access (sent as X-Admin-Secret)
    admin_secret: str | None = Field(default=None, alias="ADMIN_SECRET")

    # Voter access tokens
    secret_key: str | None = Field(default=None, alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    voter_token_expire_minutes: int = Field(
        default=1_440,  # 24 hours
        alias="VOTER_TOKEN_EXPIRE_MINUTES",
    )
    public_app_url: str = Field(default="http://localhost:3000", alias="PUBLIC_APP_URL")

    # Record store (assemblies, roster units, votes)
    database_url: str = Field(default="sqlite:///./assembly.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Presence store for heartbeats and session flags
    presence_backend: Literal["redis", "memory"] = Field(
        default="redis",
        alias="PRESENCE_BACKEND",
    )
    redis_url: str | None = Field(default=None, alias="REDIS_URL")
    redis_socket_timeout_seconds: float = Field(
        default=2.0,
        alias="REDIS_SOCKET_TIMEOUT_SECONDS",
    )

    # Heartbeat presence
    heartbeat_ttl_seconds: int = Field(default=60, alias="HEARTBEAT_TTL_SECONDS")
    heartbeat_interval_seconds: int = Field(default=30, alias="HEARTBEAT_INTERVAL_SECONDS")

    # Assembly session lifecycle
    session_ttl_seconds: int = Field(default=14_400, alias="SESSION_TTL_SECONDS")  # 4 hours
    closed_session_retention_seconds: int = Field(
        default=3_600,  # 1 hour
        alias="CLOSED_SESSION_RETENTION_SECONDS",
    )
    activation_retry_attempts: int = Field(default=3, alias="ACTIVATION_RETRY_ATTEMPTS")
    activation_retry_backoff_seconds: float = Field(
        default=0.2,
        alias="ACTIVATION_RETRY_BACKOFF_SECONDS",
    )

    # Quorum
    default_required_quorum: float = Field(default=50.0, alias="DEFAULT_REQUIRED_QUORUM")

    # Vote integrity
    vote_server_secret: str | None = Field(default=None, alias="VOTE_SERVER_SECRET")
    require_vote_server_secret: bool = Field(
        default=False,
        alias="REQUIRE_VOTE_SERVER_SECRET",
    )
    vote_hash_algorithm: Literal["sha256", "blake3"] = Field(
        default="sha256",
        alias="VOTE_HASH_ALGORITHM",
    )

    # CORS configuration for the voting and admin frontends
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    def validate_runtime(self) -> None:
        """Fail fast when required external-store credentials are missing.

        Raises:
            ConfigurationError: If the configured presence backend or vote
                secret policy cannot be satisfied.
        """
        if self.presence_backend == "redis" and not (self.redis_url or "").strip():
            raise ConfigurationError(
                "REDIS_URL is not configured; set it or use PRESENCE_BACKEND=memory"
            )
        if self.require_vote_server_secret and not (self.vote_server_secret or "").strip():
            raise ConfigurationError(
                "VOTE_SERVER_SECRET is required but not configured"
            )
        if not (self.secret_key or "").strip():
            raise ConfigurationError("SECRET_KEY is not configured; voter tokens cannot be issued")
        if self.heartbeat_interval_seconds >= self.heartbeat_ttl_seconds:
            raise ConfigurationError(
                "HEARTBEAT_INTERVAL_SECONDS must be shorter than HEARTBEAT_TTL_SECONDS"
            )


settings = Settings()
