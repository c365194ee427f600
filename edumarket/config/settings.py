"""Application settings using Pydantic Settings."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="edumarket", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Authentication (tokens are issued by the external identity provider)
    auth_token_key: str = Field(
        default="dev-identity-signing-key-change-in-production!",
        description="Key used to verify identity tokens (secret or PEM public key)",
    )
    auth_algorithm: str = Field(default="HS256", description="Token algorithm")
    auth_audience: str | None = Field(
        default=None, description="Expected token audience (None = not checked)"
    )
    auth_role_claim: str = Field(
        default="role", description="Token claim holding the user role"
    )

    # Identity provider (Clerk backend API)
    identity_api_url: str = Field(
        default="https://api.clerk.com/v1", description="Identity provider API base"
    )
    identity_secret_key: str | None = Field(
        default=None, description="Identity provider secret key"
    )
    identity_timeout_seconds: float = Field(
        default=10.0, description="Identity provider request timeout"
    )
    identity_webhook_secret: str | None = Field(
        default=None, description="Identity provider webhook signing secret (svix)"
    )

    # Payment gateway (Stripe)
    stripe_secret_key: str | None = Field(default=None, description="Stripe API key")
    stripe_webhook_secret: str | None = Field(
        default=None, description="Stripe webhook signing secret"
    )
    stripe_webhook_tolerance_seconds: int = Field(
        default=300, description="Max webhook timestamp age"
    )
    currency: str = Field(default="USD", description="Checkout currency (ISO 4217)")
    currency_minor_unit: Decimal = Field(
        default=Decimal("0.01"), description="Smallest currency unit"
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Fallback origin for checkout redirects",
    )

    # Redis
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Redis connect timeout"
    )
    enrollment_cache_ttl_seconds: int = Field(
        default=3600, description="TTL for cached enrollment membership"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="edumarket", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_replication_factor: int = Field(
        default=1, description="Replication factor outside production"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def stripe_configured(self) -> bool:
        """Check if the payment gateway is configured."""
        return bool(self.stripe_secret_key)

    @property
    def identity_configured(self) -> bool:
        """Check if the identity provider backend API is configured."""
        return bool(self.identity_secret_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
