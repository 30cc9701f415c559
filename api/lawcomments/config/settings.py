"""Application settings using Pydantic Settings."""

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
    app_name: str = Field(default="lawcomments", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # Security
    trusted_hosts: list[str] = Field(
        default=["localhost", "127.0.0.1"],
        description="Reverse proxies allowed to set forwarding headers",
    )

    # Authentication (tokens are issued by the external identity provider)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Access token expiration (minutes)"
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
    redis_retry_on_timeout: bool = Field(default=True, description="Retry on timeout")
    redis_health_check_interval: int = Field(
        default=30, description="Health check interval"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="lawcomments", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_datacenter: str | None = Field(
        default=None,
        description="Local datacenter; set to replicate with NetworkTopologyStrategy",
    )
    cassandra_replication_factor: int = Field(
        default=1, ge=1, description="Replicas per datacenter for a new keyspace"
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
    cors_max_age: int = Field(default=600, description="CORS max age")

    # Comment intake
    min_content_length: int = Field(
        default=5, description="Minimum comment length after trimming"
    )
    max_content_length: int = Field(
        default=5000, description="Maximum comment length after trimming"
    )
    max_display_name_length: int = Field(
        default=100, description="Maximum display name length"
    )

    # Rate limiting (fixed window, in-process)
    rate_limit_max_per_window: int = Field(
        default=5, description="Submissions allowed per window per address"
    )
    rate_limit_window_ms: int = Field(
        default=60 * 60 * 1000, description="Rate limit window length (ms)"
    )
    rate_limit_cleanup_interval_ms: int = Field(
        default=5 * 60 * 1000, description="Interval between expired-entry sweeps (ms)"
    )

    # Abuse detection
    spam_score_threshold: float = Field(
        default=0.75, description="Spam score above which a comment is spam"
    )
    duplicate_lookback_window_ms: int = Field(
        default=24 * 60 * 60 * 1000,
        description="How far back to look for duplicate submissions (ms)",
    )
    duplicate_similarity_threshold: float = Field(
        default=0.9, description="Word-set similarity treated as a duplicate"
    )

    # Moderation
    default_page_size: int = Field(default=50, description="Default admin page size")
    max_page_size: int = Field(default=100, description="Maximum admin page size")
    max_rejection_reason_length: int = Field(
        default=1000, description="Maximum rejection reason length"
    )
    bulk_moderation_max_ids: int = Field(
        default=100, description="Maximum comments per bulk moderation request"
    )
    public_comments_limit: int = Field(
        default=50, description="Approved comments returned per paragraph"
    )

    # Caching and view revalidation
    stats_cache_ttl_seconds: int = Field(
        default=60, description="Moderation stats cache TTL"
    )
    view_cache_ttl_seconds: int = Field(
        default=300, description="Public document view cache TTL"
    )
    revalidation_channel: str = Field(
        default="views:revalidate",
        description="Redis channel notified when a cached view is invalidated",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
