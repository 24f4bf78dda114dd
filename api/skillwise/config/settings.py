"""SkillWise settings.

Values come from the environment (or a ``.env`` file). Field names map to
upper-case variables, e.g. ``CASSANDRA_HOSTS=db1,db2`` or
``QUIZ_ATTEMPT_HISTORY_LIMIT=5``.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEV_SECRET_KEY = "dev-jwt-secret-key-change-in-production-32chars!"
MIN_SECRET_KEY_LENGTH = 32

CommaList = Annotated[list[str], NoDecode]


class Settings(BaseSettings):
    """Runtime configuration for the SkillWise API."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="skillwise", description="Service name in logs")
    app_version: str = Field(default="0.1.0", description="Reported by /health")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Deployment environment"
    )

    # Uvicorn (python -m skillwise)
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=8000, description="Bind port")
    api_workers: int = Field(default=1, description="Uvicorn worker processes")
    api_reload: bool = Field(default=True, description="Reload on code changes (dev only)")

    # Access tokens
    auth_secret_key: str = Field(
        default=DEV_SECRET_KEY,
        description="HMAC key used to sign and verify access tokens",
    )
    auth_algorithm: str = Field(default="HS256", description="Access token algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=60, description="Lifetime of an access token in minutes"
    )

    # Redis: notification push and unread counter cache; the API runs without it
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis URL")
    redis_max_connections: int = Field(default=10, description="Connection pool size")
    redis_socket_timeout: float = Field(default=5.0, description="Seconds per command")
    redis_socket_connect_timeout: float = Field(
        default=5.0, description="Seconds to establish a connection"
    )
    redis_retry_on_timeout: bool = Field(
        default=True, description="Retry a command once after a timeout"
    )
    redis_unread_cache_ttl: int = Field(
        default=300, description="Seconds an unread notification count stays cached"
    )

    # Cassandra
    cassandra_hosts: CommaList = Field(
        default=["localhost"], description="Contact points, comma separated"
    )
    cassandra_port: int = Field(default=9042, description="Native protocol port")
    cassandra_keyspace: str = Field(
        default="skillwise", description="Keyspace holding every SkillWise table"
    )
    cassandra_username: str | None = Field(default=None, description="Login, if any")
    cassandra_password: str | None = Field(default=None, description="Password, if any")
    cassandra_protocol_version: int = Field(
        default=4, description="Native protocol version"
    )
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Seconds to reach the cluster at startup"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Default per-query timeout in seconds"
    )

    # Logging (structlog)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Minimum level written to every sink"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Console renderer; files are always JSON"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Add module, function and line to each event"
    )
    log_to_file: bool = Field(default=True, description="Write rotating JSON files")
    log_dir: str = Field(default="logs", description="Directory of the log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Rotate a log file past this size"
    )
    log_file_backup_count: int = Field(
        default=5, description="Rotated files kept per log"
    )
    log_requests: bool = Field(
        default=True, description="Emit request_started and request_finished"
    )
    log_exclude_paths: CommaList = Field(
        default=["/health"], description="Path prefixes without request logs"
    )

    # CORS
    cors_origins: CommaList = Field(default=["*"], description="Allowed origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow cookies")
    cors_allow_methods: CommaList = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: CommaList = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="Preflight cache in seconds")

    # Learning
    quiz_attempt_history_limit: int = Field(
        default=5, ge=1, description="Quiz attempts kept per lecture (oldest evicted)"
    )

    # Community
    feed_page_size_max: int = Field(default=50, ge=1, description="Max posts per feed page")
    feed_lookback_days: int = Field(
        default=30, ge=0, description="Days scanned backwards when paging the feed"
    )
    trending_min_interactions: int = Field(
        default=5, description="Likes+comments+shares for a post to trend"
    )
    report_reason_max_length: int = Field(
        default=500, description="Stored length of a post report reason"
    )
    delete_reason_max_length: int = Field(
        default=400, description="Length of the reason sent on moderator deletes"
    )

    # Skills marketplace
    skills_auto_approve: bool = Field(
        default=True, description="List new skill posts without waiting for an admin"
    )
    skills_page_size_max: int = Field(
        default=50, ge=1, description="Max skill posts per listing page"
    )
    skills_lookback_months: int = Field(
        default=12, ge=0, description="Months scanned backwards when listing skill posts"
    )

    # Accounts
    minimum_unsupervised_age: int = Field(
        default=13, description="Below this age accounts need parental approval"
    )
    child_conversion_min_age: int = Field(
        default=25, description="Minimum age to convert an account to Child mode"
    )
    child_lock_min_length: int = Field(
        default=6, description="Minimum Childlock password length"
    )

    @field_validator(
        "cassandra_hosts",
        "log_exclude_paths",
        "cors_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def split_comma_list(cls, v: object) -> object:
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        if self.is_production and (
            self.auth_secret_key == DEV_SECRET_KEY
            or len(self.auth_secret_key) < MIN_SECRET_KEY_LENGTH
        ):
            msg = "AUTH_SECRET_KEY must be set to a private key of 32+ characters"
            raise ValueError(msg)
        return self

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    """Settings singleton; tests clear the cache to reload the environment."""
    return Settings()
