"""Application configuration."""
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    log_level: str = "DEBUG"
    uvicorn_workers: int = Field(
        default=1,
        description="Number of Uvicorn workers (production: CPU cores * 2 + 1)",
    )

    # Database - required, must come from the environment
    database_url: str = Field(
        ...,
        description="Database connection URL (required)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections",
    )
    db_pool_timeout: int = Field(
        default=30,
        description="Pool connection timeout in seconds",
    )
    db_pool_recycle: int = Field(
        default=1800,
        description="Connection recycle time in seconds",
    )

    # Redis - required, must come from the environment
    redis_url: str = Field(
        ...,
        description="Redis connection URL (required)",
    )
    redis_max_connections: int = Field(
        default=50,
        description="Redis max connections",
    )
    redis_socket_timeout: float = Field(
        default=5.0,
        description="Redis socket timeout in seconds",
    )
    redis_socket_connect_timeout: float = Field(
        default=5.0,
        description="Redis socket connect timeout in seconds",
    )
    redis_health_check_interval: int = Field(
        default=30,
        description="Redis health check interval in seconds",
    )

    # JWT issued by the hosted auth provider; we only verify it
    jwt_secret_key: str = Field(
        ...,
        description="JWT secret key (required, minimum 32 characters)",
    )
    jwt_algorithm: str = "HS256"
    jwt_audience: str | None = Field(
        default=None,
        description="Expected 'aud' claim (hosted auth uses 'authenticated')",
    )

    # Sentry Error Tracking
    sentry_dsn: str | None = Field(
        default=None,
        description="Sentry DSN for error tracking (required in production)",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.05,
        description="Sentry transaction sampling rate (0.0-1.0, default 5%)",
    )
    sentry_profiles_sample_rate: float = Field(
        default=0.01,
        description="Sentry profiling sampling rate (0.0-1.0, default 1%)",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Rewards
    reward_timezone: str = Field(
        default="UTC",
        description="IANA timezone that defines the reward calendar day",
    )
    daily_limit_fail_open: bool = Field(
        default=False,
        description="Allow plays when the daily-limit store is unreachable",
    )
    slot_daily_limit: int = Field(
        default=5,
        description="Slot machine plays per day when no game row overrides it",
    )
    game_exp_ratio: float = Field(
        default=0.1,
        description="Experience granted per point earned in games",
    )
    spring_point_multiplier: float = Field(
        default=1.0,
        description="Scales every lucky spring blessing",
    )

    # Reveal animation timing (ms)
    reveal_pull_duration_ms: int = 2000
    reveal_interval_ms: int = 600
    reveal_summary_delay_ms: int = 1000

    # In-process cache
    cache_max_entries: int = 100
    cache_default_ttl_seconds: int = 300

    @field_validator("jwt_secret_key")
    @classmethod
    def validate_jwt_secret_key(cls, v: str) -> str:
        """Validate JWT secret key length."""
        if len(v) < 32:
            raise ValueError(
                "jwt_secret_key must be at least 32 characters long"
            )

        weak_patterns = [
            "change-this",
            "secret",
            "password",
            "12345",
            "qwerty",
            "admin",
        ]
        lower_v = v.lower()
        for pattern in weak_patterns:
            if pattern in lower_v:
                raise ValueError(
                    f"jwt_secret_key contains weak pattern '{pattern}'. "
                    "Use a strong, random secret key."
                )

        return v

    @field_validator("reward_timezone")
    @classmethod
    def validate_reward_timezone(cls, v: str) -> str:
        """Reject unknown timezone names at startup."""
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

        try:
            ZoneInfo(v)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown reward_timezone '{v}'") from e
        return v

    @field_validator("game_exp_ratio", "spring_point_multiplier")
    @classmethod
    def validate_non_negative_ratio(cls, v: float, info) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

            if self.log_level == "DEBUG":
                import warnings
                warnings.warn(
                    "DEBUG log level in production may expose sensitive information"
                )

        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
