"""Application settings and configuration.

This module defines all configuration options for the Quorum moderation engine.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Threshold values here are fallbacks only: the live values are rows in the
    ``closure_config`` and ``review_thresholds`` tables, which an admin path can
    change without a redeploy.
    """

    # Application metadata
    app_name: str = Field(default="Quorum", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 7,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./quorum.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Upper bound on waiting for a decision-instance row lock.
    lock_timeout_ms: int = Field(default=5000, alias="LOCK_TIMEOUT_MS")

    # Closure defaults (closure_config table overrides)
    close_votes_needed: int = Field(default=5, alias="CLOSE_VOTES_NEEDED")
    reopen_votes_needed: int = Field(default=5, alias="REOPEN_VOTES_NEEDED")
    min_reputation_close: int = Field(default=500, alias="MIN_REPUTATION_CLOSE")
    min_reputation_reopen: int = Field(default=500, alias="MIN_REPUTATION_REOPEN")
    auto_close_score_threshold: int = Field(default=-5, alias="AUTO_CLOSE_SCORE_THRESHOLD")
    auto_close_enabled: bool = Field(default=False, alias="AUTO_CLOSE_ENABLED")
    gold_badge_hammer_enabled: bool = Field(default=True, alias="GOLD_BADGE_HAMMER_ENABLED")
    close_vote_aging_days: int = Field(default=7, alias="CLOSE_VOTE_AGING_DAYS")

    # Review queue defaults (review_thresholds table overrides)
    spam_scam_min_reputation: int = Field(default=100, alias="SPAM_SCAM_MIN_REPUTATION")
    spam_scam_votes_needed: int = Field(default=5, alias="SPAM_SCAM_VOTES_NEEDED")
    outdated_min_reputation: int = Field(default=500, alias="OUTDATED_MIN_REPUTATION")
    outdated_votes_needed: int = Field(default=5, alias="OUTDATED_VOTES_NEEDED")
    review_daily_limit: int = Field(default=20, alias="REVIEW_DAILY_LIMIT")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def review_defaults(self) -> dict[str, tuple[int, int]]:
        """Return ``review_type -> (min_reputation, votes_needed)`` fallbacks."""
        return {
            "spam_scam": (self.spam_scam_min_reputation, self.spam_scam_votes_needed),
            "outdated": (self.outdated_min_reputation, self.outdated_votes_needed),
        }


settings = Settings()  # type: ignore[call-arg]
