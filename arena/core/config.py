"""
Settings for the Tournament Arena backend, read from the environment and .env
"""
from pathlib import Path
from typing import List, Optional, Set

from pydantic_settings import BaseSettings, SettingsConfigDict

# Repository root, where the .env file lives
PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "tournament_arena"
    DATABASE_USERNAME: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_URL: Optional[str] = None  # Takes precedence over the parts above

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DATABASE_USERNAME}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    # Firebase (auth and push notifications)
    FIREBASE_PROJECT_ID: str = "tournament-arena"
    GOOGLE_APPLICATION_CREDENTIALS: str = "firebase-admin-sdk.json"

    # HTTP API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Tournament Arena API"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: str = "*"  # Comma-separated, or "*"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        if self.ALLOWED_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    # Administration
    ADMIN_UIDS: str = ""  # Comma-separated Firebase uids
    PAYMENT_WEBHOOK_SECRET: str = "dev-webhook-secret-change-in-production"

    @property
    def ADMIN_UID_SET(self) -> Set[str]:
        return {uid.strip() for uid in self.ADMIN_UIDS.split(",") if uid.strip()}

    # Tournament lifecycle
    START_WINDOW_MINUTES: int = 20
    START_TTL_HOURS: int = 2
    END_GRACE_MINUTES: int = 10
    CANCEL_GRACE_MINUTES: int = 15
    MIN_PARTICIPANTS_LOOKBACK_MINUTES: int = 5
    JOIN_MAX_RETRIES: int = 2

    # Prizes and wallet
    PRIZE_TOLERANCE_CREDITS: int = 1
    WITHDRAWAL_COMMISSION_RATE: float = 0.04
    MIN_WITHDRAWAL_AMOUNT: int = 100

    # Scheduled jobs
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 30
    EXPIRY_BATCH_SIZE: int = 50
    ENDED_WITHOUT_TTL_EXPIRY_MINUTES: int = 30
    TTL_BACKFILL_INTERVAL_SECONDS: int = 300
    MIN_PARTICIPANTS_CHECK_INTERVAL_SECONDS: int = 300
    AGGRESSIVE_CLEANUP_INTERVAL_SECONDS: int = 5
    AGGRESSIVE_CLEANUP_MAX_EMPTY_SWEEPS: int = 12
    AGGRESSIVE_CLEANUP_MAX_MINUTES: int = 5


settings = Settings()
