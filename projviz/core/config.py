"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]

DEFAULT_JWT_SECRET = "dev-secret-change-in-production"


class Settings(BaseSettings):
    APP_NAME: str = "project-visualization-api"

    PORT: int = 8080
    # Kept under its historical name; one of debug | release | test.
    GIN_MODE: str = "debug"

    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "admin"
    DB_PASSWORD: str = "admin123"
    DB_NAME: str = "project_visualization"
    DB_SSLMODE: str = "disable"
    DATABASE_URL: str = ""
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE_SECONDS: int = 300

    LOG_LEVEL: str = "debug"
    LOG_FORMAT: str = "json"

    JWT_SECRET: str = DEFAULT_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    BCRYPT_ROUNDS: int = 12

    CORS_ALLOWED_ORIGINS: str = ""

    HTTP_TIMEOUT_KEEP_ALIVE: int = 60
    HTTP_GRACEFUL_SHUTDOWN_SECONDS: int = 30

    # jira credentials (fallback when nothing is stored in jira_settings)
    JIRA_BASE_URL: str = ""
    JIRA_EMAIL: str = ""
    JIRA_API_TOKEN: str = ""
    JIRA_TIMEOUT_SECONDS: float = 30.0
    JIRA_PROJECT_PAGE_SIZE: int = 50
    JIRA_ISSUE_PAGE_SIZE: int = 100

    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_SECONDS: float = 1.0
    RETRY_FACTOR: float = 2.0
    RETRY_MAX_SECONDS: float = 30.0

    SYNC_SCHEDULER_ENABLED: bool = False
    SYNC_INTERVAL_SECONDS: int = 900
    SYNC_STARTUP_DELAY_SECONDS: int = 30
    SYNC_SCHEDULED_TYPE: str = "DELTA"
    SYNC_BATCH_SIZE: int = 100
    SYNC_WORKER_COUNT: int = 5

    METRICS_ENABLED: bool = True
    METRICS_NAMESPACE: str = "ProjViz/Sync"

    TIMEZONE: str = "Asia/Tokyo"
    DELAY_WARNING_DAYS: int = 3

    ORG_MAX_DEPTH: int = 3

    NOTIFICATION_FANOUT_WORKERS: int = 4

    AUDIT_ENABLED: bool = True
    AUDIT_RETENTION_DAYS: int = 90
    AUDIT_BODY_MAX_BYTES: int = 10240
    AUDIT_WORKERS: int = 2

    model_config = SettingsConfigDict(env_file=str(BASE_DIR / ".env"), env_file_encoding="utf-8", extra="ignore")

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL.strip():
            return self.DATABASE_URL.strip()
        return (
            f"postgresql+psycopg://{quote_plus(self.DB_USER)}:{quote_plus(self.DB_PASSWORD)}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?sslmode={self.DB_SSLMODE}"
        )

    @property
    def cors_origins(self) -> list[str]:
        origins = [origin.strip() for origin in self.CORS_ALLOWED_ORIGINS.split(",") if origin.strip()]
        return origins or ["*"]

    @property
    def is_release(self) -> bool:
        return self.GIN_MODE.strip().lower() == "release"

    @property
    def jira_env_ready(self) -> bool:
        return bool(self.JIRA_BASE_URL.strip() and self.JIRA_EMAIL.strip() and self.JIRA_API_TOKEN.strip())

    def validate_runtime_security(self) -> None:
        if self.is_release and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set in release mode")


settings = Settings()
