from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # core
    ENV: str = "dev"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # database
    # Keep this as a plain string so sqlite:/// URLs are always accepted
    DATABASE_URL: str = "sqlite:///./cv_tracker.db"
    # Local convenience only; real deployments run the Alembic migrations
    DB_CREATE_ALL: bool = False

    # cors
    FRONTEND_ORIGIN: str | None = None
    # Explicit debug-only switch for wide-open CORS in non-prod envs
    CORS_ALLOW_ALL_ORIGINS: bool = False

    # submission rules
    CV_COOLDOWN_DAYS: int = 60
    # 0 means unbounded; otherwise overflowing requests are rejected with 503
    ADMISSION_QUEUE_MAX_SIZE: int = 0

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
