import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Remote store database
    DATABASE_URL: Optional[str] = "sqlite:///./users.db"
    TEST_DATABASE_URL: Optional[str] = None

    # Device-scoped cache used by the task engine
    LOCAL_CACHE_URL: str = "sqlite:///./smartlist-cache.sqlite3"

    # Remote store client
    API_BASE_URL: str = "http://localhost:3001/api"
    SYNC_TIMEOUT_SECONDS: float = 10.0
    SYNC_CREATE_ATTEMPTS: int = 3
    SYNC_RETRY_BASE_SECONDS: float = 1.0
    SYNC_DEBOUNCE_SECONDS: float = 0.0  # 0 = push every change

    # Leaderboard paging
    LEADERBOARD_DEFAULT_LIMIT: int = 10
    LEADERBOARD_MAX_LIMIT: int = 100

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def cors_origins(settings_obj: Optional[Settings] = None) -> list[str]:
    cfg = settings_obj or settings
    return [origin.strip() for origin in cfg.CORS_ORIGINS.split(",") if origin.strip()]


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration values.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("smartlist")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if not cfg.DATABASE_URL:
        problems.append("DATABASE_URL is empty")
    if cfg.SYNC_CREATE_ATTEMPTS < 1:
        problems.append("SYNC_CREATE_ATTEMPTS must be >= 1")
    if cfg.SYNC_RETRY_BASE_SECONDS < 0:
        problems.append("SYNC_RETRY_BASE_SECONDS must be >= 0")
    if cfg.SYNC_DEBOUNCE_SECONDS < 0:
        problems.append("SYNC_DEBOUNCE_SECONDS must be >= 0")
    if not 0 < cfg.LEADERBOARD_DEFAULT_LIMIT <= cfg.LEADERBOARD_MAX_LIMIT:
        problems.append("LEADERBOARD_DEFAULT_LIMIT must be between 1 and LEADERBOARD_MAX_LIMIT")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
