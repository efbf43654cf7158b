from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///./fleetwatch.db"
    LOG_LEVEL: str = "INFO"
    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    # Alert listing cap
    MAX_QUERY_LIMIT: int = 1000
    # API authentication (if unset, all requests pass — local dev)
    FLEETWATCH_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:5173"
    # Background detection scheduler
    ALERT_SCHEDULER_ENABLED: bool = True
    # Minutes between detection cycle starts
    ALERT_CYCLE_INTERVAL_MINUTES: float = 15.0
    # Minutes to wait after a cycle fails outright before retrying
    ALERT_CYCLE_BACKOFF_MINUTES: float = 5.0


settings = Settings()
