from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="ignore")

    # Backend store
    POCKETBASE_URL: str = "http://127.0.0.1:8090"
    POCKETBASE_TIMEOUT: float = 20.0
    POCKETBASE_MAX_RETRIES: int = 3

    # Server
    CORS_ORIGINS: str = "http://localhost:3000"

    # Time tracking rules
    OVERTIME_THRESHOLD_HOURS: float = 8.0
    MISSED_CLOCK_OUT_HOURS: float = 12.0
    MILESTONE_MINUTES: int = 30
    MIN_PASSWORD_LENGTH: int = 8

    # Monitor intervals
    MONITOR_INTERVAL_SECONDS: int = 60
    TIMER_INTERVAL_SECONDS: int = 1

    # Defaults for newly registered users
    DEFAULT_PTO_BALANCE: float = 15.0
    DEFAULT_SICK_BALANCE: float = 10.0
    DEFAULT_ROLE: str = "employee"

    # Observability
    LOG_JSON: bool = False

settings = Settings()
