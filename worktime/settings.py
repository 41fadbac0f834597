from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "sqlite+pysqlite:///./worktime.db"
    app_name: str = "WorktimeEngine"
    log_level: str = "INFO"
    window_grace_minutes: int = 30
    long_work_day_minutes: int = 600
    holiday_category2_percent: int = 50
    default_holiday_priority: int = 0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def get_log_level() -> str:
    raw = (get_settings().log_level or "").strip().upper()
    return raw or "INFO"
