# backend/metricpoints/config.py
from functools import lru_cache

import pytz
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # environment: "dev" for running locally, "test" for pytest
    ENV: str = "dev"

    DATABASE_URL: str | None = None
    TEST_DATABASE_URL: str | None = None

    LOG_LEVEL: str = "INFO"

    # --- Points aggregation ---
    # IANA timezone used to truncate timestamps into minute/hour/day buckets.
    POINTS_TIMEZONE: str = "UTC"
    # Per-query deadline applied by the sample store (PostgreSQL only).
    QUERY_TIMEOUT_MS: int | None = Field(None, ge=1)
    # When true an aggregate of exactly 0 resolves to the metric's default_value,
    # even if rows were found.
    ZERO_FALLS_BACK_TO_DEFAULT: bool = True

    @model_validator(mode="after")
    def _check_timezone(self):
        try:
            pytz.timezone(self.POINTS_TIMEZONE)
        except pytz.UnknownTimeZoneError as ex:
            raise ValueError(f"POINTS_TIMEZONE '{self.POINTS_TIMEZONE}' is not a known timezone") from ex
        return self

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
