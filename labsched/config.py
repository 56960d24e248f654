"""Application settings, loaded from the environment and an optional .env file."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LABSCHED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Lab Test Scheduling Service"
    LOG_LEVEL: str = "INFO"
    # Naive timestamps from the calendar are read in this zone, then stored as UTC.
    LAB_TIMEZONE: str = "UTC"
    SEED_DEMO_DATA: bool = Field(True, description="Load demo equipment, analysts and steps")


settings = Settings()
