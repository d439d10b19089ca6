from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from zoneinfo import ZoneInfo

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from settleup.services.money import DEFAULT_TOLERANCE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    bot_token: str = Field(..., alias="BOT_TOKEN")
    database_url: str = Field(..., alias="DATABASE_URL")
    tz: str = Field("Europe/Moscow", alias="TZ")
    split_tolerance: Decimal = Field(DEFAULT_TOLERANCE, alias="SPLIT_TOLERANCE")
    digest_interval_hours: int = Field(24, alias="DIGEST_INTERVAL_HOURS", ge=0)

    @field_validator("split_tolerance")
    @classmethod
    def _non_negative_tolerance(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError("SPLIT_TOLERANCE must be non-negative")
        return value

    @property
    def zoneinfo(self) -> ZoneInfo:
        return ZoneInfo(self.tz)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]
