from __future__ import annotations

from functools import cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    awesomeapi_url: str = "https://economia.awesomeapi.com.br/json/last/USD-BRL"
    frankfurter_url: str = "https://api.frankfurter.app/latest"
    quote_request_timeout_seconds: float = 5.0
    quote_cache_ttl_seconds: int = 600
    redis_url: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
