from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, Protocol

import redis

from config import AppSettings

USD_BRL_CACHE_KEY = "usd-brl-rate"


class QuoteCache(Protocol):
    def get(self, key: str) -> Decimal | None: ...

    def set(self, key: str, rate: Decimal, ttl: timedelta) -> None: ...


@dataclass(frozen=True)
class _CacheEntry:
    value: str
    expires_at: datetime


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryQuoteCache(QuoteCache):
    """Process-local cache; expiry is evaluated on every read."""

    def __init__(self, *, clock: Callable[[], datetime] = _utc_now) -> None:
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Decimal | None:
        entry = self._entries.get(key)
        if entry is None or self._clock() >= entry.expires_at:
            return None
        return Decimal(entry.value)

    def set(self, key: str, rate: Decimal, ttl: timedelta) -> None:
        self._entries[key] = _CacheEntry(value=str(rate), expires_at=self._clock() + ttl)


class RedisQuoteCache(QuoteCache):
    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    def get(self, key: str) -> Decimal | None:
        raw = self.client.get(key)
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return Decimal(raw)

    def set(self, key: str, rate: Decimal, ttl: timedelta) -> None:
        self.client.set(key, str(rate), ex=ttl)


def build_quote_cache(settings: AppSettings) -> QuoteCache:
    if settings.redis_url:
        return RedisQuoteCache(redis.Redis.from_url(settings.redis_url))
    return InMemoryQuoteCache()


__all__ = ["InMemoryQuoteCache", "QuoteCache", "RedisQuoteCache", "USD_BRL_CACHE_KEY", "build_quote_cache"]
