from __future__ import annotations

import logging
from datetime import timedelta
from decimal import Decimal, Inexact, InvalidOperation, localcontext
from typing import Sequence

import requests

from config import AppSettings, config

from .quote_cache import USD_BRL_CACHE_KEY, QuoteCache, build_quote_cache
from .quote_providers import AwesomeApiProvider, FrankfurterProvider, QuoteProvider
from .quote_types import ProviderUnavailable, QuotationUnavailable, RateFetched

logger = logging.getLogger(__name__)

CACHE_TTL = timedelta(minutes=10)


def to_usd_amount(value: Decimal | int | float | str) -> Decimal:
    """Parse a USD amount, rejecting non-numeric, NaN and infinite input."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as exc:
        msg = f"invalid USD amount: {value!r}"
        raise ValueError(msg) from exc
    if not amount.is_finite():
        msg = f"USD amount must be finite, got {value!r}"
        raise ValueError(msg)
    return amount


class QuoteService:
    """USD-BRL rate lookup: fresh cache entry first, then providers in the given order.

    A stale entry is never served; when every provider is unavailable the caller gets
    ``QuotationUnavailable`` rather than a degraded rate.
    """

    def __init__(
        self,
        *,
        providers: Sequence[QuoteProvider],
        cache: QuoteCache,
        ttl: timedelta = CACHE_TTL,
    ) -> None:
        if not providers:
            msg = "providers must contain at least one entry"
            raise ValueError(msg)
        if ttl < timedelta(seconds=1):
            msg = "ttl must be at least one second"
            raise ValueError(msg)

        self.providers = tuple(providers)
        self.cache = cache
        self.ttl = ttl

    def get_usd_brl_rate(self) -> Decimal:
        cached = self.cache.get(USD_BRL_CACHE_KEY)
        if cached is not None:
            logger.info("USD-BRL quotation served from cache: %s", cached)
            return cached

        failures: list[ProviderUnavailable] = []
        for provider in self.providers:
            outcome = provider.fetch_usd_brl()
            if isinstance(outcome, RateFetched):
                self.cache.set(USD_BRL_CACHE_KEY, outcome.rate, self.ttl)
                logger.info(
                    "USD-BRL quotation %s from %s cached (ttl=%s)", outcome.rate, outcome.provider, self.ttl
                )
                return outcome.rate
            failures.append(outcome)

        logger.error("All %d quotation providers unavailable", len(failures))
        raise QuotationUnavailable(failures)

    def convert_usd_to_brl(self, amount_usd: Decimal | int | float | str) -> Decimal:
        amount = to_usd_amount(amount_usd)
        rate = self.get_usd_brl_rate()
        # p + q digits always hold the full product of a p-digit and a q-digit operand.
        with localcontext() as ctx:
            ctx.prec = len(amount.as_tuple().digits) + len(rate.as_tuple().digits)
            ctx.traps[Inexact] = True
            return amount * rate


def build_default_service(settings: AppSettings | None = None) -> QuoteService:
    settings = settings or config()
    session = requests.Session()
    timeout = settings.quote_request_timeout_seconds
    providers: list[QuoteProvider] = [
        AwesomeApiProvider(url=settings.awesomeapi_url, timeout=timeout, session=session),
        FrankfurterProvider(url=settings.frankfurter_url, timeout=timeout, session=session),
    ]
    return QuoteService(
        providers=providers,
        cache=build_quote_cache(settings),
        ttl=timedelta(seconds=settings.quote_cache_ttl_seconds),
    )


__all__ = ["CACHE_TTL", "QuoteService", "build_default_service", "to_usd_amount"]
