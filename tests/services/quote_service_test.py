from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import Mock

import pytest

from config import AppSettings
from services.quote_cache import USD_BRL_CACHE_KEY, InMemoryQuoteCache
from services.quote_providers import AwesomeApiProvider, FrankfurterProvider
from services.quote_service import CACHE_TTL, QuoteService, build_default_service
from services.quote_types import ProviderUnavailable, QuotationUnavailable
from tests.helpers.quote_stubs import FakeClock, StubQuoteProvider


def _service(cache: InMemoryQuoteCache, *providers: StubQuoteProvider) -> QuoteService:
    return QuoteService(providers=list(providers), cache=cache)


def test_fresh_cache_entry_skips_providers(quote_cache: InMemoryQuoteCache) -> None:
    primary = StubQuoteProvider("awesomeapi", "5.25")
    secondary = StubQuoteProvider("frankfurter", "5.30")
    quote_cache.set(USD_BRL_CACHE_KEY, Decimal("5.50"), CACHE_TTL)

    rate = _service(quote_cache, primary, secondary).get_usd_brl_rate()

    assert rate == Decimal("5.50")
    assert primary.calls == 0
    assert secondary.calls == 0


def test_primary_success_populates_cache(quote_cache: InMemoryQuoteCache) -> None:
    primary = StubQuoteProvider("awesomeapi", "5.25")
    secondary = StubQuoteProvider("frankfurter", "5.30")

    rate = _service(quote_cache, primary, secondary).get_usd_brl_rate()

    assert rate == Decimal("5.25")
    assert primary.calls == 1
    assert secondary.calls == 0
    assert quote_cache.get(USD_BRL_CACHE_KEY) == Decimal("5.25")


def test_falls_back_to_secondary_when_primary_unavailable(quote_cache: InMemoryQuoteCache) -> None:
    primary = StubQuoteProvider("awesomeapi")
    secondary = StubQuoteProvider("frankfurter", "5.30")

    rate = _service(quote_cache, primary, secondary).get_usd_brl_rate()

    assert rate == Decimal("5.30")
    assert primary.calls == 1
    assert secondary.calls == 1
    assert quote_cache.get(USD_BRL_CACHE_KEY) == Decimal("5.30")


def test_raises_when_every_provider_unavailable(quote_cache: InMemoryQuoteCache) -> None:
    primary = StubQuoteProvider("awesomeapi", reason="timeout")
    secondary = StubQuoteProvider("frankfurter", reason="HTTP 503")

    with pytest.raises(QuotationUnavailable) as exc_info:
        _service(quote_cache, primary, secondary).get_usd_brl_rate()

    assert quote_cache.get(USD_BRL_CACHE_KEY) is None
    assert [failure.provider for failure in exc_info.value.failures] == ["awesomeapi", "frankfurter"]
    assert "timeout" in str(exc_info.value)
    assert "HTTP 503" in str(exc_info.value)


def test_expired_entry_is_not_used_as_fallback(quote_cache: InMemoryQuoteCache, clock: FakeClock) -> None:
    quote_cache.set(USD_BRL_CACHE_KEY, Decimal("5.00"), CACHE_TTL)
    clock.advance(CACHE_TTL + timedelta(seconds=1))
    service = _service(quote_cache, StubQuoteProvider("awesomeapi"), StubQuoteProvider("frankfurter"))

    with pytest.raises(QuotationUnavailable):
        service.get_usd_brl_rate()


def test_expired_entry_triggers_refetch(quote_cache: InMemoryQuoteCache, clock: FakeClock) -> None:
    primary = StubQuoteProvider("awesomeapi", "5.25")
    service = _service(quote_cache, primary)

    assert service.get_usd_brl_rate() == Decimal("5.25")
    assert service.get_usd_brl_rate() == Decimal("5.25")
    assert primary.calls == 1

    clock.advance(CACHE_TTL)
    primary.rate = Decimal("5.40")

    assert service.get_usd_brl_rate() == Decimal("5.40")
    assert primary.calls == 2


def test_convert_multiplies_exactly(quote_cache: InMemoryQuoteCache) -> None:
    quote_cache.set(USD_BRL_CACHE_KEY, Decimal("5.00"), CACHE_TTL)
    service = _service(quote_cache, StubQuoteProvider("awesomeapi"))

    assert service.convert_usd_to_brl(100) == Decimal("500")
    assert service.convert_usd_to_brl(Decimal("0.10")) == Decimal("0.5000")
    assert service.convert_usd_to_brl("19.99") == Decimal("99.9500")


def test_convert_propagates_unavailability(quote_cache: InMemoryQuoteCache) -> None:
    service = _service(quote_cache, StubQuoteProvider("awesomeapi"), StubQuoteProvider("frankfurter"))

    with pytest.raises(QuotationUnavailable):
        service.convert_usd_to_brl(Decimal("100"))


def test_rejects_empty_provider_chain(quote_cache: InMemoryQuoteCache) -> None:
    with pytest.raises(ValueError):
        QuoteService(providers=[], cache=quote_cache)


def test_build_default_service_orders_awesomeapi_before_frankfurter() -> None:
    settings = AppSettings(quote_request_timeout_seconds=2.5, quote_cache_ttl_seconds=300, redis_url=None)

    service = build_default_service(settings)

    assert [type(provider) for provider in service.providers] == [AwesomeApiProvider, FrankfurterProvider]
    assert all(provider.timeout == 2.5 for provider in service.providers)  # type: ignore[attr-defined]
    assert service.ttl == timedelta(seconds=300)
    assert isinstance(service.cache, InMemoryQuoteCache)


def test_convert_keeps_every_digit_of_long_operands(quote_cache: InMemoryQuoteCache) -> None:
    quote_cache.set(USD_BRL_CACHE_KEY, Decimal("5.123456789012345"), CACHE_TTL)
    service = _service(quote_cache, StubQuoteProvider("awesomeapi"))

    result = service.convert_usd_to_brl(Decimal("1234567890123.45"))

    assert result == Decimal("6325255238149.63669120562399025")
    assert str(result) == "6325255238149.63669120562399025"


@pytest.mark.parametrize("amount", ["Infinity", "-Infinity", "NaN", float("nan"), float("inf"), "ten"])
def test_convert_rejects_non_finite_or_non_numeric_amount(quote_cache: InMemoryQuoteCache, amount: Any) -> None:
    quote_cache.set(USD_BRL_CACHE_KEY, Decimal("5.00"), CACHE_TTL)
    service = _service(quote_cache, StubQuoteProvider("awesomeapi"))

    with pytest.raises(ValueError):
        service.convert_usd_to_brl(amount)


def test_rejects_ttl_below_one_second(quote_cache: InMemoryQuoteCache) -> None:
    with pytest.raises(ValueError):
        QuoteService(providers=[StubQuoteProvider("awesomeapi")], cache=quote_cache, ttl=timedelta(milliseconds=500))


def _session_returning(payload: Any) -> Mock:
    response = Mock()
    response.status_code = 200
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    session = Mock()
    session.request.return_value = response
    return session


@pytest.mark.parametrize("bid", ["not-a-rate", "-5.10"])
def test_bad_primary_payload_falls_through_to_frankfurter(quote_cache: InMemoryQuoteCache, bid: str) -> None:
    primary = AwesomeApiProvider(session=_session_returning({"USDBRL": {"bid": bid}}))
    secondary = FrankfurterProvider(session=_session_returning({"base": "USD", "rates": {"BRL": 5.3}}))
    service = QuoteService(providers=[primary, secondary], cache=quote_cache)

    rate = service.get_usd_brl_rate()

    assert rate == Decimal("5.3")
    assert quote_cache.get(USD_BRL_CACHE_KEY) == Decimal("5.3")
    assert isinstance(primary.fetch_usd_brl(), ProviderUnavailable)
