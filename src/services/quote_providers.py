from __future__ import annotations

import logging
from abc import abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

import requests
from pydantic import BaseModel, Field, ValidationError
from requests import Response

from .quote_types import ProviderUnavailable, QuoteOutcome, QuoteProviderAPIError, RateFetched

logger = logging.getLogger(__name__)


class QuoteProvider(Protocol):
    name: str

    def fetch_usd_brl(self) -> QuoteOutcome: ...


class _HttpQuoteProvider(QuoteProvider):
    """Single-attempt JSON quote source.

    Every failure (transport, HTTP status, payload shape, rate value) is reported as
    ``ProviderUnavailable``; nothing raised by ``requests`` leaves ``fetch_usd_brl``.
    """

    name = "http"

    def __init__(
        self,
        *,
        url: str,
        params: dict[str, str] | None = None,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        if timeout <= 0:
            msg = "timeout must be > 0"
            raise ValueError(msg)

        self.url = url
        self.params = params
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch_usd_brl(self) -> QuoteOutcome:
        try:
            payload = self._request()
            rate = self._ensure_positive(self._parse_rate(payload), payload=payload)
        except QuoteProviderAPIError as exc:
            logger.warning("Failed to obtain USD-BRL quotation from %s: %s", self.name, exc)
            return ProviderUnavailable(provider=self.name, reason=str(exc))

        logger.debug("%s quoted USD-BRL at %s", self.name, rate)
        return RateFetched(rate=rate, provider=self.name)

    @abstractmethod
    def _parse_rate(self, payload: dict[str, Any]) -> Decimal: ...

    def _request(self) -> dict[str, Any]:
        try:
            response = self._session.request("GET", self.url, params=self.params, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as exc:
            resp = exc.response
            status_code = getattr(resp, "status_code", None)
            raise QuoteProviderAPIError(
                f"{self.name} request failed with HTTP {status_code}",
                status_code=status_code,
                payload=self._error_payload(resp),
            ) from exc
        except requests.Timeout as exc:
            raise QuoteProviderAPIError(f"{self.name} request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            raise QuoteProviderAPIError(f"{self.name} request failed: {exc}") from exc

        try:
            payload_raw = response.json()
        except ValueError as exc:
            raise QuoteProviderAPIError(f"{self.name} returned invalid JSON", payload=response.text) from exc

        if not isinstance(payload_raw, dict):
            raise QuoteProviderAPIError(f"{self.name} returned unexpected payload type", payload=payload_raw)

        return payload_raw

    def _ensure_positive(self, rate: Decimal, *, payload: Any) -> Decimal:
        if not rate.is_finite() or rate <= 0:
            raise QuoteProviderAPIError(f"{self.name} returned non-positive rate {rate}", payload=payload)
        return rate

    def _to_decimal(self, value: Any, *, payload: Any) -> Decimal:
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise QuoteProviderAPIError(f"{self.name} returned non-numeric rate {value!r}", payload=payload) from exc

    @staticmethod
    def _error_payload(response: Response | None) -> Any | None:
        if response is None:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text


class _AwesomeApiQuote(BaseModel):
    bid: str | int | float


class _AwesomeApiPayload(BaseModel):
    usd_brl: _AwesomeApiQuote = Field(alias="USDBRL")


class AwesomeApiProvider(_HttpQuoteProvider):
    # {"USDBRL": {"code": "USD", "codein": "BRL", "bid": "5.2512", ...}}
    name = "awesomeapi"

    def __init__(
        self,
        *,
        url: str = "https://economia.awesomeapi.com.br/json/last/USD-BRL",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(url=url, timeout=timeout, session=session)

    def _parse_rate(self, payload: dict[str, Any]) -> Decimal:
        try:
            parsed = _AwesomeApiPayload.model_validate(payload)
        except ValidationError as exc:
            raise QuoteProviderAPIError("awesomeapi payload missing USDBRL.bid", payload=payload) from exc
        return self._to_decimal(parsed.usd_brl.bid, payload=payload)


class _FrankfurterPayload(BaseModel):
    base: str | None = None
    rates: dict[str, float]


class FrankfurterProvider(_HttpQuoteProvider):
    # {"amount": 1.0, "base": "USD", "date": "2025-01-10", "rates": {"BRL": 6.1}}
    name = "frankfurter"

    def __init__(
        self,
        *,
        url: str = "https://api.frankfurter.app/latest",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        super().__init__(url=url, params={"from": "USD", "to": "BRL"}, timeout=timeout, session=session)

    def _parse_rate(self, payload: dict[str, Any]) -> Decimal:
        try:
            parsed = _FrankfurterPayload.model_validate(payload)
        except ValidationError as exc:
            raise QuoteProviderAPIError("frankfurter payload missing rates", payload=payload) from exc

        if parsed.base is not None and parsed.base.upper() != "USD":
            raise QuoteProviderAPIError(f"frankfurter returned rates for base {parsed.base}", payload=payload)
        if "BRL" not in parsed.rates:
            raise QuoteProviderAPIError("frankfurter payload missing rates.BRL", payload=payload)
        return self._to_decimal(parsed.rates["BRL"], payload=payload)


__all__ = ["AwesomeApiProvider", "FrankfurterProvider", "QuoteProvider"]
