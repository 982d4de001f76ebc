from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any


@dataclass(frozen=True)
class RateFetched:
    """USD-BRL rate returned by a provider (BRL per 1 USD)."""

    rate: Decimal
    provider: str


@dataclass(frozen=True)
class ProviderUnavailable:
    provider: str
    reason: str


QuoteOutcome = RateFetched | ProviderUnavailable


class QuoteProviderAPIError(Exception):
    def __init__(self, message: str, *, status_code: int | None = None, payload: Any | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class QuotationUnavailable(RuntimeError):
    """Raised when no fresh cached rate exists and every provider failed."""

    def __init__(self, failures: list[ProviderUnavailable]) -> None:
        message = "Unable to obtain USD-BRL quotation"
        if failures:
            details = "; ".join(f"{failure.provider}: {failure.reason}" for failure in failures)
            message = f"{message} ({details})"
        super().__init__(message)
        self.failures = failures


__all__ = [
    "ProviderUnavailable",
    "QuotationUnavailable",
    "QuoteOutcome",
    "QuoteProviderAPIError",
    "RateFetched",
]
