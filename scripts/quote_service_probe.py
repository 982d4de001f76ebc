# flake8: noqa E402
# Run via uv for access to dev deps, e.g.:
# uv run scripts/quote_service_probe.py --requests 3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Ensure the src directory is importable when the script is invoked via uv/python directly.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from config import config
from services.quote_cache import build_quote_cache
from services.quote_providers import AwesomeApiProvider, FrankfurterProvider
from services.quote_service import QuoteService
from services.quote_types import QuotationUnavailable, QuoteOutcome


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe QuoteService caching and provider fallback.")
    parser.add_argument("--requests", type=int, default=3, help="Number of consecutive lookups (default: 3).")
    parser.add_argument(
        "--skip-primary",
        action="store_true",
        help="Point the AwesomeAPI provider at an unroutable URL to exercise the Frankfurter fallback.",
    )
    return parser.parse_args()


class CountingAwesomeApiProvider(AwesomeApiProvider):
    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.fetch_count = 0

    def fetch_usd_brl(self) -> QuoteOutcome:
        self.fetch_count += 1
        outcome = super().fetch_usd_brl()
        print(f"[provider] {self.name} fetch #{self.fetch_count} -> {outcome}")
        return outcome


class CountingFrankfurterProvider(FrankfurterProvider):
    def __init__(self, *args, **kwargs) -> None:  # type: ignore[no-untyped-def]
        super().__init__(*args, **kwargs)
        self.fetch_count = 0

    def fetch_usd_brl(self) -> QuoteOutcome:
        self.fetch_count += 1
        outcome = super().fetch_usd_brl()
        print(f"[provider] {self.name} fetch #{self.fetch_count} -> {outcome}")
        return outcome


def main() -> None:
    args = parse_args()
    settings = config()

    primary_url = "http://127.0.0.1:9/json/last/USD-BRL" if args.skip_primary else settings.awesomeapi_url
    primary = CountingAwesomeApiProvider(url=primary_url, timeout=settings.quote_request_timeout_seconds)
    secondary = CountingFrankfurterProvider(
        url=settings.frankfurter_url, timeout=settings.quote_request_timeout_seconds
    )
    service = QuoteService(providers=[primary, secondary], cache=build_quote_cache(settings))

    combined_fetches = lambda: primary.fetch_count + secondary.fetch_count
    for idx in range(1, args.requests + 1):
        before_fetches = combined_fetches()
        try:
            rate = service.get_usd_brl_rate()
        except QuotationUnavailable as exc:
            print(f"[request {idx}] unavailable: {exc}")
            continue
        status = "cache-hit" if before_fetches == combined_fetches() else "fetched"
        print(f"[request {idx}] USD-BRL => {rate} ({status})")


if __name__ == "__main__":
    main()
