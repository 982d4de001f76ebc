from __future__ import annotations

import argparse
import logging
import sys
from decimal import Decimal
from typing import Sequence

from services.quote_service import QuoteService, build_default_service, to_usd_amount
from services.quote_types import QuotationUnavailable


def parse_amount(raw: str) -> Decimal:
    try:
        return to_usd_amount(raw)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Look up the current USD-BRL quotation.")
    parser.add_argument("--verbose", action="store_true", help="Log cache and provider activity.")
    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("rate", help="Print BRL per 1 USD.")
    convert = commands.add_parser("convert", help="Convert a USD amount to BRL.")
    convert.add_argument("amount", type=parse_amount, help="Amount in USD, e.g. 100 or 12.50.")
    return parser


def run(args: argparse.Namespace, service: QuoteService) -> int:
    try:
        if args.command == "convert":
            print(service.convert_usd_to_brl(args.amount))
        else:
            print(service.get_usd_brl_rate())
    except QuotationUnavailable as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    return run(args, build_default_service())


if __name__ == "__main__":
    sys.exit(main())
