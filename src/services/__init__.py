"""USD-BRL quotation services.

Quote providers wrap the upstream HTTP sources, the quote cache keeps the last
rate for a bounded TTL, and the quote service ties them into a single lookup
that the rest of the application calls.
"""

__all__ = [
    "quote_cache",
    "quote_providers",
    "quote_service",
    "quote_types",
]
