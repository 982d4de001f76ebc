import pytest

from services.quote_cache import InMemoryQuoteCache
from tests.helpers.quote_stubs import FakeClock


@pytest.fixture(scope="function")
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope="function")
def quote_cache(clock: FakeClock) -> InMemoryQuoteCache:
    return InMemoryQuoteCache(clock=clock)
