import asyncio
import inspect
import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from invest_tracker.config import AppSettings  # noqa: E402
from invest_tracker.services.portfolio import PortfolioService  # noqa: E402
from invest_tracker.services.prices import USD_THB, StaticPriceFeed  # noqa: E402
from invest_tracker.storage.local import InMemoryLocalStore, LocalRepository  # noqa: E402
from invest_tracker.sync.remote import InMemoryRowStore  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            testargs = {arg: pyfuncitem.funcargs[arg] for arg in pyfuncitem._fixtureinfo.argnames}
            loop.run_until_complete(test_function(**testargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture
def settings() -> AppSettings:
    return AppSettings(_env_file=None, remote_cache_ttl_seconds=0)


@pytest.fixture
def repository() -> LocalRepository:
    return LocalRepository(InMemoryLocalStore())


@pytest.fixture
def remote() -> InMemoryRowStore:
    return InMemoryRowStore()


@pytest.fixture
def price_feed() -> StaticPriceFeed:
    return StaticPriceFeed({"AAPL": 12.0, "PTT": 40.0}, spot_rates={USD_THB: 36.0})


@pytest.fixture
def service(repository, remote, price_feed, settings) -> PortfolioService:
    return PortfolioService(repository, remote=remote, price_feed=price_feed, settings=settings)
