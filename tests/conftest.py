from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fakes import MARKET_1, MARKET_2, MARKET_3, FakeCatalog, FakeChain, make_market

from rainpm.core.models import Market


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def markets() -> list[Market]:
    return [
        make_market("m1", MARKET_1),
        make_market("m2", MARKET_2, n_options=3),
        make_market("m3", MARKET_3),
    ]


@pytest.fixture
def catalog(markets: list[Market]) -> FakeCatalog:
    return FakeCatalog(markets)


@pytest.fixture
def mock_rpc():
    rpc = AsyncMock()
    rpc.eth_call = AsyncMock(return_value=b"")
    rpc.latest_block = AsyncMock(return_value=100)
    rpc.aclose = AsyncMock()
    return rpc
