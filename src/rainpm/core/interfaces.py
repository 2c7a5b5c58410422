from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from rainpm.core.models import Market, TradeEvent, TradeType

if TYPE_CHECKING:
    from rainpm.batch.specs import ReadOutcome, ReadRequest


# ---------------------------------------------------------------------------
# IEthCaller
# ---------------------------------------------------------------------------

@runtime_checkable
class IEthCaller(Protocol):
    """
    Anything able to run a read-only `eth_call`.

    Implementations:
    - RPC (JSON-RPC over httpx)
    - In-memory fakes for testing
    """

    async def eth_call(self, *, to: str, data: bytes, block: int | str = "latest") -> bytes:
        ...


# ---------------------------------------------------------------------------
# IBatchReader
# ---------------------------------------------------------------------------

@runtime_checkable
class IBatchReader(Protocol):
    """
    Execute N independent read-only queries as one network round trip.

    Domain expectations:
    - The output has the same length and order as the input.
    - One failing query yields a ReadFailure for that entry only.
    - A transport failure raises and aborts the whole batch.
    """

    async def execute(self, requests: Sequence[ReadRequest]) -> list[ReadOutcome]:
        ...


# ---------------------------------------------------------------------------
# IMarketCatalog
# ---------------------------------------------------------------------------

@runtime_checkable
class IMarketCatalog(Protocol):
    """
    Read access to the market catalog.

    Domain expectations:
    - Markets come back already normalized into `Market` objects, whatever
      envelope the upstream service wraps them in.
    - `list_markets` yields every market, including ones without a deployed
      contract (their `contract_address` is empty).
    """

    async def list_markets(self) -> list[Market]:
        ...

    async def get_market(self, market_id: str) -> Market:
        """Return one market; raise DataShapeError if it has no contract address."""
        ...

    async def find_market_id(self, market_address: str) -> str:
        """Resolve a contract address to a market id; raise MarketNotFound otherwise."""
        ...


# ---------------------------------------------------------------------------
# ITradeLedger
# ---------------------------------------------------------------------------

@runtime_checkable
class ITradeLedger(Protocol):
    """
    Historical trade events for a wallet.

    Domain expectations:
    - Events the wallet took part in as wallet, maker or taker are included.
    - No duplicates (by `id`); ordering follows `order` on (timestamp, id).
    """

    async def get_trade_events(
        self,
        wallet: str,
        *,
        market_address: str | None = None,
        types: Sequence[TradeType] | None = None,
        order: str = "asc",
    ) -> list[TradeEvent]:
        ...
