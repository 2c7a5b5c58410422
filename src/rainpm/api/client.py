"""High-level client wiring concrete collaborators into the use cases.

`RainClient` is the convenience entry point for notebooks, scripts and the
CLI. It builds one shared HTTP client, the JSON-RPC client, the Multicall3
batch reader, the REST catalog and the subgraph ledger, and closes them all
on exit:

    async with RainClient(ClientConfig.from_env()) as rain:
        pnl = await rain.get_pnl("0x...")
"""

from __future__ import annotations

from collections.abc import Sequence

from rainpm.batch.reader import MulticallReader
from rainpm.clients.catalog import MarketCatalog
from rainpm.clients.rpc import RPC, make_http_client
from rainpm.clients.subgraph import SubgraphLedger
from rainpm.core.config import ClientConfig
from rainpm.core.models import (
    AccountBalance,
    LPPosition,
    MarketPosition,
    PnLResult,
    PortfolioValue,
    PositionsResult,
    TradeEvent,
    TradeType,
    TransactionsResult,
)
from rainpm.core.use_cases.pnl import PnLEngine
from rainpm.core.use_cases.portfolio import PortfolioService
from rainpm.core.use_cases.positions import PositionReconstructor


class RainClient:
    """Async facade over positions, PnL, portfolio and ledger queries."""

    def __init__(self, config: ClientConfig) -> None:
        self.config = config
        self._http = make_http_client(timeout_s=config.timeout_s, max_connections=config.max_connections)
        if config.extra_headers:
            self._http.headers.update(config.extra_headers)

        self.rpc = RPC(config.rpc_url, client=self._http) if config.rpc_url else None
        self.catalog = (
            MarketCatalog(config.api_url, client=self._http, page_size=config.catalog_page_size)
            if config.api_url
            else None
        )
        self.ledger = (
            SubgraphLedger(
                config.subgraph_url,
                api_key=config.subgraph_api_key,
                client=self._http,
                page_size=config.ledger_page_size,
            )
            if config.subgraph_url
            else None
        )
        self.reader = MulticallReader(self.rpc, multicall_address=config.multicall_address) if self.rpc else None

    async def __aenter__(self) -> RainClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- wiring -------------------------------------------------------------

    def _positions(self) -> PositionReconstructor:
        self.config.require("api_url", "rpc_url")
        return PositionReconstructor(self.catalog, self.reader)

    def _portfolio(self) -> PortfolioService:
        self.config.require("rpc_url")
        return PortfolioService(
            PositionReconstructor(self.catalog, self.reader) if self.catalog else None,
            self.reader,
            self.config.multicall_address,
        )

    # --- operations ---------------------------------------------------------

    async def get_positions(self, wallet: str) -> PositionsResult:
        return await self._positions().get_positions(wallet)

    async def get_position_by_market(self, wallet: str, market_id: str) -> MarketPosition:
        return await self._positions().get_position_by_market(wallet, market_id)

    async def get_lp_position(self, wallet: str, market_id: str) -> LPPosition:
        return await self._positions().get_lp_position(wallet, market_id)

    async def get_pnl(self, wallet: str, market_address: str | None = None) -> PnLResult:
        self.config.require("subgraph_url")
        engine = PnLEngine(self._positions(), self.catalog, self.ledger)
        return await engine.get_pnl(wallet, market_address)

    async def get_account_balance(self, wallet: str, token_addresses: Sequence[str] = ()) -> AccountBalance:
        return await self._portfolio().get_account_balance(wallet, token_addresses)

    async def get_portfolio_value(self, wallet: str, token_addresses: Sequence[str]) -> PortfolioValue:
        self.config.require("api_url")
        return await self._portfolio().get_portfolio_value(wallet, token_addresses)

    async def get_market_id(self, market_address: str) -> str:
        self.config.require("api_url")
        return await self.catalog.find_market_id(market_address)

    async def get_market_address(self, market_id: str) -> str:
        self.config.require("api_url")
        return await self.catalog.get_market_address(market_id)

    async def get_trade_history(
        self,
        wallet: str,
        *,
        market_address: str | None = None,
        types: Sequence[TradeType] | None = None,
    ) -> list[TradeEvent]:
        self.config.require("subgraph_url")
        return await self.ledger.get_trade_events(wallet, market_address=market_address, types=types, order="asc")

    async def get_transactions(
        self,
        wallet: str,
        *,
        market_address: str | None = None,
        types: Sequence[TradeType] | None = None,
        first: int = 20,
        skip: int = 0,
        order: str = "desc",
    ) -> TransactionsResult:
        self.config.require("subgraph_url")
        return await self.ledger.get_transactions(
            wallet, market_address=market_address, types=types, first=first, skip=skip, order=order
        )
