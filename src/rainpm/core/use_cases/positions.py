from __future__ import annotations

import logging
from dataclasses import dataclass

from eth_utils import is_address

from rainpm.abi import TRADE_POOL
from rainpm.batch.cursor import OutcomeCursor, ReadPlan, Slot
from rainpm.batch.specs import ReadOutcome
from rainpm.core.constants import MARKET_LEVEL_READS, OPTION_LEVEL_READS
from rainpm.core.errors import ValidationError
from rainpm.core.interfaces import IBatchReader, IMarketCatalog
from rainpm.core.models import LPPosition, Market, MarketPosition, OptionPosition, PositionsResult

logger = logging.getLogger(__name__)


def require_wallet(wallet: str) -> None:
    if not wallet:
        raise ValidationError("address is required")
    if not is_address(wallet):
        raise ValidationError(f"address {wallet!r} is not a valid EVM address")


# ---------------------------------------------------------------------------
# Batch layout
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class MarketLayout:
    """Where one market's reads live inside a positions batch."""

    market: Market
    slot: Slot

    @property
    def option_count(self) -> int:
        return len(self.market.options)


def plan_market_reads(plan: ReadPlan, market: Market, wallet: str) -> MarketLayout:
    """Append the 3 market-level and 4-per-option reads for one market."""
    addr = market.contract_address
    plan.begin()
    plan.add(addr, TRADE_POOL["userLiquidity"], wallet)
    plan.add(addr, TRADE_POOL["claimed"], wallet)
    plan.add(addr, TRADE_POOL["getDynamicPayout"], wallet)
    for opt in market.options:
        plan.add(addr, TRADE_POOL["userVotes"], opt.choice_index, wallet)
        plan.add(addr, TRADE_POOL["userVotesInEscrow"], opt.choice_index, wallet)
        plan.add(addr, TRADE_POOL["userAmountInEscrow"], opt.choice_index, wallet)
        plan.add(addr, TRADE_POOL["getCurrentPrice"], opt.choice_index)
    slot = plan.end()
    assert slot.size == MARKET_LEVEL_READS + OPTION_LEVEL_READS * len(market.options)
    return MarketLayout(market=market, slot=slot)


def read_market_position(outcomes: list[ReadOutcome], layout: MarketLayout) -> MarketPosition:
    """Rebuild one MarketPosition from its slot; failed reads take defaults."""
    cur = OutcomeCursor(outcomes, layout.slot)
    user_liquidity = cur.uint()
    claimed = cur.flag()
    dynamic_payout = cur.uint_list()

    options = []
    for opt in layout.market.options:
        options.append(
            OptionPosition(
                choice_index=opt.choice_index,
                option_name=opt.option_name,
                shares=cur.uint(),
                shares_in_escrow=cur.uint(),
                amount_in_escrow=cur.uint(),
                current_price=cur.uint(),
            )
        )

    m = layout.market
    return MarketPosition(
        market_id=m.id,
        title=m.title,
        status=m.status,
        contract_address=m.contract_address,
        options=tuple(options),
        user_liquidity=user_liquidity,
        claimed=claimed,
        dynamic_payout=dynamic_payout,
        base_token_decimals=m.base_token_decimals,
    )


# ---------------------------------------------------------------------------
# Use case
# ---------------------------------------------------------------------------


class PositionReconstructor:
    """
    Rebuild a wallet's live holdings from one batched read.

    It depends only on the catalog and batch-reader interfaces; the whole
    catalog is covered by a single `execute` call per invocation.
    """

    def __init__(self, catalog: IMarketCatalog, reader: IBatchReader) -> None:
        self._catalog = catalog
        self._reader = reader

    async def get_positions(self, wallet: str) -> PositionsResult:
        """Every market where the wallet holds liquidity, shares or escrow."""
        require_wallet(wallet)

        markets = [m for m in await self._catalog.list_markets() if m.contract_address]
        if not markets:
            return PositionsResult(address=wallet, markets=[])

        plan = ReadPlan()
        layouts = [plan_market_reads(plan, m, wallet) for m in markets]
        logger.debug("positions batch: %d markets, %d reads", len(layouts), len(plan))
        outcomes = await self._reader.execute(plan.requests)

        held = []
        for layout in layouts:
            position = read_market_position(outcomes, layout)
            if position.has_position():
                held.append(position)
        logger.info("wallet %s holds positions in %d of %d markets", wallet, len(held), len(layouts))
        return PositionsResult(address=wallet, markets=held)

    async def get_position_by_market(self, wallet: str, market_id: str) -> MarketPosition:
        """The wallet's position in one market, returned even when empty."""
        require_wallet(wallet)
        if not market_id:
            raise ValidationError("marketId is required")

        market = await self._catalog.get_market(market_id)
        plan = ReadPlan()
        layout = plan_market_reads(plan, market, wallet)
        outcomes = await self._reader.execute(plan.requests)
        return read_market_position(outcomes, layout)

    async def get_lp_position(self, wallet: str, market_id: str) -> LPPosition:
        """Liquidity stake and pool share (basis points) in one market."""
        require_wallet(wallet)
        if not market_id:
            raise ValidationError("marketId is required")

        market = await self._catalog.get_market(market_id)
        addr = market.contract_address
        plan = ReadPlan()
        plan.add(addr, TRADE_POOL["userLiquidity"], wallet)
        plan.add(addr, TRADE_POOL["totalLiquidity"])
        plan.add(addr, TRADE_POOL["liquidityShare"])
        cur = OutcomeCursor(await self._reader.execute(plan.requests))

        user_liquidity = cur.uint()
        total_liquidity = cur.uint()
        liquidity_share_bps = cur.uint()
        return LPPosition(
            market_id=market.id,
            title=market.title,
            status=market.status,
            contract_address=addr,
            user_liquidity=user_liquidity,
            total_liquidity=total_liquidity,
            pool_share_bps=user_liquidity * 10_000 // total_liquidity if total_liquidity > 0 else 0,
            liquidity_share_bps=liquidity_share_bps,
        )
