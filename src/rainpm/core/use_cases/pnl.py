"""Profit/loss replay over a wallet's trade history.

The engine joins two independent inputs:
- live holdings (one batched read, via `PositionReconstructor`)
- the wallet's historical fills, claims and liquidity adds (trade ledger)

and replays each market's events with weighted-average cost basis.

Design notes
------------
- All arithmetic is on Python ints. Average cost carries `SCALE` extra
  digits so integer division does not drop fractional cost per share.
- Per-option realized PnL only covers sells. Claim-driven realization is
  applied once per market, since one claim pays out across all options.
- A claimed market has zero unrealized PnL for every option.
- `realized + unrealized == total` holds exactly per market and per wallet.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import assert_never

from eth_utils import is_address

from rainpm.core.constants import DEFAULT_BASE_TOKEN_DECIMALS, SCALE
from rainpm.core.errors import ValidationError
from rainpm.core.interfaces import IMarketCatalog, ITradeLedger
from rainpm.core.models import (
    PNL_TRADE_TYPES,
    LiveSnapshot,
    MarketPnL,
    MarketPosition,
    MarketStatus,
    OptionPnL,
    OptionPosition,
    PnLResult,
    PositionSource,
    PositionsResult,
    SyntheticExitStub,
    TradeEvent,
    TradeType,
)
from rainpm.core.use_cases.positions import PositionReconstructor, require_wallet

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TradeDirection(StrEnum):
    BUY = "buy"
    SELL = "sell"
    CLAIM = "claim"
    ADD_LIQUIDITY = "add_liquidity"
    NONE = "none"  # no effect on cost basis (order placement, cancel, foreign fill)


def classify_trade(event: TradeEvent, wallet: str) -> TradeDirection:
    """Map an event to its accounting direction from the wallet's side.

    On a buy-order fill the maker is the buyer; on a sell-order fill the
    maker is the seller.
    """
    addr = wallet.lower()
    maker = (event.maker or "").lower()
    taker = (event.taker or "").lower()
    match event.type:
        case TradeType.BUY:
            return TradeDirection.BUY
        case TradeType.ADD_LIQUIDITY:
            return TradeDirection.ADD_LIQUIDITY
        case TradeType.CLAIM:
            return TradeDirection.CLAIM
        case TradeType.LIMIT_BUY_FILLED:
            if maker == addr:
                return TradeDirection.BUY
            if taker == addr:
                return TradeDirection.SELL
            return TradeDirection.NONE
        case TradeType.LIMIT_SELL_FILLED:
            if taker == addr:
                return TradeDirection.BUY
            if maker == addr:
                return TradeDirection.SELL
            return TradeDirection.NONE
        case TradeType.LIMIT_BUY_PLACED | TradeType.LIMIT_SELL_PLACED | TradeType.CANCEL_BUY | TradeType.CANCEL_SELL:
            return TradeDirection.NONE
        case _:
            assert_never(event.type)


# ---------------------------------------------------------------------------
# Per-option cost basis
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class OptionBook:
    """Running buy/sell totals for one option."""

    buy_shares: int = 0
    buy_cost: int = 0
    sell_shares: int = 0
    sell_proceeds: int = 0

    @property
    def avg_cost(self) -> int:
        """Average cost per share, scaled by SCALE."""
        return self.buy_cost * SCALE // self.buy_shares if self.buy_shares > 0 else 0

    @property
    def realized_from_sells(self) -> int:
        return self.sell_proceeds - self.avg_cost * self.sell_shares // SCALE

    @property
    def remaining_shares(self) -> int:
        return max(self.buy_shares - self.sell_shares, 0)

    @property
    def remaining_cost_basis(self) -> int:
        return self.avg_cost * self.remaining_shares // SCALE


@dataclass(slots=True)
class MarketBook:
    books: dict[int, OptionBook]
    claim_reward: int = 0
    liquidity_cost: int = 0
    liquidity_reward: int = 0
    ignored: int = 0


def replay_trades(choice_indices: Iterable[int], trades: Sequence[TradeEvent], wallet: str) -> MarketBook:
    """Fold trades (ascending by (timestamp, id)) into per-option books."""
    book = MarketBook(books={i: OptionBook() for i in choice_indices})
    for ev in sorted(trades, key=lambda e: e.replay_key):
        direction = classify_trade(ev, wallet)
        match direction:
            case TradeDirection.BUY | TradeDirection.SELL:
                ob = book.books.get(ev.option) if ev.option is not None else None
                if ob is None:
                    book.ignored += 1
                    logger.debug("ignoring %s %s: option %s not in market", ev.type, ev.id, ev.option)
                    continue
                if direction is TradeDirection.BUY:
                    ob.buy_shares += ev.option_amount or 0
                    ob.buy_cost += ev.base_amount or 0
                else:
                    ob.sell_shares += ev.option_amount or 0
                    ob.sell_proceeds += ev.base_amount or 0
            case TradeDirection.CLAIM:
                book.claim_reward = ev.total_reward or 0
                book.liquidity_reward = ev.liquidity_reward or 0
            case TradeDirection.ADD_LIQUIDITY:
                book.liquidity_cost += ev.base_amount or 0
            case TradeDirection.NONE:
                book.ignored += 1
    return book


# ---------------------------------------------------------------------------
# Market-level PnL
# ---------------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class _ReplayBasis:
    market_id: str
    title: str
    status: MarketStatus
    contract_address: str
    options: tuple[OptionPosition, ...]
    claimed: bool
    dynamic_payout: tuple[int, ...]
    base_token_decimals: int


def _basis(source: PositionSource) -> _ReplayBasis:
    match source:
        case LiveSnapshot(position=p):
            return _ReplayBasis(
                market_id=p.market_id,
                title=p.title,
                status=p.status,
                contract_address=p.contract_address,
                options=p.options,
                claimed=p.claimed,
                dynamic_payout=p.dynamic_payout,
                base_token_decimals=p.base_token_decimals,
            )
        case SyntheticExitStub(contract_address=addr):
            return _ReplayBasis(
                market_id="",
                title=f"Market {addr[:10]}...",
                status=MarketStatus.UNKNOWN,
                contract_address=addr,
                options=source.placeholder_options(),
                claimed=False,
                dynamic_payout=(),
                base_token_decimals=DEFAULT_BASE_TOKEN_DECIMALS,
            )
        case _:
            assert_never(source)


def compute_market_pnl(source: PositionSource, trades: Sequence[TradeEvent], wallet: str) -> MarketPnL:
    basis = _basis(source)
    book = replay_trades((o.choice_index for o in basis.options), trades, wallet)

    options: list[OptionPnL] = []
    total_realized_from_sells = 0
    total_cost_basis = 0
    total_current_value = 0

    for pos in basis.options:
        ob = book.books[pos.choice_index]
        idx = pos.choice_index
        current_value = basis.dynamic_payout[idx] if 0 <= idx < len(basis.dynamic_payout) else 0
        realized = ob.realized_from_sells
        cost_basis = ob.remaining_cost_basis

        total_realized_from_sells += realized
        total_cost_basis += cost_basis
        total_current_value += current_value

        options.append(
            OptionPnL(
                choice_index=pos.choice_index,
                option_name=pos.option_name,
                buy_shares=ob.buy_shares,
                buy_cost=ob.buy_cost,
                sell_shares=ob.sell_shares,
                sell_proceeds=ob.sell_proceeds,
                current_shares=pos.shares,
                current_value=current_value,
                cost_basis=cost_basis,
                realized_pnl=realized,
                unrealized_pnl=0 if basis.claimed else current_value - cost_basis,
            )
        )

    if basis.claimed:
        realized_pnl = total_realized_from_sells + (book.claim_reward - total_cost_basis)
        unrealized_pnl = 0
    else:
        realized_pnl = total_realized_from_sells
        unrealized_pnl = total_current_value - total_cost_basis

    return MarketPnL(
        market_id=basis.market_id,
        title=basis.title,
        status=basis.status,
        contract_address=basis.contract_address,
        options=options,
        claimed=basis.claimed,
        claim_reward=book.claim_reward,
        liquidity_cost=book.liquidity_cost,
        liquidity_reward=book.liquidity_reward,
        total_cost_basis=total_cost_basis,
        total_current_value=total_current_value,
        realized_pnl=realized_pnl,
        unrealized_pnl=unrealized_pnl,
        total_pnl=realized_pnl + unrealized_pnl,
        base_token_decimals=basis.base_token_decimals,
    )


# ---------------------------------------------------------------------------
# Wallet-level assembly
# ---------------------------------------------------------------------------


def group_by_market(events: Iterable[TradeEvent]) -> dict[str, list[TradeEvent]]:
    grouped: dict[str, list[TradeEvent]] = defaultdict(list)
    for ev in events:
        grouped[ev.market_address.lower()].append(ev)
    return dict(grouped)


def collect_sources(
    positions: Sequence[MarketPosition],
    trades_by_market: dict[str, list[TradeEvent]],
) -> dict[str, PositionSource]:
    """Live positions first, then a stub for every market seen only in trades."""
    sources: dict[str, PositionSource] = {p.contract_address.lower(): LiveSnapshot(p) for p in positions}
    for addr, trades in trades_by_market.items():
        if addr in sources:
            continue
        indices = [ev.option for ev in trades if ev.option is not None]
        sources[addr] = SyntheticExitStub(contract_address=addr, option_count=max(indices) + 1 if indices else 0)
    return sources


def build_pnl(wallet: str, positions: Sequence[MarketPosition], events: Iterable[TradeEvent]) -> PnLResult:
    """Pure replay: same positions + same events always give the same result."""
    trades_by_market = group_by_market(events)
    markets: list[MarketPnL] = []
    total_realized = 0
    total_unrealized = 0

    for addr, source in collect_sources(positions, trades_by_market).items():
        trades = trades_by_market.get(addr, [])
        if not trades and isinstance(source, LiveSnapshot) and all(o.shares == 0 for o in source.position.options):
            continue
        market_pnl = compute_market_pnl(source, trades, wallet)
        markets.append(market_pnl)
        total_realized += market_pnl.realized_pnl
        total_unrealized += market_pnl.unrealized_pnl

    return PnLResult(
        address=wallet,
        markets=markets,
        total_realized_pnl=total_realized,
        total_unrealized_pnl=total_unrealized,
        total_pnl=total_realized + total_unrealized,
    )


class PnLEngine:
    """
    Wallet PnL from live positions plus replayed trade history.

    The positions read and the ledger query run concurrently; a failure in
    either aborts the call (no partial PnL).
    """

    def __init__(
        self,
        positions: PositionReconstructor,
        catalog: IMarketCatalog,
        ledger: ITradeLedger,
    ) -> None:
        self._positions = positions
        self._catalog = catalog
        self._ledger = ledger

    async def _fetch_positions(self, wallet: str, market_address: str | None) -> PositionsResult:
        if market_address is None:
            return await self._positions.get_positions(wallet)
        market_id = await self._catalog.find_market_id(market_address)
        position = await self._positions.get_position_by_market(wallet, market_id)
        return PositionsResult(address=wallet, markets=[position])

    async def get_pnl(self, wallet: str, market_address: str | None = None) -> PnLResult:
        require_wallet(wallet)
        if market_address is not None and not is_address(market_address):
            raise ValidationError(f"marketAddress {market_address!r} is not a valid EVM address")

        positions, events = await asyncio.gather(
            self._fetch_positions(wallet, market_address),
            self._ledger.get_trade_events(
                wallet,
                market_address=market_address,
                types=PNL_TRADE_TYPES,
                order="asc",
            ),
        )
        result = build_pnl(wallet, positions.markets, events)
        logger.info(
            "pnl for %s: %d markets, realized=%d unrealized=%d",
            wallet,
            len(result.markets),
            result.total_realized_pnl,
            result.total_unrealized_pnl,
        )
        return result
