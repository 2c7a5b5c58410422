"""Core data models for markets, positions, trade events and PnL.

This module defines:
- `Market` / `MarketOption`: catalog metadata, immutable for one call.
- `OptionPosition` / `MarketPosition` / `PositionsResult`: live holdings.
- `LiveSnapshot` / `SyntheticExitStub`: the two sources a PnL replay can
  start from (a batched read, or a market the wallet has fully exited).
- `TradeEvent`: one row of the append-only trade ledger.
- `OptionPnL` / `MarketPnL` / `PnLResult`: replay output.

Design notes
------------
- Every on-chain quantity is a plain Python `int` (arbitrary precision),
  scaled to the market's base-token decimals. Nothing here rounds.
- `formatted()` helpers render human-readable decimal strings for display;
  they never feed back into accounting.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from rainpm.core.constants import DEFAULT_BASE_TOKEN_DECIMALS


def format_units(value: int, decimals: int) -> str:
    """Render a fixed-point integer as a decimal string (no trailing zeros)."""
    if decimals <= 0:
        return str(value)
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), 10**decimals)
    frac_s = str(frac).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{frac_s}" if frac_s else f"{sign}{whole}"


# === Catalog ===


class MarketStatus(StrEnum):
    NEW = "New"
    LIVE = "Live"
    WAITING_FOR_RESULT = "Waiting_for_Result"
    UNDER_DISPUTE = "Under_Dispute"
    UNDER_APPEAL = "Under_Appeal"
    CLOSED = "Closed"
    CLOSING_SOON = "Closing_Soon"
    IN_REVIEW = "Dispute_Window_Open"
    IN_EVALUATION = "Appeal_Window_Open"
    TRADING = "Pending_Finalization"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value: object) -> MarketStatus:
        return cls.UNKNOWN


@dataclass(slots=True, frozen=True)
class MarketOption:
    choice_index: int
    option_name: str


@dataclass(slots=True, frozen=True)
class Market:
    """One deployed market as described by the REST catalog."""

    id: str
    title: str
    status: MarketStatus
    contract_address: str
    options: tuple[MarketOption, ...] = ()
    base_token_decimals: int = DEFAULT_BASE_TOKEN_DECIMALS


# === Positions ===


@dataclass(slots=True, frozen=True)
class OptionPosition:
    choice_index: int
    option_name: str
    shares: int = 0
    shares_in_escrow: int = 0
    amount_in_escrow: int = 0
    current_price: int = 0

    def is_open(self) -> bool:
        return self.shares > 0 or self.shares_in_escrow > 0 or self.amount_in_escrow > 0


@dataclass(slots=True, frozen=True)
class MarketPosition:
    """A wallet's aggregate holding in one market."""

    market_id: str
    title: str
    status: MarketStatus
    contract_address: str
    options: tuple[OptionPosition, ...]
    user_liquidity: int = 0
    claimed: bool = False
    dynamic_payout: tuple[int, ...] = ()
    base_token_decimals: int = DEFAULT_BASE_TOKEN_DECIMALS

    def has_position(self) -> bool:
        """Inclusion rule for wallet-wide listings."""
        return self.user_liquidity > 0 or any(o.is_open() for o in self.options)


@dataclass(slots=True, frozen=True)
class PositionsResult:
    address: str
    markets: list[MarketPosition]


@dataclass(slots=True, frozen=True)
class LPPosition:
    market_id: str
    title: str
    status: MarketStatus
    contract_address: str
    user_liquidity: int
    total_liquidity: int
    pool_share_bps: int
    liquidity_share_bps: int


# === PnL sources ===


@dataclass(slots=True, frozen=True)
class LiveSnapshot:
    """Position data read from chain in the current batch."""

    position: MarketPosition


@dataclass(slots=True, frozen=True)
class SyntheticExitStub:
    """A market seen only in trade history: the wallet no longer holds anything.

    Replays against it with zero shares, zero liquidity, `claimed=False`
    and an empty dynamic payout.
    """

    contract_address: str
    option_count: int

    def placeholder_options(self) -> tuple[OptionPosition, ...]:
        return tuple(OptionPosition(choice_index=i, option_name=f"Option {i}") for i in range(self.option_count))


PositionSource = LiveSnapshot | SyntheticExitStub


# === Trade ledger ===


class TradeType(StrEnum):
    BUY = "buy"
    LIMIT_BUY_PLACED = "limit_buy_placed"
    LIMIT_SELL_PLACED = "limit_sell_placed"
    LIMIT_BUY_FILLED = "limit_buy_filled"
    LIMIT_SELL_FILLED = "limit_sell_filled"
    CANCEL_BUY = "cancel_buy"
    CANCEL_SELL = "cancel_sell"
    ADD_LIQUIDITY = "add_liquidity"
    CLAIM = "claim"


PNL_TRADE_TYPES: tuple[TradeType, ...] = (
    TradeType.BUY,
    TradeType.LIMIT_BUY_FILLED,
    TradeType.LIMIT_SELL_FILLED,
    TradeType.CLAIM,
    TradeType.ADD_LIQUIDITY,
)


@dataclass(slots=True, frozen=True)
class TradeEvent:
    """One immutable ledger row, normalized (addresses lowercased)."""

    id: str
    type: TradeType
    market_address: str
    wallet: str
    block_number: int
    timestamp: int
    tx_hash: str
    option: int | None = None
    base_amount: int | None = None
    option_amount: int | None = None
    price: int | None = None
    order_id: int | None = None
    maker: str | None = None
    taker: str | None = None
    winner_option: int | None = None
    reward: int | None = None
    liquidity_reward: int | None = None
    total_reward: int | None = None

    @property
    def replay_key(self) -> tuple[int, str]:
        return (self.timestamp, self.id)


@dataclass(slots=True, frozen=True)
class TransactionsResult:
    address: str
    transactions: list[TradeEvent]
    total: int


# === PnL ===


@dataclass(slots=True, frozen=True)
class OptionPnL:
    choice_index: int
    option_name: str
    buy_shares: int
    buy_cost: int
    sell_shares: int
    sell_proceeds: int
    current_shares: int
    current_value: int
    cost_basis: int
    realized_pnl: int
    unrealized_pnl: int

    def formatted(self, decimals: int) -> dict[str, str]:
        return {
            "buy_cost": format_units(self.buy_cost, decimals),
            "sell_proceeds": format_units(self.sell_proceeds, decimals),
            "current_value": format_units(self.current_value, decimals),
            "cost_basis": format_units(self.cost_basis, decimals),
            "realized_pnl": format_units(self.realized_pnl, decimals),
            "unrealized_pnl": format_units(self.unrealized_pnl, decimals),
        }


@dataclass(slots=True, frozen=True)
class MarketPnL:
    market_id: str
    title: str
    status: MarketStatus
    contract_address: str
    options: list[OptionPnL]
    claimed: bool
    claim_reward: int
    liquidity_cost: int
    liquidity_reward: int
    total_cost_basis: int
    total_current_value: int
    realized_pnl: int
    unrealized_pnl: int
    total_pnl: int
    base_token_decimals: int = DEFAULT_BASE_TOKEN_DECIMALS

    def formatted(self) -> dict[str, str]:
        d = self.base_token_decimals
        return {
            "claim_reward": format_units(self.claim_reward, d),
            "liquidity_cost": format_units(self.liquidity_cost, d),
            "liquidity_reward": format_units(self.liquidity_reward, d),
            "total_cost_basis": format_units(self.total_cost_basis, d),
            "total_current_value": format_units(self.total_current_value, d),
            "realized_pnl": format_units(self.realized_pnl, d),
            "unrealized_pnl": format_units(self.unrealized_pnl, d),
            "total_pnl": format_units(self.total_pnl, d),
        }


@dataclass(slots=True, frozen=True)
class PnLResult:
    address: str
    markets: list[MarketPnL]
    total_realized_pnl: int
    total_unrealized_pnl: int
    total_pnl: int

    def formatted(self, decimals: int = DEFAULT_BASE_TOKEN_DECIMALS) -> dict[str, str]:
        return {
            "total_realized_pnl": format_units(self.total_realized_pnl, decimals),
            "total_unrealized_pnl": format_units(self.total_unrealized_pnl, decimals),
            "total_pnl": format_units(self.total_pnl, decimals),
        }


# === Accounts / portfolio ===


@dataclass(slots=True, frozen=True)
class TokenBalance:
    token_address: str
    symbol: str
    decimals: int
    balance: int

    @property
    def formatted_balance(self) -> str:
        return format_units(self.balance, self.decimals)


@dataclass(slots=True, frozen=True)
class AccountBalance:
    address: str
    native_balance: int
    token_balances: list[TokenBalance] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class MarketPositionValue:
    market_id: str
    title: str
    status: MarketStatus
    contract_address: str
    dynamic_payout: tuple[int, ...]
    total_position_value: int


@dataclass(slots=True, frozen=True)
class PortfolioValue:
    address: str
    token_balances: list[TokenBalance]
    positions: list[MarketPositionValue]
    total_position_value: int
