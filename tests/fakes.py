from __future__ import annotations

from typing import Any

from eth_abi import decode, encode

from rainpm.abi import ERC20, MULTICALL3, TRADE_POOL, ContractFunction
from rainpm.core.errors import MarketNotFound, UpstreamUnavailable
from rainpm.core.models import Market, MarketOption, MarketStatus, TradeEvent, TradeType

WALLET = "0x" + "ab" * 20
OTHER = "0x" + "cd" * 20
MARKET_1 = "0x" + "11" * 20
MARKET_2 = "0x" + "22" * 20
MARKET_3 = "0x" + "33" * 20
TOKEN = "0x" + "44" * 20


def _norm(v: Any) -> Any:
    return v.lower() if isinstance(v, str) else v


class FakeChain:
    """IEthCaller that answers Multicall3 aggregate3 batches from a lookup table.

    Reads with no registered value revert, which the batch reader reports as
    a per-entry failure.
    """

    def __init__(self) -> None:
        self._values: dict[tuple, Any] = {}
        self._corrupt: set[tuple] = set()
        self._by_selector: dict[bytes, ContractFunction] = {
            fn.selector: fn for table in (TRADE_POOL, ERC20, MULTICALL3) for fn in table.values()
        }
        self.calls = 0
        self.batch_sizes: list[int] = []
        self.broken = False

    @staticmethod
    def _key(target: str, name: str, args: tuple) -> tuple:
        return (target.lower(), name, tuple(_norm(a) for a in args))

    def set(self, target: str, name: str, *args: Any, value: Any) -> None:
        self._values[self._key(target, name, args)] = value

    def corrupt(self, target: str, name: str, *args: Any) -> None:
        """Make a read succeed with return data that cannot be decoded."""
        self._corrupt.add(self._key(target, name, args))

    def position(
        self,
        market: str,
        wallet: str,
        *,
        liquidity: int = 0,
        claimed: bool = False,
        payout: list[int] | None = None,
        shares: dict[int, int] | None = None,
        escrow_shares: dict[int, int] | None = None,
        escrow_amount: dict[int, int] | None = None,
        prices: dict[int, int] | None = None,
    ) -> None:
        self.set(market, "userLiquidity", wallet, value=liquidity)
        self.set(market, "claimed", wallet, value=claimed)
        self.set(market, "getDynamicPayout", wallet, value=payout or [])
        for idx, v in (shares or {}).items():
            self.set(market, "userVotes", idx, wallet, value=v)
        for idx, v in (escrow_shares or {}).items():
            self.set(market, "userVotesInEscrow", idx, wallet, value=v)
        for idx, v in (escrow_amount or {}).items():
            self.set(market, "userAmountInEscrow", idx, wallet, value=v)
        for idx, v in (prices or {}).items():
            self.set(market, "getCurrentPrice", idx, value=v)

    async def eth_call(self, *, to: str, data: bytes, block: int | str = "latest") -> bytes:
        self.calls += 1
        if self.broken:
            raise UpstreamUnavailable("RPC eth_call failed: connection refused")
        agg = MULTICALL3["aggregate3"]
        assert data[:4] == agg.selector
        (calls,) = decode(["(address,bool,bytes)[]"], data[4:])
        self.batch_sizes.append(len(calls))

        results = []
        for target, allow_failure, calldata in calls:
            assert allow_failure is True
            fn = self._by_selector[calldata[:4]]
            args = decode(list(fn.inputs), calldata[4:])
            key = self._key(target, fn.name, tuple(args))
            if key in self._corrupt:
                results.append((True, b"\x01"))
            elif key in self._values:
                results.append((True, encode(list(fn.outputs), [self._values[key]])))
            else:
                results.append((False, b""))
        return encode(["(bool,bytes)[]"], [results])


class FakeCatalog:
    """In-memory IMarketCatalog."""

    def __init__(self, markets: list[Market]) -> None:
        self.markets = markets
        self.list_calls = 0
        self.detail_calls = 0

    async def list_markets(self) -> list[Market]:
        self.list_calls += 1
        return list(self.markets)

    async def get_market(self, market_id: str) -> Market:
        self.detail_calls += 1
        for m in self.markets:
            if m.id == market_id:
                return m
        raise UpstreamUnavailable(f"Failed to fetch /pools/pool/{market_id}: 404")

    async def find_market_id(self, market_address: str) -> str:
        for m in self.markets:
            if m.contract_address.lower() == market_address.lower():
                return m.id
        raise MarketNotFound(f"No market found with address {market_address}")


class FakeLedger:
    """In-memory ITradeLedger honoring market and type filters."""

    def __init__(self, events: list[TradeEvent]) -> None:
        self.events = events
        self.calls: list[dict[str, Any]] = []

    async def get_trade_events(self, wallet, *, market_address=None, types=None, order="asc"):
        self.calls.append({"wallet": wallet, "market_address": market_address, "types": types, "order": order})
        out = [
            ev
            for ev in self.events
            if (market_address is None or ev.market_address == market_address.lower())
            and (types is None or ev.type in types)
        ]
        return sorted(out, key=lambda ev: ev.replay_key, reverse=order == "desc")


def make_market(market_id: str, address: str, n_options: int = 2, **kw: Any) -> Market:
    return Market(
        id=market_id,
        title=kw.pop("title", f"Market {market_id}"),
        status=kw.pop("status", MarketStatus.LIVE),
        contract_address=address,
        options=tuple(MarketOption(i, f"Option {i}") for i in range(n_options)),
        **kw,
    )


_seq = iter(range(1, 1_000_000))


def trade(
    type_: TradeType,
    market: str = MARKET_1,
    *,
    option: int | None = 0,
    base: int | None = None,
    shares: int | None = None,
    ts: int = 1_000,
    maker: str | None = None,
    taker: str | None = None,
    total_reward: int | None = None,
    liquidity_reward: int | None = None,
    id: str | None = None,
) -> TradeEvent:
    return TradeEvent(
        id=id or f"ev-{next(_seq):06d}",
        type=type_,
        market_address=market.lower(),
        wallet=WALLET,
        block_number=ts,
        timestamp=ts,
        tx_hash="0x" + "ee" * 32,
        option=option,
        base_amount=base,
        option_amount=shares,
        maker=maker,
        taker=taker,
        total_reward=total_reward,
        liquidity_reward=liquidity_reward,
    )
