"""GraphQL client for the protocol's trade-event subgraph.

Each ledger entity maps to one `TradeType`. Order executions are queried
twice (wallet as maker, wallet as taker) under separate aliases. Every
entity query is paged with `first`/`skip` until it returns a short page,
then rows are merged, deduplicated by `id` and ordered by (timestamp, id).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx
from eth_utils import is_address
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from rainpm.clients.rpc import make_http_client
from rainpm.core.constants import LEDGER_PAGE_SIZE
from rainpm.core.errors import DataShapeError, UpstreamUnavailable, ValidationError
from rainpm.core.models import TradeEvent, TradeType, TransactionsResult

logger = logging.getLogger(__name__)

_ORDER_FIELDS = "id poolAddress orderOption orderPrice orderAmount orderID maker blockNumber blockTimestamp transactionHash"
_EXECUTE_FIELDS = (
    "id poolAddress orderOption orderPrice optionAmount baseAmount orderID maker taker "
    "blockNumber blockTimestamp transactionHash"
)
_CANCEL_FIELDS = (
    "id poolAddress orderOption orderAmount orderPrice orderID orderCreator blockNumber blockTimestamp transactionHash"
)


@dataclass(frozen=True)
class EntitySpec:
    """One subgraph entity: which trade type it yields and how it is filtered."""

    entity: str
    trade_type: TradeType
    address_field: str
    fields: str
    also_as_taker: bool = False


ENTITIES: tuple[EntitySpec, ...] = (
    EntitySpec(
        "enterOptions",
        TradeType.BUY,
        "wallet",
        "id poolAddress option baseAmount optionAmount wallet blockNumber blockTimestamp transactionHash",
    ),
    EntitySpec("placeBuyOrders", TradeType.LIMIT_BUY_PLACED, "maker", _ORDER_FIELDS),
    EntitySpec("placeSellOrders", TradeType.LIMIT_SELL_PLACED, "maker", _ORDER_FIELDS),
    EntitySpec("executeBuyOrders", TradeType.LIMIT_BUY_FILLED, "maker", _EXECUTE_FIELDS, also_as_taker=True),
    EntitySpec("executeSellOrders", TradeType.LIMIT_SELL_FILLED, "maker", _EXECUTE_FIELDS, also_as_taker=True),
    EntitySpec("cancelBuyOrders", TradeType.CANCEL_BUY, "orderCreator", _CANCEL_FIELDS),
    EntitySpec("cancelSellOrders", TradeType.CANCEL_SELL, "orderCreator", _CANCEL_FIELDS),
    EntitySpec(
        "enterLiquiditys",
        TradeType.ADD_LIQUIDITY,
        "wallet",
        "id poolAddress baseAmount wallet blockNumber blockTimestamp transactionHash",
    ),
    EntitySpec(
        "claims",
        TradeType.CLAIM,
        "wallet",
        "id poolAddress wallet winnerOption liquidityReward reward totalReward blockNumber blockTimestamp transactionHash",
    ),
)


@dataclass(frozen=True)
class EntityQuery:
    """One aliased selection inside a ledger query."""

    alias: str
    spec: EntitySpec
    address_field: str


def enabled_queries(types: Sequence[TradeType] | None = None) -> list[EntityQuery]:
    wanted = set(types) if types else None
    out: list[EntityQuery] = []
    for spec in ENTITIES:
        if wanted is not None and spec.trade_type not in wanted:
            continue
        out.append(EntityQuery(spec.entity, spec, spec.address_field))
        if spec.also_as_taker:
            out.append(EntityQuery(f"{spec.entity}AsTaker", spec, "taker"))
    return out


def build_where(
    address_field: str,
    wallet: str,
    market_address: str | None = None,
    from_ts: int | None = None,
    to_ts: int | None = None,
) -> str:
    parts = [f'{address_field}: "{wallet}"']
    if market_address:
        parts.append(f'poolAddress: "{market_address}"')
    if from_ts is not None:
        parts.append(f'blockTimestamp_gte: "{from_ts}"')
    if to_ts is not None:
        parts.append(f'blockTimestamp_lte: "{to_ts}"')
    return "{ " + ", ".join(parts) + " }"


def build_query(
    queries: Sequence[EntityQuery],
    skips: dict[str, int],
    *,
    wallet: str,
    market_address: str | None = None,
    from_ts: int | None = None,
    to_ts: int | None = None,
    order: str = "asc",
    first: int = LEDGER_PAGE_SIZE,
) -> str:
    lines = []
    for q in queries:
        where = build_where(q.address_field, wallet.lower(), market_address.lower() if market_address else None, from_ts, to_ts)
        head = f"{q.alias}: {q.spec.entity}" if q.alias != q.spec.entity else q.spec.entity
        lines.append(
            f"  {head}(where: {where}, orderBy: blockTimestamp, orderDirection: {order}, "
            f"first: {first}, skip: {skips.get(q.alias, 0)}) {{ {q.spec.fields} }}"
        )
    return "{\n" + "\n".join(lines) + "\n}"


class LedgerRow(BaseModel):
    """Union of every entity's fields; absent fields stay None."""

    model_config = ConfigDict(extra="ignore")

    id: str
    poolAddress: str
    blockNumber: int
    blockTimestamp: int
    transactionHash: str
    wallet: str | None = None
    maker: str | None = None
    taker: str | None = None
    orderCreator: str | None = None
    option: int | None = None
    orderOption: int | None = None
    baseAmount: int | None = None
    optionAmount: int | None = None
    orderAmount: int | None = None
    orderPrice: int | None = None
    orderID: int | None = None
    winnerOption: int | None = None
    reward: int | None = None
    liquidityReward: int | None = None
    totalReward: int | None = None

    def to_event(self, trade_type: TradeType) -> TradeEvent:
        def lc(v: str | None) -> str | None:
            return v.lower() if v else None

        wallet = self.wallet or self.maker or self.orderCreator or self.taker or ""
        return TradeEvent(
            id=self.id,
            type=trade_type,
            market_address=self.poolAddress.lower(),
            wallet=wallet.lower(),
            block_number=self.blockNumber,
            timestamp=self.blockTimestamp,
            tx_hash=self.transactionHash.lower(),
            option=self.orderOption if self.orderOption is not None else self.option,
            base_amount=self.baseAmount,
            option_amount=self.orderAmount if self.orderAmount is not None else self.optionAmount,
            price=self.orderPrice,
            order_id=self.orderID,
            maker=lc(self.maker),
            taker=lc(self.taker),
            winner_option=self.winnerOption,
            reward=self.reward,
            liquidity_reward=self.liquidityReward,
            total_reward=self.totalReward,
        )


def parse_row(raw: Any, trade_type: TradeType) -> TradeEvent:
    try:
        return LedgerRow.model_validate(raw).to_event(trade_type)
    except PydanticValidationError as e:
        raise DataShapeError(f"malformed ledger row: {e}") from e


def sort_events(events: list[TradeEvent], order: str = "asc") -> list[TradeEvent]:
    return sorted(events, key=lambda ev: ev.replay_key, reverse=order == "desc")


class SubgraphLedger:
    """Trade ledger backed by a GraphQL subgraph endpoint."""

    def __init__(
        self,
        subgraph_url: str,
        *,
        api_key: str | None = None,
        client: httpx.AsyncClient | None = None,
        page_size: int = LEDGER_PAGE_SIZE,
        timeout_s: int = 20,
    ) -> None:
        if not subgraph_url:
            raise ValidationError("subgraphUrl is required")
        self.subgraph_url = subgraph_url
        self.api_key = api_key
        self.page_size = page_size
        self._owns_client = client is None
        self.client = client or make_http_client(timeout_s=timeout_s)

    async def query(self, query: str) -> dict[str, Any]:
        """POST one GraphQL query and return its `data` member."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        try:
            r = await self.client.post(self.subgraph_url, json={"query": query}, headers=headers)
            r.raise_for_status()
            body = r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"Subgraph query failed: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Subgraph query failed: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable("Subgraph returned invalid JSON") from e

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            first = errors[0]
            msg = first.get("message") if isinstance(first, dict) else str(first)
            raise UpstreamUnavailable(f"Subgraph query error: {msg}")
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise DataShapeError("Subgraph response missing data")
        return data

    async def get_trade_events(
        self,
        wallet: str,
        *,
        market_address: str | None = None,
        types: Sequence[TradeType] | None = None,
        from_ts: int | None = None,
        to_ts: int | None = None,
        order: str = "asc",
    ) -> list[TradeEvent]:
        """Fetch the wallet's complete history for the requested event types."""
        if not wallet or not is_address(wallet):
            raise ValidationError("address is required")
        if market_address is not None and not is_address(market_address):
            raise ValidationError(f"market address {market_address!r} is not a valid EVM address")
        if order not in ("asc", "desc"):
            raise ValidationError(f"order must be 'asc' or 'desc', got {order!r}")

        pending = enabled_queries(types)
        skips: dict[str, int] = {q.alias: 0 for q in pending}
        seen: set[str] = set()
        events: list[TradeEvent] = []

        while pending:
            data = await self.query(
                build_query(
                    pending,
                    skips,
                    wallet=wallet,
                    market_address=market_address,
                    from_ts=from_ts,
                    to_ts=to_ts,
                    order=order,
                    first=self.page_size,
                )
            )
            still_open: list[EntityQuery] = []
            for q in pending:
                rows = data.get(q.alias) or []
                for raw in rows:
                    ev = parse_row(raw, q.spec.trade_type)
                    if ev.id in seen:
                        continue
                    seen.add(ev.id)
                    events.append(ev)
                if len(rows) >= self.page_size:
                    skips[q.alias] += self.page_size
                    still_open.append(q)
            pending = still_open

        logger.debug("ledger returned %d events for %s", len(events), wallet)
        return sort_events(events, order)

    async def get_transactions(
        self,
        wallet: str,
        *,
        market_address: str | None = None,
        types: Sequence[TradeType] | None = None,
        from_ts: int | None = None,
        to_ts: int | None = None,
        first: int = 20,
        skip: int = 0,
        order: str = "desc",
    ) -> TransactionsResult:
        """Paginated transaction list (slice of the full merged history)."""
        events = await self.get_trade_events(
            wallet,
            market_address=market_address,
            types=types,
            from_ts=from_ts,
            to_ts=to_ts,
            order=order,
        )
        return TransactionsResult(address=wallet, transactions=events[skip : skip + first], total=len(events))

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
