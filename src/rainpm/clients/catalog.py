"""REST client for the market catalog.

The catalog answers list pages in several envelope shapes (a bare list,
`{"data": [...]}`, `{"data": {"pools": [...]}}`, `{"pools": [...]}`) and
single records either bare or under `"data"`. Everything is normalized here;
nothing past this module sees a raw payload.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx
from eth_utils import is_address
from pydantic import BaseModel, ConfigDict, model_validator
from pydantic import ValidationError as PydanticValidationError

from rainpm.clients.rpc import make_http_client
from rainpm.core.constants import CATALOG_PAGE_SIZE, DEFAULT_BASE_TOKEN_DECIMALS
from rainpm.core.errors import DataShapeError, MarketNotFound, UpstreamUnavailable, ValidationError
from rainpm.core.models import Market, MarketOption, MarketStatus

logger = logging.getLogger(__name__)


class OptionRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    choiceIndex: int | None = None
    optionName: str | None = None


class MarketRecord(BaseModel):
    """One catalog entry with the upstream field aliases folded together."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    title: str = ""
    status: str = MarketStatus.NEW.value
    contractAddress: str | None = None
    options: list[OptionRecord] = []
    baseTokenDecimals: int = DEFAULT_BASE_TOKEN_DECIMALS

    @model_validator(mode="before")
    @classmethod
    def _fold_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw_id = data.get("id") if data.get("id") is not None else data.get("_id")
        decimals = data.get("baseTokenDecimals", data.get("tokenDecimals"))
        return {
            "id": "" if raw_id is None else str(raw_id),
            "title": data.get("title") or data.get("question") or "",
            "status": data.get("status") or MarketStatus.NEW.value,
            "contractAddress": data.get("contractAddress") or None,
            "options": data.get("options") or data.get("choices") or [],
            "baseTokenDecimals": DEFAULT_BASE_TOKEN_DECIMALS if decimals is None else decimals,
        }

    def to_market(self, *, fallback_id: str = "") -> Market:
        address = self.contractAddress or ""
        if address and not is_address(address):
            raise DataShapeError(f"market {self.id or fallback_id!r} has malformed contractAddress {address!r}")
        options = tuple(
            MarketOption(
                choice_index=o.choiceIndex if o.choiceIndex is not None else i,
                option_name=o.optionName if o.optionName is not None else f"Option {i}",
            )
            for i, o in enumerate(self.options)
        )
        return Market(
            id=self.id or fallback_id,
            title=self.title,
            status=MarketStatus(self.status),
            contract_address=address,
            options=options,
            base_token_decimals=self.baseTokenDecimals,
        )


def normalize_envelope(payload: Any) -> list[dict[str, Any]]:
    """Extract the list of market records from any known page envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list):
            return data
        if isinstance(data, dict) and isinstance(data.get("pools"), list):
            return data["pools"]
        if isinstance(payload.get("pools"), list):
            return payload["pools"]
    return []


def unwrap_detail(payload: Any) -> dict[str, Any]:
    """Extract a single market record from a detail response."""
    record = payload.get("data", payload) if isinstance(payload, dict) else payload
    if not isinstance(record, dict):
        raise DataShapeError(f"market detail is {type(record).__name__}, expected an object")
    return record


def parse_market(record: Any, *, fallback_id: str = "") -> Market:
    try:
        return MarketRecord.model_validate(record).to_market(fallback_id=fallback_id)
    except PydanticValidationError as e:
        raise DataShapeError(f"malformed market record: {e}") from e


class MarketCatalog:
    """Async client for `/pools/public-pools` and `/pools/pool/{id}`.

    Parameters
    ----------
    api_url : str
        REST API base URL.
    client : httpx.AsyncClient | None
        Shared HTTP client; one is created (and owned) when omitted.
    page_size : int
        Items requested per list page. A shorter page marks the end of data.
    """

    def __init__(
        self,
        api_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        page_size: int = CATALOG_PAGE_SIZE,
        timeout_s: int = 20,
    ) -> None:
        if not api_url:
            raise ValidationError("api_url is required")
        self.api_url = api_url.rstrip("/")
        self.page_size = page_size
        self._owns_client = client is None
        self.client = client or make_http_client(timeout_s=timeout_s)

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        url = f"{self.api_url}{path}"
        try:
            r = await self.client.get(url, params=params)
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"Failed to fetch {path}: {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Failed to fetch {path}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Invalid JSON from {path}") from e

    async def iter_pages(self) -> AsyncIterator[list[dict[str, Any]]]:
        """Yield raw record pages until one is shorter than `page_size`."""
        offset = 0
        while True:
            payload = await self._get_json(
                "/pools/public-pools", params={"limit": self.page_size, "offset": offset}
            )
            items = normalize_envelope(payload)
            logger.debug("catalog page offset=%d items=%d", offset, len(items))
            yield items
            if len(items) < self.page_size:
                return
            offset += self.page_size

    async def list_markets(self) -> list[Market]:
        markets: list[Market] = []
        async for page in self.iter_pages():
            markets.extend(parse_market(item) for item in page)
        return markets

    async def get_market(self, market_id: str) -> Market:
        if not market_id:
            raise ValidationError("marketId is required")
        payload = await self._get_json(f"/pools/pool/{market_id}")
        market = parse_market(unwrap_detail(payload), fallback_id=market_id)
        if not market.contract_address:
            raise DataShapeError("Market response missing contractAddress")
        return market

    async def get_market_address(self, market_id: str) -> str:
        return (await self.get_market(market_id)).contract_address

    async def find_market_id(self, market_address: str) -> str:
        if not market_address:
            raise ValidationError("marketAddress is required")
        wanted = market_address.lower()
        async for page in self.iter_pages():
            for item in page:
                addr = item.get("contractAddress") if isinstance(item, dict) else None
                if isinstance(addr, str) and addr.lower() == wanted:
                    return parse_market(item).id
        raise MarketNotFound(f"No market found with address {market_address}")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
