"""Multicall3-backed batch reader.

All requests are packed into one `aggregate3` call with `allowFailure=true`
and sent as a single `eth_call`, so every read observes the same block.

- A transport or JSON-RPC failure aborts the whole batch (`UpstreamUnavailable`).
- A reverted call, or return data that does not decode to the declared output
  types, becomes a `ReadFailure` for that entry only.
- There is no retry and no batch-size ceiling here.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from rainpm.abi import MULTICALL3
from rainpm.batch.specs import ReadFailure, ReadOutcome, ReadRequest, ReadSuccess
from rainpm.core.constants import MULTICALL3_ADDRESS
from rainpm.core.errors import DataShapeError
from rainpm.core.interfaces import IEthCaller

logger = logging.getLogger(__name__)


def encode_aggregate3(requests: Sequence[ReadRequest]) -> bytes:
    """Encode `aggregate3((address,bool,bytes)[])` call data for `requests`."""
    calls = [(to_checksum_address(req.target), True, req.calldata()) for req in requests]
    return MULTICALL3["aggregate3"].encode_call([calls])


def decode_outcomes(requests: Sequence[ReadRequest], raw: bytes) -> list[ReadOutcome]:
    """Decode `aggregate3` return data into one outcome per request."""
    try:
        results = MULTICALL3["aggregate3"].decode_result(raw)
    except DecodingError as e:
        raise DataShapeError(f"undecodable aggregate3 response: {e}") from e
    if len(results) != len(requests):
        raise DataShapeError(f"aggregate3 returned {len(results)} results for {len(requests)} calls")

    out: list[ReadOutcome] = []
    for req, (success, return_data) in zip(requests, results):
        if not success:
            out.append(ReadFailure(f"{req.describe()} reverted"))
            continue
        try:
            out.append(ReadSuccess(req.function.decode_result(return_data)))
        except (DecodingError, UnicodeDecodeError) as e:
            out.append(ReadFailure(f"{req.describe()}: {e}"))
    return out


class MulticallReader:
    """Execute many independent reads in one round trip.

    Parameters
    ----------
    rpc : IEthCaller
        Anything exposing `eth_call(to=..., data=..., block=...)`.
    multicall_address : str
        Multicall3 deployment to route the batch through.
    block : int | str
        Block tag every batch is pinned to.
    """

    def __init__(
        self,
        rpc: IEthCaller,
        *,
        multicall_address: str = MULTICALL3_ADDRESS,
        block: int | str = "latest",
    ) -> None:
        self._rpc = rpc
        self.multicall_address = to_checksum_address(multicall_address)
        self.block = block

    async def execute(self, requests: Sequence[ReadRequest]) -> list[ReadOutcome]:
        if not requests:
            return []
        data = encode_aggregate3(requests)
        raw = await self._rpc.eth_call(to=self.multicall_address, data=data, block=self.block)
        outcomes = decode_outcomes(requests, raw)
        failed = sum(1 for o in outcomes if isinstance(o, ReadFailure))
        logger.debug("batch of %d reads executed (%d failed)", len(requests), failed)
        return outcomes
