import json

import httpx
import pytest
from eth_abi import decode, encode
from fakes import MARKET_1, MARKET_2, TOKEN, WALLET, FakeChain

from rainpm.abi import ERC20, MULTICALL3, TRADE_POOL
from rainpm.batch import (
    MulticallReader,
    OutcomeCursor,
    ReadFailure,
    ReadPlan,
    ReadRequest,
    ReadSuccess,
    Slot,
    decode_outcomes,
    encode_aggregate3,
)
from rainpm.clients.rpc import RPC, to_hex_block
from rainpm.core.errors import DataShapeError, UpstreamUnavailable


def _requests() -> list[ReadRequest]:
    return [
        ReadRequest(MARKET_1, TRADE_POOL["userLiquidity"], (WALLET,)),
        ReadRequest(MARKET_1, TRADE_POOL["claimed"], (WALLET,)),
        ReadRequest(MARKET_2, TRADE_POOL["getDynamicPayout"], (WALLET,)),
        ReadRequest(TOKEN, ERC20["symbol"]),
    ]


# ---------------------------------------------------------------------------
# ABI surface
# ---------------------------------------------------------------------------


def test_signatures_and_selectors() -> None:
    assert TRADE_POOL["userVotes"].signature == "userVotes(uint256,address)"
    assert MULTICALL3["aggregate3"].signature == "aggregate3((address,bool,bytes)[])"
    assert ERC20["balanceOf"].selector.hex() == "70a08231"
    assert MULTICALL3["aggregate3"].selector.hex() == "82ad56cb"


def test_encode_call_checks_arity() -> None:
    with pytest.raises(ValueError):
        TRADE_POOL["userVotes"].encode_call((0,))


def test_encode_aggregate3_allows_failure_per_call() -> None:
    reqs = _requests()
    data = encode_aggregate3(reqs)
    assert data[:4] == MULTICALL3["aggregate3"].selector

    (calls,) = decode(["(address,bool,bytes)[]"], data[4:])
    assert [c[0].lower() for c in calls] == [MARKET_1, MARKET_1, MARKET_2, TOKEN]
    assert all(c[1] is True for c in calls)
    assert calls[0][2] == reqs[0].calldata()


# ---------------------------------------------------------------------------
# MulticallReader
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_execute_heterogeneous_batch_in_one_call(chain: FakeChain) -> None:
    chain.set(MARKET_1, "userLiquidity", WALLET, value=500)
    chain.set(MARKET_1, "claimed", WALLET, value=True)
    chain.set(MARKET_2, "getDynamicPayout", WALLET, value=[7, 8, 9])
    chain.set(TOKEN, "symbol", value="USDC")

    outcomes = await MulticallReader(chain).execute(_requests())

    assert chain.calls == 1
    assert [o.value for o in outcomes] == [500, True, (7, 8, 9), "USDC"]
    assert all(o.status == "success" for o in outcomes)


@pytest.mark.asyncio
async def test_one_failed_read_leaves_siblings_intact(chain: FakeChain) -> None:
    chain.set(MARKET_1, "userLiquidity", WALLET, value=500)
    # claimed() is not registered: it reverts
    chain.set(MARKET_2, "getDynamicPayout", WALLET, value=[1, 2])
    chain.corrupt(TOKEN, "symbol")

    outcomes = await MulticallReader(chain).execute(_requests())

    assert len(outcomes) == 4
    assert outcomes[0] == ReadSuccess(500)
    assert isinstance(outcomes[1], ReadFailure)
    assert "reverted" in outcomes[1].error
    assert outcomes[2] == ReadSuccess((1, 2))
    assert isinstance(outcomes[3], ReadFailure)


@pytest.mark.asyncio
async def test_transport_failure_aborts_batch(chain: FakeChain) -> None:
    chain.broken = True
    with pytest.raises(UpstreamUnavailable):
        await MulticallReader(chain).execute(_requests())


@pytest.mark.asyncio
async def test_empty_batch_skips_network(chain: FakeChain) -> None:
    assert await MulticallReader(chain).execute([]) == []
    assert chain.calls == 0


@pytest.mark.asyncio
async def test_reader_pins_block_and_routes_to_multicall(mock_rpc) -> None:
    reqs = [ReadRequest(MARKET_1, TRADE_POOL["userLiquidity"], (WALLET,))]
    mock_rpc.eth_call.return_value = encode(["(bool,bytes)[]"], [[(True, encode(["uint256"], [3]))]])

    reader = MulticallReader(mock_rpc, block=123)
    outcomes = await reader.execute(reqs)

    assert outcomes == [ReadSuccess(3)]
    kwargs = mock_rpc.eth_call.await_args.kwargs
    assert kwargs["to"] == reader.multicall_address
    assert kwargs["block"] == 123


def test_decode_outcomes_rejects_length_mismatch() -> None:
    raw = encode(["(bool,bytes)[]"], [[(True, encode(["uint256"], [1]))]])
    with pytest.raises(DataShapeError):
        decode_outcomes(_requests(), raw)


def test_non_utf8_symbol_fails_only_its_entry() -> None:
    requests = [ReadRequest(TOKEN, ERC20["symbol"]), ReadRequest(TOKEN, ERC20["decimals"])]
    raw = encode(
        ["(bool,bytes)[]"],
        [[(True, encode(["bytes"], [b"\xff\xfe"])), (True, encode(["uint8"], [6]))]],
    )

    outcomes = decode_outcomes(requests, raw)

    assert isinstance(outcomes[0], ReadFailure)
    assert TOKEN in outcomes[0].error
    assert outcomes[1] == ReadSuccess(6)
    cur = OutcomeCursor(outcomes, Slot(0, 2))
    assert cur.text(default="UNKNOWN") == "UNKNOWN"
    assert cur.uint() == 6


def test_decode_outcomes_rejects_garbage() -> None:
    with pytest.raises(DataShapeError):
        decode_outcomes(_requests(), b"\x00\x01")


# ---------------------------------------------------------------------------
# ReadPlan / OutcomeCursor
# ---------------------------------------------------------------------------


def test_plan_slots_track_offsets() -> None:
    plan = ReadPlan()
    plan.begin()
    plan.add(MARKET_1, TRADE_POOL["userLiquidity"], WALLET)
    plan.add(MARKET_1, TRADE_POOL["claimed"], WALLET)
    first = plan.end()
    plan.begin()
    plan.add(MARKET_2, TRADE_POOL["totalLiquidity"])
    second = plan.end()

    assert first == Slot(offset=0, size=2)
    assert second == Slot(offset=2, size=1)
    assert len(plan) == 3


def test_plan_end_without_begin() -> None:
    with pytest.raises(RuntimeError):
        ReadPlan().end()


def test_cursor_substitutes_defaults_for_failures() -> None:
    outcomes = [ReadFailure("x")] * 4
    cur = OutcomeCursor(outcomes)
    assert cur.uint() == 0
    assert cur.flag() is False
    assert cur.uint_list() == ()
    assert cur.text(default="UNKNOWN") == "UNKNOWN"
    assert cur.exhausted()


def test_cursor_reads_within_slot_only() -> None:
    outcomes = [ReadSuccess(1), ReadSuccess(2), ReadSuccess(3)]
    cur = OutcomeCursor(outcomes, Slot(offset=1, size=1))
    assert cur.uint() == 2
    with pytest.raises(DataShapeError):
        cur.uint()


def test_cursor_rejects_slot_past_outcomes() -> None:
    with pytest.raises(DataShapeError):
        OutcomeCursor([ReadSuccess(1)], Slot(offset=0, size=2))


def test_cursor_type_mismatch_uses_default() -> None:
    cur = OutcomeCursor([ReadSuccess("not a number"), ReadSuccess(5)])
    assert cur.uint(default=9) == 9
    assert cur.flag() is False


# ---------------------------------------------------------------------------
# RPC transport
# ---------------------------------------------------------------------------


def _rpc_with(handler) -> RPC:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RPC("http://rpc.test", client=client)


@pytest.mark.asyncio
async def test_rpc_eth_call_returns_bytes() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.update(body)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x0102"})

    rpc = _rpc_with(handler)
    assert await rpc.eth_call(to=MARKET_1, data=b"\xaa", block=100) == b"\x01\x02"
    assert seen["method"] == "eth_call"
    assert seen["params"] == [{"to": MARKET_1, "data": "0xaa"}, "0x64"]
    await rpc.client.aclose()


@pytest.mark.asyncio
async def test_rpc_error_member_is_upstream_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "boom"}})

    rpc = _rpc_with(handler)
    with pytest.raises(UpstreamUnavailable, match="boom"):
        await rpc.eth_call(to=MARKET_1, data=b"")
    await rpc.client.aclose()


@pytest.mark.asyncio
async def test_rpc_http_error_is_upstream_unavailable() -> None:
    rpc = _rpc_with(lambda request: httpx.Response(503))
    with pytest.raises(UpstreamUnavailable):
        await rpc.latest_block()
    await rpc.client.aclose()


def test_to_hex_block() -> None:
    assert to_hex_block(255) == "0xff"
    assert to_hex_block("latest") == "latest"
