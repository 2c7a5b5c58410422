from unittest.mock import patch

from click.testing import CliRunner
from fakes import MARKET_1, WALLET, trade

from rainpm.cli import cli
from rainpm.core.errors import ValidationError
from rainpm.core.models import MarketPosition, MarketStatus, OptionPosition, PositionsResult, TradeType
from rainpm.core.use_cases.pnl import build_pnl

POSITION = MarketPosition(
    market_id="m1",
    title="Will it rain?",
    status=MarketStatus.LIVE,
    contract_address=MARKET_1,
    options=(OptionPosition(0, "Yes", shares=100), OptionPosition(1, "No")),
    dynamic_payout=(70, 0),
)


class StubClient:
    def __init__(self, config) -> None:
        self.config = config

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    async def get_positions(self, wallet):
        return PositionsResult(address=wallet, markets=[POSITION])

    async def get_pnl(self, wallet, market_address=None):
        if not wallet.startswith("0x"):
            raise ValidationError(f"address {wallet!r} is not a valid EVM address")
        return build_pnl(wallet, [POSITION], [trade(TradeType.BUY, option=0, base=40, shares=100)])


def test_pnl_command_renders_and_exports(tmp_path) -> None:
    out = tmp_path / "pnl.csv"
    with patch("rainpm.cli.RainClient", StubClient):
        res = CliRunner().invoke(cli, ["--rpc", "http://node", "pnl", WALLET, "--out", str(out)])

    assert res.exit_code == 0, res.output
    assert "pnl=0.00003" in res.output
    assert out.exists()


def test_positions_command(tmp_path) -> None:
    with patch("rainpm.cli.RainClient", StubClient):
        res = CliRunner().invoke(cli, ["positions", WALLET])

    assert res.exit_code == 0, res.output
    assert "1 markets with an open position" in res.output


def test_errors_become_click_exceptions() -> None:
    with patch("rainpm.cli.RainClient", StubClient):
        res = CliRunner().invoke(cli, ["pnl", "nope"])

    assert res.exit_code == 1
    assert "not a valid EVM address" in res.output


def test_malformed_timeout_env_is_reported() -> None:
    with patch("rainpm.cli.RainClient", StubClient):
        res = CliRunner().invoke(cli, ["positions", WALLET], env={"RAIN_TIMEOUT_S": "soon"})

    assert res.exit_code == 1
    assert "RAIN_TIMEOUT_S must be an integer" in res.output
    assert res.exception is None or isinstance(res.exception, SystemExit)


def test_cli_overrides_reach_config() -> None:
    seen = {}

    class Capture(StubClient):
        def __init__(self, config) -> None:
            seen["config"] = config
            super().__init__(config)

    with patch("rainpm.cli.RainClient", Capture):
        CliRunner().invoke(cli, ["--subgraph", "https://graph.test/q", "--subgraph-key", "k", "positions", WALLET])

    assert seen["config"].subgraph_url == "https://graph.test/q"
    assert seen["config"].subgraph_api_key == "k"
