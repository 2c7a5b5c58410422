import pandas as pd
import pytest
from fakes import MARKET_1, OTHER, WALLET, trade

from rainpm.core.errors import ValidationError
from rainpm.core.models import MarketPosition, MarketStatus, OptionPosition, PositionsResult, TradeType
from rainpm.core.use_cases.pnl import build_pnl
from rainpm.reporting import pnl_frame, positions_frame, write_frame


def _position() -> MarketPosition:
    return MarketPosition(
        market_id="m1",
        title="Will it rain?",
        status=MarketStatus.LIVE,
        contract_address=MARKET_1,
        options=(OptionPosition(0, "Yes", shares=60), OptionPosition(1, "No")),
        dynamic_payout=(50_000_000, 0),
    )


def test_pnl_frame_has_one_row_per_option() -> None:
    trades = [
        trade(TradeType.BUY, option=0, base=40, shares=100, ts=1),
        trade(TradeType.LIMIT_SELL_FILLED, option=0, base=18, shares=40, ts=2, maker=WALLET, taker=OTHER),
    ]
    df = pnl_frame(build_pnl(WALLET, [_position()], trades))

    assert len(df) == 2
    assert df.loc[0, "realized_pnl"] == "2"
    assert df.loc[0, "realized_pnl_fmt"] == "0.000002"
    assert df.loc[1, "option_name"] == "No"


def test_positions_frame_keeps_big_ints_exact(tmp_path) -> None:
    big = 2**200
    pos = _position()
    result = PositionsResult(address=WALLET, markets=[pos])
    df = positions_frame(result)
    df.loc[0, "shares"] = str(big)

    path = write_frame(df, tmp_path / "out" / "positions.parquet")
    back = pd.read_parquet(path)

    assert int(back.loc[0, "shares"]) == big
    assert back.loc[0, "dynamic_payout_fmt"] == "50"


def test_write_frame_csv(tmp_path) -> None:
    df = positions_frame(PositionsResult(address=WALLET, markets=[_position()]))
    path = write_frame(df, tmp_path / "positions.csv")
    assert path.read_text().splitlines()[0].startswith("wallet,market_id")


def test_write_frame_rejects_unknown_suffix(tmp_path) -> None:
    with pytest.raises(ValidationError):
        write_frame(pd.DataFrame(), tmp_path / "out.xlsx")
