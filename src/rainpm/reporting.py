"""Tabular exports of positions and PnL (pandas, parquet via pyarrow or CSV).

Raw on-chain amounts can exceed int64, so they are stored as decimal strings
next to a human-readable `*_fmt` column.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from rainpm.core.errors import ValidationError
from rainpm.core.models import PnLResult, PositionsResult, format_units


def pnl_frame(result: PnLResult) -> pd.DataFrame:
    """One row per (market, option)."""
    rows = []
    for m in result.markets:
        d = m.base_token_decimals
        for o in m.options:
            rows.append(
                {
                    "wallet": result.address,
                    "market_id": m.market_id,
                    "title": m.title,
                    "status": str(m.status),
                    "contract_address": m.contract_address,
                    "claimed": m.claimed,
                    "choice_index": o.choice_index,
                    "option_name": o.option_name,
                    "buy_shares": str(o.buy_shares),
                    "buy_cost": str(o.buy_cost),
                    "sell_shares": str(o.sell_shares),
                    "sell_proceeds": str(o.sell_proceeds),
                    "current_value": str(o.current_value),
                    "cost_basis": str(o.cost_basis),
                    "realized_pnl": str(o.realized_pnl),
                    "unrealized_pnl": str(o.unrealized_pnl),
                    "realized_pnl_fmt": format_units(o.realized_pnl, d),
                    "unrealized_pnl_fmt": format_units(o.unrealized_pnl, d),
                }
            )
    return pd.DataFrame(rows)


def positions_frame(result: PositionsResult) -> pd.DataFrame:
    rows = []
    for m in result.markets:
        d = m.base_token_decimals
        for o in m.options:
            payout = m.dynamic_payout[o.choice_index] if 0 <= o.choice_index < len(m.dynamic_payout) else 0
            rows.append(
                {
                    "wallet": result.address,
                    "market_id": m.market_id,
                    "title": m.title,
                    "status": str(m.status),
                    "contract_address": m.contract_address,
                    "claimed": m.claimed,
                    "user_liquidity": str(m.user_liquidity),
                    "choice_index": o.choice_index,
                    "option_name": o.option_name,
                    "shares": str(o.shares),
                    "shares_in_escrow": str(o.shares_in_escrow),
                    "amount_in_escrow": str(o.amount_in_escrow),
                    "current_price": str(o.current_price),
                    "dynamic_payout": str(payout),
                    "dynamic_payout_fmt": format_units(payout, d),
                }
            )
    return pd.DataFrame(rows)


def write_frame(df: pd.DataFrame, path: str | Path) -> Path:
    """Write `.parquet` (zstd) or `.csv`, chosen by suffix."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    match path.suffix.lower():
        case ".parquet":
            df.to_parquet(path, engine="pyarrow", compression="zstd", index=False)
        case ".csv":
            df.to_csv(path, index=False)
        case other:
            raise ValidationError(f"unsupported export format {other!r} (use .parquet or .csv)")
    return path
