from rainpm.core.use_cases.pnl import PnLEngine, build_pnl, classify_trade, compute_market_pnl
from rainpm.core.use_cases.portfolio import PortfolioService
from rainpm.core.use_cases.positions import PositionReconstructor

__all__ = [
    "PnLEngine",
    "PortfolioService",
    "PositionReconstructor",
    "build_pnl",
    "classify_trade",
    "compute_market_pnl",
]
