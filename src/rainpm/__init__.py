from __future__ import annotations

from .api.client import RainClient
from .batch import MulticallReader, OutcomeCursor, ReadPlan, ReadRequest
from .core.config import ClientConfig
from .core.errors import DataShapeError, MarketNotFound, RainError, UpstreamUnavailable, ValidationError
from .core.models import MarketPnL, MarketPosition, PnLResult, PositionsResult, TradeEvent, TradeType
from .core.use_cases import PnLEngine, PortfolioService, PositionReconstructor

__all__ = [
    "RainClient",
    "ClientConfig",
    "MulticallReader",
    "ReadPlan",
    "ReadRequest",
    "OutcomeCursor",
    "PositionReconstructor",
    "PnLEngine",
    "PortfolioService",
    "MarketPosition",
    "PositionsResult",
    "TradeEvent",
    "TradeType",
    "MarketPnL",
    "PnLResult",
    "RainError",
    "ValidationError",
    "UpstreamUnavailable",
    "DataShapeError",
    "MarketNotFound",
]
