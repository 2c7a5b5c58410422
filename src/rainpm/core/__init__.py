"""Core data models, configuration, errors and use cases.

This package provides:
- Data models (Market, MarketPosition, TradeEvent, MarketPnL, PnLResult, ...)
- Configuration (ClientConfig, environment presets)
- The error taxonomy (ValidationError, UpstreamUnavailable, DataShapeError)
- Collaborator interfaces (IBatchReader, IMarketCatalog, ITradeLedger)
"""

from rainpm.core.config import ClientConfig
from rainpm.core.errors import DataShapeError, MarketNotFound, RainError, UpstreamUnavailable, ValidationError
from rainpm.core.models import (
    LiveSnapshot,
    Market,
    MarketOption,
    MarketPnL,
    MarketPosition,
    MarketStatus,
    OptionPnL,
    OptionPosition,
    PnLResult,
    PositionsResult,
    SyntheticExitStub,
    TradeEvent,
    TradeType,
    format_units,
)

__all__ = [
    "ClientConfig",
    "DataShapeError",
    "LiveSnapshot",
    "Market",
    "MarketNotFound",
    "MarketOption",
    "MarketPnL",
    "MarketPosition",
    "MarketStatus",
    "OptionPnL",
    "OptionPosition",
    "PnLResult",
    "PositionsResult",
    "RainError",
    "SyntheticExitStub",
    "TradeEvent",
    "TradeType",
    "UpstreamUnavailable",
    "ValidationError",
    "format_units",
]
