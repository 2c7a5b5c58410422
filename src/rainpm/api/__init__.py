from __future__ import annotations

from .client import RainClient

__all__ = ["RainClient"]
