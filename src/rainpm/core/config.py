from __future__ import annotations

import os
import random
from dataclasses import dataclass, field

from rainpm.core.constants import CATALOG_PAGE_SIZE, LEDGER_PAGE_SIZE, MULTICALL3_ADDRESS
from rainpm.core.errors import ValidationError

ENV_CONFIG: dict[str, dict[str, str]] = {
    "development": {"api_url": "https://dev-api.rain.one"},
    "stage": {"api_url": "https://stg-api.rain.one"},
    "production": {"api_url": "https://prod-api.rain.one"},
}

DEFAULT_RPCS: list[str] = [
    "https://arb1.arbitrum.io/rpc",
    "https://arbitrum-one.publicnode.com",
    "https://rpc.sentio.xyz/arbitrum-one",
]


def random_rpc() -> str:
    """Pick one of the public Arbitrum RPC endpoints."""
    return random.choice(DEFAULT_RPCS)


@dataclass(frozen=True)
class ClientConfig:
    """Endpoints and transport settings for a `RainClient`."""

    api_url: str = ""
    rpc_url: str = ""
    subgraph_url: str = ""
    subgraph_api_key: str | None = None
    timeout_s: int = 20
    max_connections: int = 64
    multicall_address: str = MULTICALL3_ADDRESS
    catalog_page_size: int = CATALOG_PAGE_SIZE
    ledger_page_size: int = LEDGER_PAGE_SIZE
    extra_headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def for_environment(cls, environment: str, **overrides) -> ClientConfig:
        """Build a config from one of the named environment presets."""
        preset = ENV_CONFIG.get(environment)
        if preset is None:
            allowed = ", ".join(ENV_CONFIG)
            raise ValidationError(f"unknown environment {environment!r} (expected one of: {allowed})")
        values = {"api_url": preset["api_url"], "rpc_url": random_rpc()}
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    @classmethod
    def from_env(cls, environment: str | None = None) -> ClientConfig:
        """Read configuration from RAIN_* environment variables."""
        env_name = environment or os.getenv("RAIN_ENV", "production")
        timeout = os.getenv("RAIN_TIMEOUT_S")
        try:
            timeout_s = int(timeout) if timeout else None
        except ValueError as e:
            raise ValidationError(f"RAIN_TIMEOUT_S must be an integer, got {timeout!r}") from e
        return cls.for_environment(
            env_name,
            api_url=os.getenv("RAIN_API_URL") or None,
            rpc_url=os.getenv("RAIN_RPC_URL") or None,
            subgraph_url=os.getenv("RAIN_SUBGRAPH_URL") or None,
            subgraph_api_key=os.getenv("RAIN_SUBGRAPH_API_KEY") or None,
            timeout_s=timeout_s,
        )

    def require(self, *names: str) -> None:
        """Raise ValidationError for the first empty endpoint among `names`."""
        for name in names:
            if not getattr(self, name):
                raise ValidationError(f"{name} is required")
