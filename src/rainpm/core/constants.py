from __future__ import annotations

# Fixed-point multiplier used for average cost per share (6 extra digits).
SCALE = 1_000_000

# Multicall3 is deployed at the same address on every EVM chain.
MULTICALL3_ADDRESS = "0xcA11bde05977b3631167028862bE2a173976CA11"

CATALOG_PAGE_SIZE = 200
LEDGER_PAGE_SIZE = 1_000

# Per-market and per-option read counts in a positions batch.
MARKET_LEVEL_READS = 3
OPTION_LEVEL_READS = 4

DEFAULT_BASE_TOKEN_DECIMALS = 6
NATIVE_DECIMALS = 18
