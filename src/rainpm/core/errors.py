"""Error taxonomy shared by every client and use case.

- `ValidationError`: a required parameter or endpoint is missing/invalid.
  Raised before any network call.
- `UpstreamUnavailable`: REST / GraphQL / JSON-RPC transport failure or
  non-success response. Aborts the whole operation.
- `DataShapeError`: an upstream payload lacks a field we depend on.
- `MarketNotFound`: a catalog scan finished without a match.

A single failing on-chain read inside a batch is *not* an exception: it is a
`ReadFailure` outcome that the positions layer replaces with a default value.
"""

from __future__ import annotations


class RainError(Exception):
    """Base class for all rainpm errors."""


class ValidationError(RainError, ValueError):
    """Missing or invalid caller-supplied parameter."""


class UpstreamUnavailable(RainError, RuntimeError):
    """An upstream service could not be reached or answered with an error."""


class DataShapeError(RainError, ValueError):
    """An upstream response is missing an expected field."""


class MarketNotFound(RainError, LookupError):
    """No market in the catalog matches the requested contract address."""
