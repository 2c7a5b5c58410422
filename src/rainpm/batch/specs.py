"""Batch read primitives.

- `ReadRequest`: one read-only call (target contract, function, arguments).
- `ReadSuccess` / `ReadFailure`: the two outcome variants. A batch returns
  exactly one outcome per request, in request order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from rainpm.abi import ContractFunction


@dataclass(slots=True, frozen=True)
class ReadRequest:
    target: str
    function: ContractFunction
    args: tuple[Any, ...] = ()

    def calldata(self) -> bytes:
        return self.function.encode_call(self.args)

    def describe(self) -> str:
        return f"{self.target}.{self.function.name}"


@dataclass(slots=True, frozen=True)
class ReadSuccess:
    value: Any
    status: Literal["success"] = "success"


@dataclass(slots=True, frozen=True)
class ReadFailure:
    error: str
    status: Literal["failure"] = "failure"


ReadOutcome = ReadSuccess | ReadFailure
