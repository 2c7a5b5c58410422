"""ABI fragments parsed into callable function specs.

- `AbiParam` / `AbiFunction`: pydantic views over raw ABI JSON entries.
- `ContractFunction`: canonical signature, 4-byte selector, and the
  `eth_abi` encode/decode pair for one function.
- `TRADE_POOL`, `ERC20`, `MULTICALL3`: name → ContractFunction tables.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import cached_property
from typing import Any, Literal

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, to_checksum_address
from pydantic import BaseModel

from rainpm.abi.fragments import ERC20_ABI, MULTICALL3_ABI, TRADE_POOL_ABI


class AbiParam(BaseModel):
    name: str = ""
    type: str
    components: Sequence[AbiParam] | None = None

    def canonical_type(self) -> str:
        """Expand `tuple` types into `(t1,t2,...)` keeping any array suffix."""
        if not self.type.startswith("tuple"):
            return self.type
        inner = ",".join(c.canonical_type() for c in self.components or ())
        return f"({inner}){self.type[len('tuple'):]}"


AbiParam.model_rebuild()


class AbiFunction(BaseModel):
    name: str
    type: Literal["function"]
    inputs: Sequence[AbiParam]
    outputs: Sequence[AbiParam] = ()
    stateMutability: str = "view"


@dataclass(frozen=True)
class ContractFunction:
    """One contract function with its ABI codec."""

    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    @cached_property
    def selector(self) -> bytes:
        return function_signature_to_4byte_selector(self.signature)

    def encode_call(self, args: Sequence[Any] = ()) -> bytes:
        """Return selector + ABI-encoded arguments."""
        if len(args) != len(self.inputs):
            raise ValueError(f"{self.signature} expects {len(self.inputs)} args, got {len(args)}")
        values = [to_checksum_address(a) if t == "address" else a for t, a in zip(self.inputs, args)]
        return self.selector + encode(list(self.inputs), values)

    def decode_result(self, data: bytes) -> Any:
        """Decode return data; single-output functions return the bare value."""
        values = decode(list(self.outputs), data)
        return values[0] if len(values) == 1 else values


def function_from_abi(entry: AbiFunction) -> ContractFunction:
    return ContractFunction(
        name=entry.name,
        inputs=tuple(p.canonical_type() for p in entry.inputs),
        outputs=tuple(p.canonical_type() for p in entry.outputs),
    )


def get_functions_from_abi(abi: Iterable[dict[str, Any]]) -> dict[str, ContractFunction]:
    return {
        entry["name"]: function_from_abi(AbiFunction.model_validate(entry))
        for entry in abi
        if entry["type"] == "function"
    }


TRADE_POOL = get_functions_from_abi(TRADE_POOL_ABI)
ERC20 = get_functions_from_abi(ERC20_ABI)
MULTICALL3 = get_functions_from_abi(MULTICALL3_ABI)

__all__ = [
    "AbiFunction",
    "AbiParam",
    "ContractFunction",
    "ERC20",
    "MULTICALL3",
    "TRADE_POOL",
    "function_from_abi",
    "get_functions_from_abi",
]
