"""Request arena and sequential outcome cursor.

A `ReadPlan` collects requests in build order and hands out `Slot`s that
remember where a group of reads starts. After the batch runs, an
`OutcomeCursor` opened at a slot consumes outcomes in exactly the order the
requests were appended, substituting defaults for failed entries. Callers
never compute offsets by hand.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from rainpm.abi import ContractFunction
from rainpm.batch.specs import ReadFailure, ReadOutcome, ReadRequest, ReadSuccess
from rainpm.core.errors import DataShapeError

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Slot:
    """Start offset and size of one group of reads inside a plan."""

    offset: int
    size: int


class ReadPlan:
    """Ordered list of read requests under construction."""

    def __init__(self) -> None:
        self.requests: list[ReadRequest] = []
        self._open: int | None = None

    def __len__(self) -> int:
        return len(self.requests)

    def add(self, target: str, function: ContractFunction, *args: Any) -> None:
        self.requests.append(ReadRequest(target=target, function=function, args=tuple(args)))

    def begin(self) -> None:
        """Start a new slot at the current end of the plan."""
        self._open = len(self.requests)

    def end(self) -> Slot:
        """Close the open slot and return it."""
        if self._open is None:
            raise RuntimeError("ReadPlan.end() called without begin()")
        slot = Slot(offset=self._open, size=len(self.requests) - self._open)
        self._open = None
        return slot


class OutcomeCursor:
    """Consume batch outcomes sequentially with per-type defaults."""

    def __init__(self, outcomes: Sequence[ReadOutcome], slot: Slot | None = None) -> None:
        self._outcomes = outcomes
        self._start = slot.offset if slot else 0
        self._stop = slot.offset + slot.size if slot else len(outcomes)
        self._pos = self._start
        if self._stop > len(outcomes):
            raise DataShapeError(f"slot ends at {self._stop} but batch has {len(outcomes)} outcomes")

    @property
    def position(self) -> int:
        return self._pos

    def exhausted(self) -> bool:
        return self._pos >= self._stop

    def _next(self) -> ReadOutcome:
        if self._pos >= self._stop:
            raise DataShapeError(f"cursor read past end of slot at index {self._pos}")
        outcome = self._outcomes[self._pos]
        self._pos += 1
        if isinstance(outcome, ReadFailure):
            logger.debug("read %d failed, using default: %s", self._pos - 1, outcome.error)
        return outcome

    def uint(self, default: int = 0) -> int:
        match self._next():
            case ReadSuccess(value=int() as v):
                return v
            case _:
                return default

    def flag(self, default: bool = False) -> bool:
        match self._next():
            case ReadSuccess(value=bool() as v):
                return v
            case _:
                return default

    def uint_list(self) -> tuple[int, ...]:
        match self._next():
            case ReadSuccess(value=list() | tuple() as v):
                return tuple(int(x) for x in v)
            case _:
                return ()

    def text(self, default: str = "") -> str:
        match self._next():
            case ReadSuccess(value=str() as v):
                return v
            case _:
                return default
