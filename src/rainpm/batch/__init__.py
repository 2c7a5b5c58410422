"""Batched on-chain reads.

This package provides:
- Request/outcome types (ReadRequest, ReadSuccess, ReadFailure)
- `MulticallReader`: one round trip for N independent reads
- `ReadPlan` / `OutcomeCursor`: positional bookkeeping over flat results
"""

from rainpm.batch.cursor import OutcomeCursor, ReadPlan, Slot
from rainpm.batch.reader import MulticallReader, decode_outcomes, encode_aggregate3
from rainpm.batch.specs import ReadFailure, ReadOutcome, ReadRequest, ReadSuccess

__all__ = [
    "MulticallReader",
    "OutcomeCursor",
    "ReadFailure",
    "ReadOutcome",
    "ReadPlan",
    "ReadRequest",
    "ReadSuccess",
    "Slot",
    "decode_outcomes",
    "encode_aggregate3",
]
