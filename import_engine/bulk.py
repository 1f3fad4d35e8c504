"""
import_engine.bulk - Chunked upserts for derived and multi-row writes.

Rows are sent to the store in fixed-size chunks.  A chunk that fails
is recorded and skipped; chunks already written stay written and the
remaining chunks are still attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

import config
from db.store import Store

logger = logging.getLogger(__name__)


@dataclass
class BulkReport:
    written: int = 0
    chunks: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"written": self.written, "chunks": self.chunks, "errors": list(self.errors)}


def chunked(rows: list, size: int) -> Iterator[list]:
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


def write_in_chunks(
    store: Store,
    table: str,
    rows: list[dict],
    conflict_key: tuple[str, ...],
    chunk_size: int = config.BULK_CHUNK_SIZE,
) -> BulkReport:
    report = BulkReport()
    for number, chunk in enumerate(chunked(rows, chunk_size), start=1):
        report.chunks += 1
        try:
            store.upsert(table, chunk, conflict_key)
        except Exception as exc:
            msg = f"Chunk {number}: {exc}"
            logger.error(f"{table} bulk write failed - {msg}")
            report.errors.append(msg)
            continue
        report.written += len(chunk)
    return report
