"""
import_engine.column_mapper - Assign spreadsheet columns to target fields.

Every column is scored against every keyword of every candidate field
on its own; assignment then walks the columns left to right and the
first column to claim a field keeps it.  A later column whose best
candidate is already taken ends up unmapped, so no field is ever fed
by two columns.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from import_engine.similarity import similarity
from schema.fields import FieldDefinition

logger = logging.getLogger(__name__)


class Confidence(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"


@dataclass(frozen=True)
class ColumnMapping:
    source_column: str
    field_key: Optional[str] = None
    confidence: Confidence = Confidence.NONE
    display_name: str = "-"
    required: bool = False
    score: float = 0.0

    @property
    def is_mapped(self) -> bool:
        return self.field_key is not None

    def to_dict(self) -> dict:
        return {
            "source_column": self.source_column,
            "field_key": self.field_key,
            "confidence": self.confidence.value,
            "display_name": self.display_name,
            "required": self.required,
            "score": round(self.score, 3),
        }


def confidence_for(score: float) -> Confidence:
    if score >= 0.8:
        return Confidence.HIGH
    if score >= 0.5:
        return Confidence.MEDIUM
    if score >= 0.3:
        return Confidence.LOW
    return Confidence.NONE


def best_match(
    column: str, fields: Iterable[FieldDefinition],
) -> tuple[Optional[FieldDefinition], float]:
    """Highest-scoring field for `column`; ties keep the earlier field."""
    best: Optional[FieldDefinition] = None
    best_score = 0.0
    for defn in fields:
        for keyword in defn.keywords:
            score = similarity(column, keyword)
            if score > best_score:
                best, best_score = defn, score
    if confidence_for(best_score) is Confidence.NONE:
        return None, best_score
    return best, best_score


def map_columns(
    columns: list[str], fields: list[FieldDefinition],
) -> list[ColumnMapping]:
    mappings: list[ColumnMapping] = []
    claimed: dict[str, str] = {}            # field key → column that owns it

    for column in columns:
        defn, score = best_match(column, fields)
        if defn is None:
            mappings.append(ColumnMapping(source_column=column, score=score))
            continue

        if defn.key in claimed:
            logger.info(
                f"Column {column!r} also matches {defn.key!r}, "
                f"already taken by {claimed[defn.key]!r} - left unmapped"
            )
            mappings.append(ColumnMapping(source_column=column, score=score))
            continue

        claimed[defn.key] = column
        mappings.append(ColumnMapping(
            source_column=column,
            field_key=defn.key,
            confidence=confidence_for(score),
            display_name=defn.display_name,
            required=defn.required,
            score=score,
        ))

    return mappings
