"""
import_engine.transformer - One raw cell → its canonical stored value.

Dispatch is on the field's DataType only, never on its key:

    TEXT     trimmed string
    NUMBER   int when integral, else float; non-numeric → None
    BOOLEAN  True for yes / نعم / 1 / true / unknown, else False (never None)
    DATE     serial or date text → datetime.date; unparseable → None
    ENUM     the field's OptionSet decides (label, pass-through, default or None)

Empty input is None for every type except BOOLEAN, which reads it as False.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Optional

from import_engine.dates import DateOrder, parse_date_text, serial_to_date
from schema.fields import DataType, FieldDefinition

TRUTHY = frozenset({"yes", "نعم", "1", "true", "unknown"})


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _to_text(value) -> str:
    if isinstance(value, float) and value.is_integer():
        # 1001.0 from a numeric cell is the id "1001"
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def to_boolean(value) -> bool:
    if is_blank(value):
        return False
    if isinstance(value, bool):
        return value
    return _to_text(value).lower() in TRUTHY


def to_number(value) -> Optional[int | float]:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        try:
            num = float(str(value).strip().replace(",", ""))
        except ValueError:
            return None
    if math.isnan(num) or math.isinf(num):
        return None
    return int(num) if num.is_integer() else num


def to_date(value, order: DateOrder, today: Optional[date] = None) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return serial_to_date(value)
    return parse_date_text(str(value).strip(), order, today)


def transform(
    value: Any,
    defn: FieldDefinition,
    order: DateOrder = DateOrder.DAY_FIRST,
    today: Optional[date] = None,
) -> Any:
    dtype = defn.data_type

    if dtype is DataType.BOOLEAN:
        return to_boolean(value)
    if is_blank(value):
        return None

    if dtype is DataType.NUMBER:
        return to_number(value)
    if dtype is DataType.DATE:
        return to_date(value, order, today)
    if dtype is DataType.ENUM:
        return defn.options.resolve(_to_text(value))
    if dtype is DataType.TEXT:
        return _to_text(value)
    raise ValueError(f"unhandled data type {dtype!r}")
