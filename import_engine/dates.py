"""
import_engine.dates - Date tokens, spreadsheet serials, and day/month order.

A header such as "03-05" can mean 3 May or 5 March.  One workbook is
read one way throughout, so the order is decided once per import from
every date-like header in it (all sheets), then applied to every header
and cell.

detect_format() walks DATE_RULES in order and the first rule with an
opinion wins:

    1. constant_position   the position that never changes is the month
    2. current_month       the position uniformly equal to this month is the month
    3. out_of_range        a position holding a value > 12 is the day
    4. sequential          the position of consecutive numbers is the day
    5. fallback            configured regional default (day-first unless set)
"""

from __future__ import annotations

import enum
import logging
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Optional

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

EXCEL_EPOCH = date(1899, 12, 30)
_MAX_SERIAL = (date.max - EXCEL_EPOCH).days

_ISO = re.compile(r"(?<!\d)(\d{4})-(\d{1,2})-(\d{1,2})(?!\d)")
_TRIPLE = re.compile(r"(?<!\d)(\d{1,2})[-/.](\d{1,2})[-/.](\d{4})(?!\d)")
_PAIR = re.compile(r"(?<![\d/-])(\d{1,2})[-/](\d{1,2})(?![\d/-])")
_DAY_ONLY = re.compile(r"^\s*(\d{1,2})\s*$")
_SERIAL_TEXT = re.compile(r"^\s*(\d{5})(\.\d+)?\s*$")


class DateOrder(str, enum.Enum):
    MONTH_FIRST = "month_first"
    DAY_FIRST = "day_first"

    @classmethod
    def from_setting(cls, value: str) -> "DateOrder":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"date order must be 'day_first' or 'month_first', got {value!r}") from None


@dataclass(frozen=True)
class HeaderSample:
    """The two leading numbers of an ambiguous date token, in reading order."""
    first: int
    second: int


# ── Sample collection ─────────────────────────────────────────────────

def extract_sample(header) -> Optional[HeaderSample]:
    if not isinstance(header, str):
        return None
    if _ISO.search(header):
        return None
    m = _TRIPLE.search(header) or _PAIR.search(header)
    if not m:
        return None
    return HeaderSample(int(m.group(1)), int(m.group(2)))


def collect_samples(headers: Iterable) -> list[HeaderSample]:
    return [s for s in (extract_sample(h) for h in headers) if s is not None]


# ── Decision rules ────────────────────────────────────────────────────

Rule = Callable[[list[HeaderSample], date], Optional[DateOrder]]


def _month_position(first_is_month: bool) -> DateOrder:
    return DateOrder.MONTH_FIRST if first_is_month else DateOrder.DAY_FIRST


def rule_constant_position(samples: list[HeaderSample], today: date) -> Optional[DateOrder]:
    firsts = {s.first for s in samples}
    seconds = {s.second for s in samples}
    if len(firsts) == 1 and len(seconds) > 1:
        return DateOrder.MONTH_FIRST
    if len(seconds) == 1 and len(firsts) > 1:
        return DateOrder.DAY_FIRST
    return None


def rule_current_month(samples: list[HeaderSample], today: date) -> Optional[DateOrder]:
    first_now = all(s.first == today.month for s in samples)
    second_now = all(s.second == today.month for s in samples)
    if first_now != second_now:
        return _month_position(first_now)
    return None


def rule_out_of_range(samples: list[HeaderSample], today: date) -> Optional[DateOrder]:
    first_big = any(s.first > 12 for s in samples)
    second_big = any(s.second > 12 for s in samples)
    if first_big and not second_big:
        return DateOrder.DAY_FIRST
    if second_big and not first_big:
        return DateOrder.MONTH_FIRST
    return None


def _is_sequential(values: list[int]) -> bool:
    distinct = sorted(set(values))
    if len(distinct) < 2:
        return False
    return all(b - a <= 2 for a, b in zip(distinct, distinct[1:]))


def rule_sequential(samples: list[HeaderSample], today: date) -> Optional[DateOrder]:
    first_seq = _is_sequential([s.first for s in samples])
    second_seq = _is_sequential([s.second for s in samples])
    if first_seq and not second_seq:
        return DateOrder.DAY_FIRST
    if second_seq and not first_seq:
        return DateOrder.MONTH_FIRST
    return None


DATE_RULES: tuple[tuple[str, Rule], ...] = (
    ("constant_position", rule_constant_position),
    ("current_month", rule_current_month),
    ("out_of_range", rule_out_of_range),
    ("sequential", rule_sequential),
)


def detect_format(
    samples: list[HeaderSample],
    today: Optional[date] = None,
    default: DateOrder = DateOrder.DAY_FIRST,
) -> DateOrder:
    today = today or date.today()
    if not samples:
        return default
    for name, rule in DATE_RULES:
        decision = rule(samples, today)
        if decision is not None:
            logger.debug(f"Date order {decision.value} decided by rule {name!r}")
            return decision
    logger.info(f"No date rule applied to {len(samples)} headers - using {default.value}")
    return default


# ── Resolution ────────────────────────────────────────────────────────

def serial_to_date(serial) -> Optional[date]:
    """Spreadsheet serial day number → calendar date (time of day dropped)."""
    try:
        days = math.floor(float(serial))
    except (TypeError, ValueError, OverflowError):
        return None
    if days < 1 or days > _MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=days)


def _split(a: int, b: int, order: DateOrder) -> tuple[int, int]:
    """(first, second) → (month, day)."""
    return (a, b) if order is DateOrder.MONTH_FIRST else (b, a)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _add_month(year: int, month: int) -> tuple[int, int]:
    return (year + 1, 1) if month == 12 else (year, month + 1)


def resolve_token(value, order: DateOrder, today: Optional[date] = None) -> Optional[date]:
    """
    Resolve one header or cell to a date, or None when nothing matches.

    Accepted: date/datetime objects, spreadsheet serials, ISO dates,
    D/M/Y or M/D/Y triples (year literal), D/M or M/D pairs (year rolls
    forward when the month has already passed), and bare day numbers
    (this month, or next month when the day is more than a week gone).
    """
    today = today or date.today()

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        return serial_to_date(value)

    text = str(value).strip()
    if not text:
        return None

    if _SERIAL_TEXT.match(text):
        return serial_to_date(text)

    m = _ISO.search(text)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _TRIPLE.search(text)
    if m:
        month, day = _split(int(m.group(1)), int(m.group(2)), order)
        return _safe_date(int(m.group(3)), month, day)

    m = _PAIR.search(text)
    if m:
        month, day = _split(int(m.group(1)), int(m.group(2)), order)
        year = today.year + 1 if month < today.month else today.year
        return _safe_date(year, month, day)

    m = _DAY_ONLY.match(text)
    if m:
        day = int(m.group(1))
        year, month = today.year, today.month
        if day < today.day - 7:
            year, month = _add_month(year, month)
        return _safe_date(year, month, day)

    return None


def resolve_date(
    value,
    order: DateOrder,
    today: Optional[date] = None,
    column_index: Optional[int] = None,
) -> Optional[str]:
    """resolve_token() as an ISO string; unparsed non-empty tokens are logged."""
    resolved = resolve_token(value, order, today)
    if resolved is None:
        if value is not None and str(value).strip():
            where = f" (column {column_index})" if column_index is not None else ""
            logger.warning(f"Unparsed date token {value!r}{where}")
        return None
    return resolved.isoformat()


def parse_date_text(text: str, order: DateOrder, today: Optional[date] = None) -> Optional[date]:
    """
    Free-form cell text → date.  Structured tokens go through
    resolve_token(); anything else is handed to dateutil.
    """
    resolved = resolve_token(text, order, today)
    if resolved is not None:
        return resolved
    if _DAY_ONLY.match(text) or _PAIR.search(text) or _TRIPLE.search(text):
        # Matched a known shape but named an impossible date
        return None
    try:
        parsed = date_parser.parse(text, dayfirst=order is DateOrder.DAY_FIRST)
    except (ValueError, OverflowError):
        return None
    return parsed.date()
