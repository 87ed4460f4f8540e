"""
============================================================================
Project Exposure Desk v1.0.0
Month Codes and Working-Day Helpers
============================================================================

Reliability Level: L5 Core
Input Constraints: Month codes in "MMM-YY" form (e.g. "Mar-24")
Side Effects: None (pure functions)

Month codes are the bucket keys of every exposure table. Working days
are Monday to Friday; public holidays are not modelled.

ERROR CODES:
    - EXP-002: Month code could not be parsed

============================================================================
"""

import calendar
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_EVEN
from typing import Dict, Iterator, List, Optional, Tuple, Union

# Configure module logger
logger = logging.getLogger(__name__)

MONTH_NAMES: Tuple[str, ...] = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

_MONTH_INDEX: Dict[str, int] = {name.lower(): i + 1 for i, name in enumerate(MONTH_NAMES)}

# "Mar-24", "Mar 24", "Mar24", "March-2024"
_MONTH_CODE_RE = re.compile(r"^\s*([A-Za-z]{3})[A-Za-z]*[\s\-_/]*(\d{2}|\d{4})\s*$")

TWO_PLACES = Decimal("0.01")

DateLike = Union[date, datetime, str]


class MonthCodeError(ValueError):
    """Raised when a month code cannot be parsed."""

    error_code = "EXP-002"

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"[{self.error_code}] Invalid month code: {value!r}")


# =============================================================================
# Conversion
# =============================================================================

def to_date(value: DateLike) -> date:
    """Accept date, datetime or ISO text (date or datetime)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    return datetime.fromisoformat(text[:10]).date()


def to_date_or_none(value: Optional[DateLike]) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return to_date(value)
    except ValueError:
        logger.warning(f"[EXP-002] Ignoring unparseable date | value={value!r}")
        return None


def format_month_code(value: DateLike) -> str:
    """date(2024, 3, 15) -> "Mar-24"."""
    d = to_date(value)
    return f"{MONTH_NAMES[d.month - 1]}-{d.year % 100:02d}"


def parse_month_code(code: str) -> Tuple[int, int]:
    """
    Parse a month code into (year, month).

    Raises:
        MonthCodeError: If code is not a recognisable month code
    """
    match = _MONTH_CODE_RE.match(str(code or ""))
    if not match:
        raise MonthCodeError(code)
    month = _MONTH_INDEX.get(match.group(1).lower())
    if month is None:
        raise MonthCodeError(code)
    year_text = match.group(2)
    year = int(year_text) if len(year_text) == 4 else 2000 + int(year_text)
    return year, month


def standardize_month_code(code: str) -> str:
    """Normalise "Mar 24", "Mar24" or "march-2024" to "Mar-24"."""
    year, month = parse_month_code(code)
    return f"{MONTH_NAMES[month - 1]}-{year % 100:02d}"


def is_month_code(code: str) -> bool:
    try:
        parse_month_code(code)
    except MonthCodeError:
        return False
    return True


def get_month_dates(code: str) -> Tuple[date, date]:
    """First and last calendar day of the month code."""
    year, month = parse_month_code(code)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def month_sort_key(code: str) -> Tuple[int, int]:
    """Chronological key; unparseable codes sort last."""
    try:
        return parse_month_code(code)
    except MonthCodeError:
        return (9999, 12)


# =============================================================================
# Ranges
# =============================================================================

@dataclass(frozen=True)
class DateRange:
    """Inclusive reporting window."""
    start: date
    end: date

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(f"Date range end {self.end} precedes start {self.start}")

    @classmethod
    def of(cls, start: DateLike, end: DateLike) -> "DateRange":
        return cls(start=to_date(start), end=to_date(end))

    def contains(self, value: DateLike) -> bool:
        return self.start <= to_date(value) <= self.end

    def overlaps_month(self, code: str) -> bool:
        return does_month_overlap_range(code, self.start, self.end)

    def months(self) -> List[str]:
        return get_months_in_date_range(self.start, self.end)


def does_month_overlap_range(code: str, start: DateLike, end: DateLike) -> bool:
    """True when any day of the month lies inside [start, end]."""
    try:
        month_start, month_end = get_month_dates(code)
    except MonthCodeError:
        return False
    return month_start <= to_date(end) and month_end >= to_date(start)


def _first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def get_months_in_date_range(start: DateLike, end: DateLike) -> List[str]:
    """Month codes touched by [start, end] in chronological order."""
    cursor = to_date(start).replace(day=1)
    last = to_date(end)
    months: List[str] = []
    while cursor <= last:
        months.append(format_month_code(cursor))
        cursor = _first_of_next_month(cursor)
    return months


def get_next_months(count: int, start: Optional[DateLike] = None) -> List[str]:
    """count month codes beginning with the month of start (default today)."""
    cursor = to_date(start or date.today()).replace(day=1)
    months: List[str] = []
    for _ in range(max(count, 0)):
        months.append(format_month_code(cursor))
        cursor = _first_of_next_month(cursor)
    return months


# =============================================================================
# Working Days
# =============================================================================

def is_business_day(value: DateLike) -> bool:
    return to_date(value).weekday() < 5


def iter_business_days(start: DateLike, end: DateLike) -> Iterator[date]:
    cursor = to_date(start)
    last = to_date(end)
    while cursor <= last:
        if cursor.weekday() < 5:
            yield cursor
        cursor += timedelta(days=1)


def count_business_days(start: DateLike, end: DateLike) -> int:
    """Working days in [start, end] inclusive; 0 when end precedes start."""
    return sum(1 for _ in iter_business_days(start, end))


def business_days_in_month(code: str) -> List[date]:
    month_start, month_end = get_month_dates(code)
    return list(iter_business_days(month_start, month_end))


def round2(value: float) -> float:
    """Round to 2 dp half-even, returning a float."""
    return float(Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_EVEN))


def distribute_quantity_by_working_days(
    start: DateLike,
    end: DateLike,
    quantity: float
) -> Dict[str, float]:
    """
    Split quantity across the months of [start, end] by working-day share.

    Returns:
        month code -> share rounded to 2 dp (empty when no working days)
    """
    total_days = count_business_days(start, end)
    if total_days == 0:
        return {}

    start_d = to_date(start)
    end_d = to_date(end)
    distribution: Dict[str, float] = {}
    for code in get_months_in_date_range(start_d, end_d):
        month_start, month_end = get_month_dates(code)
        days = count_business_days(max(month_start, start_d), min(month_end, end_d))
        if days:
            distribution[code] = round2(quantity * days / total_days)
    return distribution


def build_daily_distribution(
    start: DateLike,
    end: DateLike,
    total: float
) -> Dict[str, float]:
    """Spread total evenly over the working days of [start, end], keyed YYYY-MM-DD."""
    days = list(iter_business_days(start, end))
    if not days:
        return {}
    per_day = total / len(days)
    return {d.isoformat(): per_day for d in days}


def calculate_pro_rated_exposure(
    monthly_distribution: Dict[str, float],
    start: DateLike,
    end: DateLike
) -> Dict[str, float]:
    """
    Pro-rate a month-bucketed exposure to the working days of [start, end].

    Months outside the range drop out; partially covered months keep
    the share of their working days that fall inside the range.
    """
    start_d = to_date(start)
    end_d = to_date(end)
    result: Dict[str, float] = {}
    for code, value in monthly_distribution.items():
        try:
            month_start, month_end = get_month_dates(code)
        except MonthCodeError:
            continue
        total_days = count_business_days(month_start, month_end)
        if total_days == 0:
            continue
        overlap = count_business_days(max(month_start, start_d), min(month_end, end_d))
        if overlap:
            result[code] = value * overlap / total_days
    return result


__all__ = [
    "MONTH_NAMES",
    "MonthCodeError",
    "DateRange",
    "to_date",
    "to_date_or_none",
    "format_month_code",
    "parse_month_code",
    "standardize_month_code",
    "is_month_code",
    "get_month_dates",
    "month_sort_key",
    "does_month_overlap_range",
    "get_months_in_date_range",
    "get_next_months",
    "is_business_day",
    "iter_business_days",
    "count_business_days",
    "business_days_in_month",
    "round2",
    "distribute_quantity_by_working_days",
    "build_daily_distribution",
    "calculate_pro_rated_exposure",
]
