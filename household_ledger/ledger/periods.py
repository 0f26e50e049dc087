"""
Date scopes and half-open range filtering.

A scope resolves to [start, end) in the ledger's calendar. Month ends are
found by stepping one calendar month from the first of the month, never by
adding a day count, so month length and DST shifts do not matter.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import Iterable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from household_ledger.models.entities import Transaction


class ScopeKind(str, Enum):
    TODAY = "today"
    THIS_MONTH = "this_month"
    MONTH = "month"
    ALL = "all"


@dataclass(frozen=True)
class DateRange:
    """Half-open interval: start is included, end is excluded."""
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True)
class DateScope:
    kind: ScopeKind
    year: Optional[int] = None
    month: Optional[int] = None

    @classmethod
    def today(cls) -> "DateScope":
        return cls(ScopeKind.TODAY)

    @classmethod
    def this_month(cls) -> "DateScope":
        return cls(ScopeKind.THIS_MONTH)

    @classmethod
    def for_month(cls, year: int, month: int) -> "DateScope":
        """Explicit calendar month. Out-of-range months are clamped to 1..12."""
        return cls(ScopeKind.MONTH, year=year, month=min(max(month, 1), 12))

    @classmethod
    def all(cls) -> "DateScope":
        return cls(ScopeKind.ALL)

    def resolve(self, now: Optional[datetime] = None, tz: Optional[tzinfo] = None) -> Optional[DateRange]:
        """
        Concrete bounds for this scope.

        Returns None for the "all" scope. Bounds are aware datetimes in tz
        when tz is given, naive local datetimes otherwise.
        """
        if self.kind == ScopeKind.ALL:
            return None

        current = to_ledger_time(now, tz) if now is not None else _now(tz)

        if self.kind == ScopeKind.TODAY:
            day = current.date()
            return DateRange(_midnight(day, tz), _midnight(day + timedelta(days=1), tz))

        if self.kind == ScopeKind.THIS_MONTH:
            first = date(current.year, current.month, 1)
        else:
            first = date(self.year, self.month, 1)
        return DateRange(_midnight(first, tz), _midnight(add_months(first, 1), tz))

    def describe(self) -> str:
        if self.kind == ScopeKind.MONTH:
            return f"{self.year:04d}-{self.month:02d}"
        return self.kind.value.replace("_", " ")


def add_months(d: date, n: int) -> date:
    """Add n calendar months to a first-of-month date."""
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    return d.replace(year=year, month=month, day=1)


def to_ledger_time(moment: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """
    Express a datetime in the ledger's calendar.

    With no tz, aware values are converted to naive local time. With a tz,
    naive values are read as already being in that zone.
    """
    if tz is None:
        if moment.tzinfo is not None:
            return moment.astimezone().replace(tzinfo=None)
        return moment
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz)
    return moment.astimezone(tz)


def date_range_filter(
    transactions: Iterable[Transaction],
    scope: DateScope,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> list[Transaction]:
    """Transactions whose date falls inside the scope's half-open range."""
    bounds = scope.resolve(now=now, tz=tz)
    if bounds is None:
        return list(transactions)
    return [t for t in transactions if bounds.contains(to_ledger_time(t.date, tz))]


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    ZoneInfo for a configured name; None means system local time.

    Raises:
        ValueError: If the zone name is unknown
    """
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown timezone: {name}")


def _now(tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        return datetime.now()
    return datetime.now(tz)


def _midnight(day: date, tz: Optional[tzinfo]) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=tz)
