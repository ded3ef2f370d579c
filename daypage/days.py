"""
Calendar helpers: entries grouped by day, and a month grid.

``day_group`` decides whether the "multiple entries this day" list is
shown; ``month_grid`` marks which days of a month have entries.
"""

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date as _date
from typing import Optional

from .repository import chronological_key
from .types import Entry, today

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)
WEEKDAY_LABELS = ("Su", "Mo", "Tu", "We", "Th", "Fr", "Sa")


@dataclass
class DayGroup:
    """Entries sharing one date, in navigation order."""
    date: str
    entries: list[Entry] = field(default_factory=list)

    @property
    def has_multiple(self) -> bool:
        return len(self.entries) > 1

    @property
    def first(self) -> Optional[Entry]:
        return self.entries[0] if self.entries else None


@dataclass(frozen=True)
class CalendarDay:
    date: str
    day: int
    has_entry: bool = False
    is_today: bool = False
    is_selected: bool = False


@dataclass
class MonthView:
    """One month laid out for a Sunday-first grid."""
    year: int
    month: int
    label: str
    leading_blanks: int
    days: list[CalendarDay] = field(default_factory=list)

    def weeks(self) -> list[list[Optional[CalendarDay]]]:
        """Rows of seven cells; blanks pad the first and last week."""
        cells: list[Optional[CalendarDay]] = [None] * self.leading_blanks + list(self.days)
        while len(cells) % 7:
            cells.append(None)
        return [cells[i:i + 7] for i in range(0, len(cells), 7)]


def day_group(entries: Iterable[Entry], date: str) -> DayGroup:
    """Entries on ``date``, in chronological navigation order."""
    same_day = [e for e in entries if e.date == date]
    same_day.sort(key=chronological_key)
    return DayGroup(date=date, entries=same_day)


def dates_with_entries(entries: Iterable[Entry], year: int, month: int) -> set[str]:
    prefix = f"{year:04d}-{month:02d}-"
    return {e.date for e in entries if e.date and e.date.startswith(prefix)}


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months from (year, month), wrapping across years."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_grid(
    year: int,
    month: int,
    entries: Iterable[Entry] = (),
    *,
    today_iso: Optional[str] = None,
    selected: Optional[str] = None,
) -> MonthView:
    """
    Lay out a month with entry markers.

    Args:
        year, month: Month to show (month is 1-12)
        entries: Entries to mark (usually the active journal's)
        today_iso: Date to flag as today; defaults to the local date
        selected: Date to flag as selected
    """
    if today_iso is None:
        today_iso = today()
    marked = dates_with_entries(entries, year, month)
    # calendar.weekday: Monday=0; the grid starts on Sunday
    leading = (calendar.weekday(year, month, 1) + 1) % 7
    days_in_month = calendar.monthrange(year, month)[1]

    days = []
    for day in range(1, days_in_month + 1):
        iso = _date(year, month, day).isoformat()
        days.append(CalendarDay(
            date=iso,
            day=day,
            has_entry=iso in marked,
            is_today=iso == today_iso,
            is_selected=iso == selected,
        ))
    return MonthView(
        year=year,
        month=month,
        label=f"{MONTH_NAMES[month - 1]} {year}",
        leading_blanks=leading,
        days=days,
    )
