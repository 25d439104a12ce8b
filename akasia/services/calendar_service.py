"""Calendar Service - Hijri month to Gregorian reporting windows.

Reports are organised by Hijri (lunar) month. A window runs from the first
day of the month at 00:00 to the day before the next month at
23:59:59.999. When the conversion fails, or lands outside the configured
Gregorian bounds, the current Gregorian month is used instead and the
window is flagged with ``used_fallback``.
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from hijridate import Gregorian, Hijri

from akasia.core.config import get_settings
from akasia.utils.helpers import utcnow

logger = logging.getLogger(__name__)

HIJRI_MONTH_NAMES: tuple[str, ...] = (
    "",
    "Muharram",
    "Safar",
    "Rabi'ul Awal",
    "Rabi'ul Akhir",
    "Jumadal Ula",
    "Jumadal Akhirah",
    "Rajab",
    "Sya'ban",
    "Ramadhan",
    "Syawwal",
    "Dzulqa'dah",
    "Dzulhijjah",
)

END_OF_DAY = time(23, 59, 59, 999000)


class CalendarConversionError(ValueError):
    """Hijri date could not be mapped to a usable Gregorian date."""


@dataclass(frozen=True)
class MonthWindow:
    """Gregorian datetime range for one reporting month.

    ``end`` is the displayed last instant (23:59:59.999); queries filter on
    ``start <= t < next_start`` so no sub-millisecond instant falls between
    two consecutive windows.
    """

    start: datetime
    end: datetime
    hijri_year: int
    hijri_month: int
    used_fallback: bool = False

    @property
    def label(self) -> str:
        """Human-readable label of the window."""
        if self.used_fallback:
            return f"{calendar.month_name[self.start.month]} {self.start.year}"
        return f"{hijri_month_name(self.hijri_month)} {self.hijri_year} H"

    @property
    def next_start(self) -> datetime:
        """Exclusive upper bound used by queries: 00:00 of the day after ``end``."""
        return next_day_start(self.end)


def next_day_start(moment: datetime) -> datetime:
    """Midnight at the start of the day after ``moment``."""
    return datetime.combine(moment.date() + timedelta(days=1), time.min)


def hijri_month_name(month: int) -> str:
    """Month name for 1..12, or the number itself when out of range."""
    if 1 <= month <= 12:
        return HIJRI_MONTH_NAMES[month]
    return str(month)


def _hijri_to_gregorian(year: int, month: int, day: int = 1) -> date:
    try:
        g_year, g_month, g_day = Hijri(year, month, day).to_gregorian().datetuple()
    except (OverflowError, ValueError) as e:
        raise CalendarConversionError(f"Cannot convert {year}/{month}/{day} AH: {e}") from e
    return date(g_year, g_month, g_day)


def gregorian_month_window(year: int, month: int) -> tuple[datetime, datetime]:
    """First day 00:00 to last day 23:59:59.999 of a Gregorian month."""
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime.combine(date(year, month, 1), time.min),
        datetime.combine(date(year, month, last_day), END_OF_DAY),
    )


def _convert(hijri_year: int, hijri_month: int) -> tuple[datetime, datetime]:
    next_year, next_month = hijri_year, hijri_month + 1
    if next_month > 12:
        next_month = 1
        next_year += 1

    start_day = _hijri_to_gregorian(hijri_year, hijri_month)
    end_day = _hijri_to_gregorian(next_year, next_month) - timedelta(days=1)

    settings = get_settings()
    for day in (start_day, end_day):
        if not settings.calendar_min_year <= day.year <= settings.calendar_max_year:
            raise CalendarConversionError(
                f"Gregorian year {day.year} outside "
                f"[{settings.calendar_min_year}, {settings.calendar_max_year}]"
            )

    return datetime.combine(start_day, time.min), datetime.combine(end_day, END_OF_DAY)


def resolve_month_window(
    hijri_year: int,
    hijri_month: int,
    now: datetime | None = None,
) -> MonthWindow:
    """Resolve a Hijri month to a Gregorian window.

    Never raises: a failed conversion falls back to the Gregorian month
    containing ``now`` (defaults to the current UTC time).

    Args:
        hijri_year: Lunar year, e.g. 1446
        hijri_month: Lunar month 1..12
        now: Reference time for the fallback branch only

    Returns:
        MonthWindow with ``used_fallback`` set when the fallback was taken
    """
    try:
        start, end = _convert(hijri_year, hijri_month)
    except CalendarConversionError as e:
        reference = now or utcnow()
        logger.warning(
            f"Hijri conversion failed for {hijri_year}/{hijri_month} ({e}), "
            f"using Gregorian month fallback {reference.year:04d}-{reference.month:02d}"
        )
        start, end = gregorian_month_window(reference.year, reference.month)
        return MonthWindow(
            start=start,
            end=end,
            hijri_year=hijri_year,
            hijri_month=hijri_month,
            used_fallback=True,
        )

    return MonthWindow(start=start, end=end, hijri_year=hijri_year, hijri_month=hijri_month)


def current_hijri_month(today: date | None = None) -> tuple[int, int]:
    """Hijri (year, month) containing ``today`` (defaults to the current UTC date)."""
    day = today or utcnow().date()
    hijri = Gregorian(day.year, day.month, day.day).to_hijri()
    return hijri.year, hijri.month
