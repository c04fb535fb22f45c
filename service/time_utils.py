"""
Date and time helpers for the timetable engine.

Times of day are fixed-width 24-hour "HH:MM" strings, so ordering
comparisons between them are plain string comparisons. Weekday indexes
follow the schedule convention (Sunday = 0 ... Saturday = 6) while weeks
are Monday-anchored.

Nothing here reads the system clock: callers pass ``now`` / ``today``.
"""

import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional, Union

from models.schemas import TIME_PATTERN, OverlapWindow, TimeSlot

DateLike = Union[date, datetime]

WEEKDAYS = (1, 2, 3, 4, 5)       # Mon-Fri
ALL_DAYS = (0, 1, 2, 3, 4, 5, 6)  # Sun-Sat

DAY_NAMES: Dict[int, str] = {
    0: "Sunday",
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
}

DAY_NAMES_SHORT: Dict[int, str] = {day: name[:3] for day, name in DAY_NAMES.items()}

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(TIME_PATTERN)


class InvalidTimeError(ValueError):
    """Raised when a helper receives a time string that is not HH:MM."""


# ===========================
# Calendar
# ===========================

def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def week_start(value: DateLike) -> date:
    """Monday of the ISO week containing ``value``."""
    d = _as_date(value)
    return d - timedelta(days=d.weekday())


def week_end(value: DateLike) -> date:
    """Sunday of the ISO week containing ``value``."""
    return week_start(value) + timedelta(days=6)


def week_dates(start: DateLike) -> List[date]:
    """Seven consecutive dates beginning at ``start`` (Mon..Sun for a week start)."""
    d = _as_date(start)
    return [d + timedelta(days=i) for i in range(7)]


def weekday_dates(start: DateLike) -> List[date]:
    """Mon..Fri of the week beginning at ``start``."""
    return week_dates(start)[:5]


def weekday_index(value: DateLike) -> int:
    """Weekday with Sunday = 0, matching RawScheduleEntry.day."""
    return (_as_date(value).weekday() + 1) % 7


def is_weekday(value: DateLike) -> bool:
    return weekday_index(value) in WEEKDAYS


def previous_week(start: DateLike) -> date:
    return _as_date(start) - timedelta(weeks=1)


def next_week(start: DateLike) -> date:
    return _as_date(start) + timedelta(weeks=1)


def is_current_week(start: DateLike, today: DateLike) -> bool:
    return _as_date(start) == week_start(today)


def month_dates(value: DateLike) -> List[date]:
    """Every date in the month containing ``value``."""
    d = _as_date(value)
    _, days_in_month = calendar.monthrange(d.year, d.month)
    return [d.replace(day=day) for day in range(1, days_in_month + 1)]


def calendar_grid_dates(value: DateLike) -> List[date]:
    """
    Dates for a month calendar grid, padded to whole Monday-Sunday weeks.
    """
    days = month_dates(value)
    first = week_start(days[0])
    last = week_end(days[-1])
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def relative_day_name(value: DateLike, today: DateLike) -> str:
    d = _as_date(value)
    delta = (d - _as_date(today)).days
    if delta == 0:
        return "Today"
    if delta == 1:
        return "Tomorrow"
    if delta == -1:
        return "Yesterday"
    return DAY_NAMES[weekday_index(d)]


def format_week_range(start: DateLike) -> str:
    """Header label such as "Jan 27 - Feb 2, 2025" or "Mar 3 - 9, 2025"."""
    first = week_start(start)
    last = week_end(start)
    start_month = first.strftime("%b")
    end_month = last.strftime("%b")

    if start_month == end_month:
        return f"{start_month} {first.day} - {last.day}, {last.year}"
    return f"{start_month} {first.day} - {end_month} {last.day}, {last.year}"


# ===========================
# Time of day
# ===========================

def is_valid_time_format(value: object) -> bool:
    return isinstance(value, str) and _TIME_RE.fullmatch(value) is not None


def parse_time(time_str: str) -> time:
    """Parse HH:MM time string to time object."""
    if not is_valid_time_format(time_str):
        raise InvalidTimeError(f"Invalid time format: {time_str!r}")
    return datetime.strptime(time_str, "%H:%M").time()


def time_to_str(t: time) -> str:
    """Convert time object to HH:MM string."""
    return t.strftime("%H:%M")


def time_to_minutes(time_str: str) -> int:
    t = parse_time(time_str)
    return t.hour * 60 + t.minute


def minutes_to_time(minutes: int) -> str:
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"


def current_time(now: datetime) -> str:
    return now.strftime("%H:%M")


def duration_minutes(start: str, end: str) -> int:
    """Minutes from ``start`` to ``end``. Callers guarantee start < end."""
    return time_to_minutes(end) - time_to_minutes(start)


def duration_hours(start: str, end: str) -> float:
    return duration_minutes(start, end) / 60


def format_duration(start: str, end: str) -> str:
    """Format duration between two times as "1h 30m", "1h" or "45m"."""
    hours, minutes = divmod(duration_minutes(start, end), 60)

    if hours > 0 and minutes > 0:
        return f"{hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h"
    else:
        return f"{minutes}m"


def format_time(time_str: str, use_24_hour: bool = False) -> str:
    t = parse_time(time_str)
    if use_24_hour:
        return time_to_str(t)
    hour = t.hour % 12 or 12
    suffix = "AM" if t.hour < 12 else "PM"
    return f"{hour}:{t.minute:02d} {suffix}"


def format_time_range(start: str, end: str, use_24_hour: bool = False) -> str:
    return f"{format_time(start, use_24_hour)} - {format_time(end, use_24_hour)}"


def is_on_the_hour(time_str: str) -> bool:
    return time_str.endswith(":00")


def sort_times(times: List[str]) -> List[str]:
    return sorted(times)


def round_time_to_interval(time_str: str, interval_minutes: int = 30) -> str:
    """Round to the nearest interval, halves rounding up; wraps past midnight."""
    t = parse_time(time_str)
    rounded = int(t.minute / interval_minutes + 0.5) * interval_minutes
    return minutes_to_time((t.hour * 60 + rounded) % MINUTES_PER_DAY)


def generate_time_slots(
    start_hour: int = 8,
    end_hour: int = 16,
    interval_minutes: int = 30
) -> List[TimeSlot]:
    """Grid row markers from ``start_hour`` to ``end_hour`` inclusive."""
    slots = []
    total_minutes = (end_hour - start_hour) * 60

    for offset in range(0, total_minutes + 1, interval_minutes):
        minutes = start_hour * 60 + offset
        time_str = minutes_to_time(minutes)
        slots.append(TimeSlot(
            time=time_str,
            hour=minutes // 60,
            minute=minutes % 60,
            label=format_time(time_str)
        ))

    return slots


# ===========================
# Ranges
# ===========================

def ranges_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open overlap test: touching endpoints do not overlap."""
    return start_a < end_b and end_a > start_b


def overlap_window(start_a: str, end_a: str, start_b: str, end_b: str) -> Optional[OverlapWindow]:
    if not ranges_overlap(start_a, end_a, start_b, end_b):
        return None
    return OverlapWindow(start=max(start_a, start_b), end=min(end_a, end_b))


def is_time_in_range(start: str, end: str, current: str) -> bool:
    return start <= current < end


def is_past(end_time: str, on_date: DateLike, now: datetime) -> bool:
    """True once ``end_time`` has been reached, on ``now``'s own date only."""
    if _as_date(on_date) != now.date():
        return False
    return end_time <= current_time(now)


def is_upcoming(start_time: str, on_date: DateLike, now: datetime) -> bool:
    """True while ``start_time`` is still ahead, on ``now``'s own date only."""
    if _as_date(on_date) != now.date():
        return False
    return start_time > current_time(now)
