"""
Table data for the weekly timetable PDF.

The exporter lays out one row per hour between the earliest lesson start
and the latest lesson end, with a column per weekday (Mon-Fri). Cell
colors come from the lessons' class type rather than from their labels.
"""

import re
from datetime import date
from typing import Iterable, List, Optional, Tuple

from models.schemas import DEFAULT_POLICY, LessonSlot, TimetableGrid, TimetablePolicy, WeekSchedule
from service.schedule_adapter import lesson_color
from service.time_utils import DAY_NAMES_SHORT, WEEKDAYS, format_week_range

EMPTY_CELL = "-"

_WHITESPACE_RE = re.compile(r"\s+")


def _hour(time_str: str) -> int:
    return int(time_str.split(":")[0])


def grid_hour_span(lessons: Iterable[LessonSlot]) -> Optional[Tuple[int, int]]:
    """(earliest start hour, latest end hour), or None without lessons."""
    lessons = list(lessons)
    if not lessons:
        return None
    return (
        min(_hour(lesson.start_time) for lesson in lessons),
        max(_hour(lesson.end_time) for lesson in lessons),
    )


def _cell_text(lesson: LessonSlot, include_locations: bool) -> str:
    if include_locations and lesson.location:
        return f"{lesson.class_name}\n{lesson.location}"
    return lesson.class_name


def timetable_grid_rows(
    week: WeekSchedule,
    include_locations: bool = True,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> Tuple[List[List[str]], List[List[Optional[str]]]]:
    """
    Build the body rows and a parallel grid of cell colors.

    A cell lists every lesson starting within that hour; colors follow the
    first lesson in the cell.
    """
    lessons = [lesson for day in week.days for lesson in day.lessons]
    span = grid_hour_span(lessons)

    if span is None:
        placeholder = f"{policy.school_day_start} - {policy.school_day_end}"
        return [[placeholder] + [EMPTY_CELL] * len(WEEKDAYS)], [[None] * len(WEEKDAYS)]

    first_hour, last_hour = span
    rows = []
    colors = []

    for hour in range(first_hour, last_hour + 1):
        row = [f"{hour:02d}:00"]
        row_colors = []

        for day in WEEKDAYS:
            starting = [lesson for lesson in week.day(day).lessons if _hour(lesson.start_time) == hour]
            if starting:
                row.append("\n\n".join(_cell_text(lesson, include_locations) for lesson in starting))
                row_colors.append(lesson_color(starting[0].class_type))
            else:
                row.append(EMPTY_CELL)
                row_colors.append(None)

        rows.append(row)
        colors.append(row_colors)

    return rows, colors


def export_filename(teacher_name: str, week_start: date) -> str:
    slug = _WHITESPACE_RE.sub("-", teacher_name.strip().lower())
    return f"timetable-{slug}-{week_start.isoformat()}.pdf"


def build_timetable_grid(
    week: WeekSchedule,
    teacher_name: str = "Teacher",
    include_locations: bool = True,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> TimetableGrid:
    rows, colors = timetable_grid_rows(week, include_locations, policy)
    span = grid_hour_span(lesson for day in week.days for lesson in day.lessons)

    warning = None
    if week.has_conflicts:
        warning = f"Warning: {len(week.conflicts)} scheduling conflict(s) detected"

    return TimetableGrid(
        header=["Time"] + [DAY_NAMES_SHORT[day] for day in WEEKDAYS],
        rows=rows,
        cell_colors=colors,
        hour_span=list(span) if span else None,
        week_label=format_week_range(week.week_start),
        conflict_warning=warning,
        filename=export_filename(teacher_name, week.week_start)
    )
