"""
Schedule aggregation.

Assembles day, week and month views for one teacher from the class
catalog's records. The schedule model is a weekly template: a conflict on
a weekday is flagged on every date sharing that weekday.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List

from models.schemas import (
    DEFAULT_POLICY, CalendarDay, ClassWithSchedule, DaySchedule, LessonCandidate,
    LessonSlot, LessonValidationResult, NormalizationIssue, ScheduleConflict,
    ScheduleOverview, TimetablePolicy, TimetableStats, TodayAgenda, WeekSchedule
)
from service.conflict_detector import detect_conflicts, timetable_stats
from service.schedule_adapter import group_lessons_by_day, has_schedule, normalize_classes
from service.time_utils import (
    ALL_DAYS, calendar_grid_dates, is_past, is_upcoming, ranges_overlap,
    week_dates, week_end, week_start, weekday_index
)

logger = logging.getLogger(__name__)


class TimetableAggregator:
    """
    Normalizes a teacher's classes and detects conflicts once, then serves
    any number of views over the result.
    """

    def __init__(self, classes: Iterable[ClassWithSchedule], policy: TimetablePolicy = DEFAULT_POLICY):
        self.classes: List[ClassWithSchedule] = list(classes)
        self.policy = policy

        normalized = normalize_classes(self.classes)
        self.lessons: List[LessonSlot] = normalized.lessons
        self.issues: List[NormalizationIssue] = normalized.issues
        self.conflicts: List[ScheduleConflict] = detect_conflicts(self.lessons)

        self._by_day: Dict[int, List[LessonSlot]] = group_lessons_by_day(self.lessons)
        self._conflict_days = {conflict.day for conflict in self.conflicts}

        logger.debug(
            f"Aggregated {len(self.lessons)} lesson(s) from {len(self.classes)} class(es): "
            f"{len(self.issues)} issue(s), {len(self.conflicts)} conflict(s)"
        )

    def lessons_on(self, day_of_week: int) -> List[LessonSlot]:
        return list(self._by_day.get(day_of_week, []))

    def day_schedule(self, on_date: date, now: datetime) -> DaySchedule:
        day_of_week = weekday_index(on_date)
        return DaySchedule(
            date=on_date,
            day_of_week=day_of_week,
            lessons=self.lessons_on(day_of_week),
            has_conflicts=day_of_week in self._conflict_days,
            is_today=on_date == now.date()
        )

    def week_schedule(self, start: date, now: datetime) -> WeekSchedule:
        """
        Week view for the Monday-anchored week containing ``start``.

        ``days`` is indexed by weekday, so ``days[0]`` is the Sunday that
        closes the week.
        """
        first = week_start(start)
        days_by_weekday = {
            weekday_index(d): self.day_schedule(d, now) for d in week_dates(first)
        }

        return WeekSchedule(
            week_start=first,
            week_end=week_end(first),
            days=[days_by_weekday[day] for day in ALL_DAYS],
            conflicts=self.conflicts,
            total_lessons=len(self.lessons),
            has_conflicts=len(self.conflicts) > 0
        )

    def month_schedule(self) -> Dict[int, List[LessonSlot]]:
        """Lessons keyed by weekday; every date of a month repeats its weekday."""
        return {day: list(lessons) for day, lessons in self._by_day.items()}

    def month_calendar(self, month_date: date, now: datetime) -> List[CalendarDay]:
        cells = []
        for d in calendar_grid_dates(month_date):
            day_of_week = weekday_index(d)
            lessons = self.lessons_on(day_of_week)
            cells.append(CalendarDay(
                date=d,
                is_current_month=(d.year, d.month) == (month_date.year, month_date.month),
                is_today=d == now.date(),
                lessons=lessons,
                lesson_count=len(lessons),
                has_conflicts=day_of_week in self._conflict_days
            ))
        return cells

    def today_agenda(self, now: datetime, max_lessons: int = 3) -> TodayAgenda:
        """Lessons still to finish today, with the next one to start."""
        today = self.day_schedule(now.date(), now)
        remaining = [
            lesson for lesson in today.lessons
            if not is_past(lesson.end_time, today.date, now)
        ]
        next_lesson = next(
            (lesson for lesson in remaining if is_upcoming(lesson.start_time, today.date, now)),
            None
        )

        return TodayAgenda(
            date=today.date,
            lessons=remaining[:max_lessons],
            next_lesson=next_lesson,
            remaining_count=len(remaining),
            total_count=len(today.lessons)
        )

    def stats(self) -> TimetableStats:
        return timetable_stats(self.lessons, self.policy)

    def overview(self) -> ScheduleOverview:
        scheduled = [cls for cls in self.classes if has_schedule(cls)]
        return ScheduleOverview(
            total_classes=len(self.classes),
            total_lessons=len(self.lessons),
            classes_with_schedule=len(scheduled)
        )


# ===========================
# Functional entry points
# ===========================

def week_schedule(
    classes: Iterable[ClassWithSchedule],
    start: date,
    now: datetime,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> WeekSchedule:
    return TimetableAggregator(classes, policy).week_schedule(start, now)


def day_schedule(
    classes: Iterable[ClassWithSchedule],
    on_date: date,
    now: datetime,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> DaySchedule:
    return TimetableAggregator(classes, policy).day_schedule(on_date, now)


def today_schedule(classes: Iterable[ClassWithSchedule], now: datetime) -> DaySchedule:
    return day_schedule(classes, now.date(), now)


def current_week_schedule(classes: Iterable[ClassWithSchedule], now: datetime) -> WeekSchedule:
    return week_schedule(classes, week_start(now), now)


def today_agenda(classes: Iterable[ClassWithSchedule], now: datetime, max_lessons: int = 3) -> TodayAgenda:
    return TimetableAggregator(classes).today_agenda(now, max_lessons)


def month_schedule(classes: Iterable[ClassWithSchedule]) -> Dict[int, List[LessonSlot]]:
    return TimetableAggregator(classes).month_schedule()


def month_calendar(classes: Iterable[ClassWithSchedule], month_date: date, now: datetime) -> List[CalendarDay]:
    return TimetableAggregator(classes).month_calendar(month_date, now)


def class_schedule(cls: ClassWithSchedule) -> List[LessonSlot]:
    return TimetableAggregator([cls]).lessons


def schedule_overview(classes: Iterable[ClassWithSchedule]) -> ScheduleOverview:
    return TimetableAggregator(classes).overview()


def has_scheduled_classes(classes: Iterable[ClassWithSchedule]) -> bool:
    return any(has_schedule(cls) for cls in classes)


def classes_needing_schedule(classes: Iterable[ClassWithSchedule]) -> List[ClassWithSchedule]:
    return [cls for cls in classes if not has_schedule(cls)]


def validate_new_lesson(
    candidate: LessonCandidate,
    existing_lessons: Iterable[LessonSlot]
) -> LessonValidationResult:
    """
    Advisory check of a prospective lesson against a teacher's lessons.

    Nothing is stored; the caller decides what to do with the result.
    """
    if candidate.start_time >= candidate.end_time:
        return LessonValidationResult(
            valid=False,
            conflicts=[],
            message="Start time must be before end time"
        )

    conflicts = [
        existing for existing in existing_lessons
        if existing.day == candidate.day
        and ranges_overlap(candidate.start_time, candidate.end_time, existing.start_time, existing.end_time)
    ]

    if conflicts:
        plural = "s" if len(conflicts) > 1 else ""
        return LessonValidationResult(
            valid=False,
            conflicts=conflicts,
            message=f"Conflicts with {len(conflicts)} existing lesson{plural}"
        )

    return LessonValidationResult(valid=True, conflicts=[])
