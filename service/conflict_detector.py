"""
Conflict detection and schedule analytics.

Finds pairs of lessons on the same weekday whose time ranges overlap and
derives day/week statistics (free gaps, consecutive teaching stretches,
lesson counts) from a teacher's combined lesson list.

Lessons are grouped by weekday and sorted by start time before pairwise
comparison, so the inner scan stops at the first lesson that starts after
the current one ends.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set

from models.schemas import (
    DEFAULT_POLICY, ClassType, ConflictSummary, LessonSlot, ScheduleConflict,
    ScheduleGap, Severity, TeachingLoad, TeachingStretch, TimetablePolicy,
    TimetableStats
)
from service.schedule_adapter import group_lessons_by_day, lessons_for_day, total_hours
from service.time_utils import (
    ALL_DAYS, WEEKDAYS, duration_minutes, minutes_to_time, overlap_window,
    ranges_overlap, time_to_minutes
)

logger = logging.getLogger(__name__)


def detect_conflicts(lessons: Iterable[LessonSlot]) -> List[ScheduleConflict]:
    """
    Detect all overlapping lesson pairs.

    Conflicts are returned day by day (Sunday first), in the order the
    pairwise scan discovers them within each day.
    """
    conflicts: List[ScheduleConflict] = []

    for day, day_lessons in group_lessons_by_day(lessons).items():
        conflicts.extend(_detect_day_conflicts(day_lessons, day))

    logger.debug(f"Detected {len(conflicts)} conflict(s)")
    return conflicts


def _detect_day_conflicts(lessons: List[LessonSlot], day: int) -> List[ScheduleConflict]:
    conflicts = []
    # id tie-break keeps pair order independent of input order
    ordered = sorted(lessons, key=lambda lesson: (lesson.start_time, lesson.id))

    for i, lesson_a in enumerate(ordered):
        for lesson_b in ordered[i + 1:]:
            # Sorted by start: nothing later can overlap lesson_a either
            if lesson_b.start_time >= lesson_a.end_time:
                break

            window = overlap_window(
                lesson_a.start_time, lesson_a.end_time,
                lesson_b.start_time, lesson_b.end_time
            )
            if window is None:
                continue

            conflicts.append(ScheduleConflict(
                id=f"conflict-{lesson_a.id}-{lesson_b.id}",
                lesson_a=lesson_a,
                lesson_b=lesson_b,
                overlap_start=window.start,
                overlap_end=window.end,
                day=day
            ))

    return conflicts


def has_conflicts(lessons: Iterable[LessonSlot]) -> bool:
    return len(detect_conflicts(lessons)) > 0


def conflicting_lessons(lesson: LessonSlot, all_lessons: Iterable[LessonSlot]) -> List[LessonSlot]:
    """Other lessons on the same day that overlap ``lesson``."""
    return [
        other for other in all_lessons
        if other.id != lesson.id
        and other.day == lesson.day
        and ranges_overlap(lesson.start_time, lesson.end_time, other.start_time, other.end_time)
    ]


def has_lesson_conflict(lesson: LessonSlot, all_lessons: Iterable[LessonSlot]) -> bool:
    return len(conflicting_lessons(lesson, all_lessons)) > 0


def lessons_at_time_slot(lessons: Iterable[LessonSlot], day: int, time_str: str) -> List[LessonSlot]:
    """Lessons on ``day`` whose [start, end) contains ``time_str``."""
    return [
        lesson for lesson in lessons
        if lesson.day == day and lesson.start_time <= time_str < lesson.end_time
    ]


def find_conflicted_time_slots(
    lessons: Iterable[LessonSlot],
    day: int,
    interval_minutes: Optional[int] = None,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> List[str]:
    """Grid times on ``day`` where more than one lesson is running."""
    if interval_minutes is None:
        interval_minutes = policy.grid_interval_minutes

    day_lessons = [lesson for lesson in lessons if lesson.day == day]
    if not day_lessons:
        return []

    earliest = min(time_to_minutes(lesson.start_time) for lesson in day_lessons)
    latest = max(time_to_minutes(lesson.end_time) for lesson in day_lessons)

    conflicted = []
    for minutes in range(earliest, latest, interval_minutes):
        time_str = minutes_to_time(minutes)
        if len(lessons_at_time_slot(day_lessons, day, time_str)) > 1:
            conflicted.append(time_str)

    return conflicted


def conflicted_lesson_ids(conflicts: Iterable[ScheduleConflict]) -> Set[str]:
    """Ids of every lesson involved in at least one conflict."""
    ids = set()
    for conflict in conflicts:
        ids.add(conflict.lesson_a.id)
        ids.add(conflict.lesson_b.id)
    return ids


def group_conflicts_by_day(conflicts: Iterable[ScheduleConflict]) -> Dict[int, List[ScheduleConflict]]:
    grouped: Dict[int, List[ScheduleConflict]] = {}
    for conflict in conflicts:
        grouped.setdefault(conflict.day, []).append(conflict)
    return grouped


# ===========================
# Severity
# ===========================

def overlap_minutes(conflict: ScheduleConflict) -> int:
    return duration_minutes(conflict.overlap_start, conflict.overlap_end)


def classify_severity(minutes: int, policy: TimetablePolicy = DEFAULT_POLICY) -> Severity:
    """Severity for an overlap of ``minutes``; the bounds are inclusive."""
    if minutes <= policy.minor_max_minutes:
        return Severity.MINOR
    if minutes <= policy.moderate_max_minutes:
        return Severity.MODERATE
    return Severity.SEVERE


def conflict_severity(conflict: ScheduleConflict, policy: TimetablePolicy = DEFAULT_POLICY) -> Severity:
    return classify_severity(overlap_minutes(conflict), policy)


def format_conflict_message(conflict: ScheduleConflict, policy: TimetablePolicy = DEFAULT_POLICY) -> str:
    minutes = overlap_minutes(conflict)
    severity = classify_severity(minutes, policy)
    return (
        f"{conflict.lesson_a.class_name} and {conflict.lesson_b.class_name} "
        f"overlap for {minutes} minutes ({conflict.overlap_start} - {conflict.overlap_end}). "
        f"Severity: {severity.value}."
    )


def conflict_summary(
    conflicts: Iterable[ScheduleConflict],
    policy: TimetablePolicy = DEFAULT_POLICY
) -> ConflictSummary:
    conflicts = list(conflicts)
    counts = {severity: 0 for severity in Severity}

    for conflict in conflicts:
        counts[conflict_severity(conflict, policy)] += 1

    return ConflictSummary(
        total=len(conflicts),
        minor=counts[Severity.MINOR],
        moderate=counts[Severity.MODERATE],
        severe=counts[Severity.SEVERE],
        affected_lessons=len(conflicted_lesson_ids(conflicts))
    )


# ===========================
# Analytics
# ===========================

def schedule_gaps(
    lessons: Iterable[LessonSlot],
    day: int,
    min_gap_minutes: Optional[int] = None,
    policy: TimetablePolicy = DEFAULT_POLICY
) -> List[ScheduleGap]:
    """
    Free windows between consecutive lessons on ``day`` lasting at least
    ``min_gap_minutes`` (policy default when omitted).
    """
    if min_gap_minutes is None:
        min_gap_minutes = policy.min_gap_minutes

    day_lessons = lessons_for_day(lessons, day)
    gaps = []

    for current, following in zip(day_lessons, day_lessons[1:]):
        gap_start = current.end_time
        gap_end = following.start_time
        # Overlapping neighbours give a negative duration and never qualify
        duration = time_to_minutes(gap_end) - time_to_minutes(gap_start)

        if duration >= min_gap_minutes:
            gaps.append(ScheduleGap(start=gap_start, end=gap_end, duration=duration))

    return gaps


def teaching_load(lessons: Iterable[LessonSlot], day: int) -> TeachingLoad:
    """
    Longest run of back-to-back lessons on ``day``.

    A lesson joins the running stretch when it starts at or before the
    stretch's end, so touching and overlapping lessons merge.
    """
    day_lessons = lessons_for_day(lessons, day)

    if not day_lessons:
        return TeachingLoad(
            consecutive_hours=0,
            longest_stretch=TeachingStretch(start="00:00", end="00:00", hours=0)
        )

    stretches = []
    stretch_start = day_lessons[0].start_time
    stretch_end = day_lessons[0].end_time

    for lesson in day_lessons[1:]:
        if lesson.start_time <= stretch_end:
            stretch_end = max(stretch_end, lesson.end_time)
        else:
            stretches.append((stretch_start, stretch_end))
            stretch_start = lesson.start_time
            stretch_end = lesson.end_time

    stretches.append((stretch_start, stretch_end))

    # max() keeps the earliest stretch on ties
    start, end = max(stretches, key=lambda stretch: duration_minutes(*stretch))
    hours = duration_minutes(start, end) / 60

    return TeachingLoad(
        consecutive_hours=hours,
        longest_stretch=TeachingStretch(start=start, end=end, hours=hours)
    )


def timetable_stats(
    lessons: Iterable[LessonSlot],
    policy: TimetablePolicy = DEFAULT_POLICY
) -> TimetableStats:
    """
    Weekly totals for a teacher's lessons.

    The weekday average always divides by ``policy.weekday_divisor`` (5),
    however many weekdays actually carry lessons.
    """
    lessons = list(lessons)

    lessons_by_type = {class_type: 0 for class_type in ClassType}
    lessons_by_day = {day: 0 for day in ALL_DAYS}
    for lesson in lessons:
        lessons_by_type[lesson.class_type] += 1
        lessons_by_day[lesson.day] += 1

    weekday_lessons = sum(lessons_by_day[day] for day in WEEKDAYS)

    return TimetableStats(
        total_lessons=len(lessons),
        total_hours=total_hours(lessons),
        lessons_by_type=lessons_by_type,
        lessons_by_day=lessons_by_day,
        average_lessons_per_day=weekday_lessons / policy.weekday_divisor,
        conflict_count=len(detect_conflicts(lessons))
    )
