"""
Schedule normalizer.

Converts the raw per-class ``schedule`` payload supplied by the class
catalog into flat, validated LessonSlot values. The payload may arrive as
a parsed list, a JSON string, or be missing; anything that cannot be read
as a list of entries yields no lessons.

Malformed entries are skipped rather than raised so that one bad record
never hides the rest of a teacher's timetable. ``normalize_classes``
reports every skipped or collapsed entry as a NormalizationIssue.
"""

import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from models.schemas import (
    DEFAULT_POLICY, ClassType, ClassWithSchedule, LessonSlot,
    NormalizationIssue, NormalizationIssueCode, NormalizationResult,
    RawScheduleEntry, ScheduleValidationResult, TimetablePolicy
)
from service.time_utils import ALL_DAYS, duration_minutes, is_valid_time_format

logger = logging.getLogger(__name__)

# Semantic colors; renderers map these onto their own palette
CLASS_TYPE_COLORS: Dict[ClassType, str] = {
    ClassType.SUBJECT: "green",
    ClassType.FORM: "orange",
    ClassType.CCA: "blue",
}


def lesson_color(class_type: Any) -> str:
    """Color for a class type, falling back to the subject color."""
    try:
        return CLASS_TYPE_COLORS[ClassType(class_type)]
    except ValueError:
        return CLASS_TYPE_COLORS[ClassType.SUBJECT]


def lesson_id(class_id: str, day: int, start_time: str) -> str:
    return f"{class_id}-{day}-{start_time}"


# ===========================
# Raw payload parsing
# ===========================

def _load_schedule(raw: Any) -> Tuple[List[Any], Optional[str]]:
    """Return the raw entry list and, for unreadable strings, a reason."""
    if raw is None:
        return [], None

    if isinstance(raw, list):
        return raw, None

    if isinstance(raw, str):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError as e:
            return [], f"Schedule is not valid JSON: {e.msg}"
        if isinstance(parsed, list):
            return parsed, None
        return [], None

    return [], None


def _check_entry(entry: Any) -> Optional[Tuple[NormalizationIssueCode, str]]:
    """Validate one raw entry; None means the entry is usable."""
    if not isinstance(entry, dict):
        return NormalizationIssueCode.INVALID_ENTRY, "Entry is not an object"

    day = entry.get("day")
    # bool is an int subclass but never a valid day
    if not isinstance(day, int) or isinstance(day, bool) or day not in ALL_DAYS:
        return NormalizationIssueCode.INVALID_ENTRY, f"Invalid day {day!r}"

    start_time = entry.get("start_time")
    end_time = entry.get("end_time")
    if not is_valid_time_format(start_time) or not is_valid_time_format(end_time):
        return (
            NormalizationIssueCode.INVALID_ENTRY,
            f"Invalid time range {start_time!r}-{end_time!r}, expected HH:MM"
        )

    if start_time >= end_time:
        return (
            NormalizationIssueCode.INVALID_TIME_ORDER,
            f"Start time ({start_time}) must be before end time ({end_time})"
        )

    location = entry.get("location")
    if location is not None and not isinstance(location, str):
        return NormalizationIssueCode.INVALID_ENTRY, "Location must be text"

    return None


def _to_entry(entry: Dict[str, Any]) -> RawScheduleEntry:
    return RawScheduleEntry(
        day=entry["day"],
        start_time=entry["start_time"],
        end_time=entry["end_time"],
        location=entry.get("location")
    )


def parse_schedule(raw: Any) -> List[RawScheduleEntry]:
    """Valid entries of a raw schedule payload, in source order."""
    entries, _ = _load_schedule(raw)
    return [_to_entry(entry) for entry in entries if _check_entry(entry) is None]


# ===========================
# Normalization
# ===========================

def _class_to_lessons(
    cls: ClassWithSchedule,
    seen_ids: set,
    issues: List[NormalizationIssue]
) -> List[LessonSlot]:
    raw_entries, load_error = _load_schedule(cls.schedule)
    if load_error:
        logger.warning(f"Class {cls.id}: {load_error}")
        issues.append(NormalizationIssue(
            class_id=cls.id,
            code=NormalizationIssueCode.UNPARSEABLE_SCHEDULE,
            message=load_error
        ))

    color = lesson_color(cls.type)
    lessons = []

    for index, raw in enumerate(raw_entries):
        problem = _check_entry(raw)
        if problem:
            code, message = problem
            logger.debug(f"Class {cls.id}: dropping schedule entry {index}: {message}")
            issues.append(NormalizationIssue(
                class_id=cls.id, index=index, code=code, message=message
            ))
            continue

        entry = _to_entry(raw)
        slot_id = lesson_id(cls.id, entry.day, entry.start_time)
        if slot_id in seen_ids:
            message = f"Duplicate entry for day {entry.day} at {entry.start_time}; keeping the first"
            logger.warning(f"Class {cls.id}: {message}")
            issues.append(NormalizationIssue(
                class_id=cls.id,
                index=index,
                code=NormalizationIssueCode.DUPLICATE_SLOT,
                message=message
            ))
            continue
        seen_ids.add(slot_id)

        lessons.append(LessonSlot(
            id=slot_id,
            class_id=cls.id,
            class_name=cls.name,
            subject_name=cls.subject_name,
            class_type=cls.type,
            day=entry.day,
            start_time=entry.start_time,
            end_time=entry.end_time,
            location=entry.location,
            year_level=cls.year_level,
            role=cls.role,
            color=color
        ))

    return lessons


def normalize_classes(classes: Iterable[ClassWithSchedule]) -> NormalizationResult:
    """
    Flatten every class's schedule into lesson slots.

    Lesson identity is ``{class_id}-{day}-{start_time}``. Entries that
    collide on it collapse to the first occurrence and are reported as
    ``duplicate_slot`` issues.
    """
    seen_ids: set = set()
    issues: List[NormalizationIssue] = []
    lessons: List[LessonSlot] = []

    for cls in classes:
        lessons.extend(_class_to_lessons(cls, seen_ids, issues))

    return NormalizationResult(lessons=lessons, issues=issues)


def classes_to_lesson_slots(classes: Iterable[ClassWithSchedule]) -> List[LessonSlot]:
    return normalize_classes(classes).lessons


def class_to_lesson_slots(cls: ClassWithSchedule) -> List[LessonSlot]:
    return classes_to_lesson_slots([cls])


def has_schedule(cls: ClassWithSchedule) -> bool:
    """True when the class carries at least one raw schedule entry."""
    entries, _ = _load_schedule(cls.schedule)
    return len(entries) > 0


# ===========================
# Lesson queries
# ===========================

def _by_start(lessons: Iterable[LessonSlot]) -> List[LessonSlot]:
    return sorted(lessons, key=lambda lesson: lesson.start_time)


def lessons_for_day(lessons: Iterable[LessonSlot], day: int) -> List[LessonSlot]:
    return _by_start(lesson for lesson in lessons if lesson.day == day)


def lessons_in_time_range(
    lessons: Iterable[LessonSlot],
    day: int,
    start_time: str,
    end_time: str
) -> List[LessonSlot]:
    return [
        lesson for lesson in lessons_for_day(lessons, day)
        if lesson.start_time < end_time and lesson.end_time > start_time
    ]


def group_lessons_by_day(lessons: Iterable[LessonSlot]) -> Dict[int, List[LessonSlot]]:
    """Weekday -> lessons sorted by start time; days without lessons are absent."""
    grouped: Dict[int, List[LessonSlot]] = {}
    for lesson in lessons:
        grouped.setdefault(lesson.day, []).append(lesson)
    return {day: _by_start(day_lessons) for day, day_lessons in sorted(grouped.items())}


def group_lessons_by_class(lessons: Iterable[LessonSlot]) -> Dict[str, List[LessonSlot]]:
    grouped: Dict[str, List[LessonSlot]] = {}
    for lesson in lessons:
        grouped.setdefault(lesson.class_id, []).append(lesson)
    return grouped


def total_hours(lessons: Iterable[LessonSlot]) -> float:
    return sum(duration_minutes(lesson.start_time, lesson.end_time) for lesson in lessons) / 60


def filter_by_type(lessons: Iterable[LessonSlot], class_type: ClassType) -> List[LessonSlot]:
    return [lesson for lesson in lessons if lesson.class_type == class_type]


def filter_by_year_level(lessons: Iterable[LessonSlot], year_level: str) -> List[LessonSlot]:
    return [lesson for lesson in lessons if lesson.year_level == year_level]


def is_lesson_at_time(lesson: LessonSlot, time_str: str) -> bool:
    return lesson.start_time <= time_str < lesson.end_time


def current_lesson(lessons: Iterable[LessonSlot], day: int, time_str: str) -> Optional[LessonSlot]:
    for lesson in lessons_for_day(lessons, day):
        if is_lesson_at_time(lesson, time_str):
            return lesson
    return None


def next_lesson(lessons: Iterable[LessonSlot], day: int, time_str: str) -> Optional[LessonSlot]:
    for lesson in lessons_for_day(lessons, day):
        if lesson.start_time > time_str:
            return lesson
    return None


# ===========================
# Schedule payload helpers
# ===========================

def schedule_to_json(entries: Iterable[RawScheduleEntry]) -> str:
    """Serialize entries back into the catalog's JSON payload shape."""
    return json.dumps([entry.model_dump(exclude_none=True) for entry in entries])


def validate_schedule(
    entries: Iterable[Any],
    policy: TimetablePolicy = DEFAULT_POLICY
) -> ScheduleValidationResult:
    """
    Check a whole schedule payload, reporting every problem by entry index.

    Unlike normalization this also flags times outside school hours.
    """
    errors = []
    earliest = policy.school_hours_earliest
    latest = policy.school_hours_latest

    for index, raw in enumerate(entries):
        if isinstance(raw, RawScheduleEntry):
            raw = raw.model_dump()

        problem = _check_entry(raw)
        if problem:
            code, message = problem
            if code != NormalizationIssueCode.INVALID_TIME_ORDER:
                errors.append(f"Entry {index}: Invalid schedule entry format")
                continue
            # Both times parse, so the school-hours checks still apply
            errors.append(f"Entry {index}: {message}")

        start_hour = int(raw["start_time"][:2])
        end_hour = int(raw["end_time"][:2])

        if start_hour < earliest or start_hour > latest:
            errors.append(f"Entry {index}: Start time seems outside school hours")

        if end_hour < earliest or end_hour > latest:
            errors.append(f"Entry {index}: End time seems outside school hours")

    return ScheduleValidationResult(valid=not errors, errors=errors)
