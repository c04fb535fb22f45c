"""
Tests for the schedule normalizer.
"""
import json

from models.schemas import (
    ClassType, ClassWithSchedule, NormalizationIssueCode, RawScheduleEntry, TeacherRole
)
from service.schedule_adapter import (
    class_to_lesson_slots, classes_to_lesson_slots, current_lesson, filter_by_type,
    filter_by_year_level, group_lessons_by_class, group_lessons_by_day, has_schedule,
    lesson_color, lessons_for_day, lessons_in_time_range, next_lesson,
    normalize_classes, parse_schedule, schedule_to_json, total_hours, validate_schedule
)


def make_class(class_id="c1", schedule=None, class_type="subject", **overrides):
    data = {
        "id": class_id,
        "name": f"Class {class_id}",
        "subject_name": "Mathematics",
        "type": class_type,
        "year_level": "Sec 3",
        "role": "teacher",
        "schedule": schedule,
    }
    data.update(overrides)
    return ClassWithSchedule(**data)


def entry(day, start, end, location=None):
    data = {"day": day, "start_time": start, "end_time": end}
    if location is not None:
        data["location"] = location
    return data


def test_lesson_slot_fields_and_identity():
    cls = make_class(schedule=[entry(1, "09:00", "10:00", "Room 101")])

    lessons = class_to_lesson_slots(cls)

    assert len(lessons) == 1
    lesson = lessons[0]
    assert lesson.id == "c1-1-09:00"
    assert lesson.class_id == "c1"
    assert lesson.class_name == "Class c1"
    assert lesson.subject_name == "Mathematics"
    assert lesson.class_type == ClassType.SUBJECT
    assert lesson.day == 1
    assert lesson.start_time == "09:00"
    assert lesson.end_time == "10:00"
    assert lesson.location == "Room 101"
    assert lesson.year_level == "Sec 3"
    assert lesson.role == TeacherRole.TEACHER
    assert lesson.color == "green"


def test_normalization_is_idempotent():
    classes = [
        make_class("c1", [entry(1, "09:00", "10:00"), entry(3, "11:00", "12:00")]),
        make_class("c2", [entry(1, "09:30", "10:30")], class_type="form"),
    ]

    first = {lesson.id for lesson in classes_to_lesson_slots(classes)}
    second = {lesson.id for lesson in classes_to_lesson_slots(classes)}

    assert first == second
    assert len(first) == 3


def test_colors_follow_class_type():
    assert lesson_color(ClassType.SUBJECT) == "green"
    assert lesson_color("form") == "orange"
    assert lesson_color(ClassType.CCA) == "blue"
    assert lesson_color("assembly") == "green"


def test_unknown_class_type_falls_back_to_subject():
    cls = make_class(schedule=[entry(2, "08:00", "09:00")], class_type="assembly")
    lesson = class_to_lesson_slots(cls)[0]
    assert lesson.class_type == ClassType.SUBJECT
    assert lesson.color == "green"


def test_out_of_range_day_is_dropped_but_rest_survive():
    """A day of 7 is skipped while the class's other entries still produce lessons."""
    cls = make_class(schedule=[
        entry(7, "09:00", "10:00"),
        entry(2, "09:00", "10:00"),
        entry(4, "13:00", "14:00"),
    ])

    result = normalize_classes([cls])

    assert [lesson.id for lesson in result.lessons] == ["c1-2-09:00", "c1-4-13:00"]
    # The drop is silent for renderers but surfaced here
    assert len(result.issues) == 1
    assert result.issues[0].code == NormalizationIssueCode.INVALID_ENTRY
    assert result.issues[0].index == 0


def test_malformed_entries_are_skipped():
    cls = make_class(schedule=[
        "not an entry",
        entry(-1, "09:00", "10:00"),
        entry(True, "09:00", "10:00"),
        entry("1", "09:00", "10:00"),
        entry(1, "9:00", "10:00"),
        entry(1, "09:00", "24:00"),
        entry(1, "10:00", "09:00"),
        entry(1, "10:00", "10:00"),
        entry(1, "11:00", "12:00"),
    ])

    result = normalize_classes([cls])

    assert [lesson.id for lesson in result.lessons] == ["c1-1-11:00"]
    codes = [issue.code for issue in result.issues]
    assert codes.count(NormalizationIssueCode.INVALID_TIME_ORDER) == 2
    assert codes.count(NormalizationIssueCode.INVALID_ENTRY) == 6


def test_duplicate_identity_collapses_and_is_reported():
    cls = make_class(schedule=[
        entry(1, "09:00", "10:00", "Room A"),
        entry(1, "09:00", "09:45", "Room B"),
    ])

    result = normalize_classes([cls])

    assert len(result.lessons) == 1
    assert result.lessons[0].location == "Room A"
    assert [issue.code for issue in result.issues] == [NormalizationIssueCode.DUPLICATE_SLOT]


def test_schedule_as_json_string():
    payload = json.dumps([entry(5, "14:00", "15:00")])
    lessons = class_to_lesson_slots(make_class(schedule=payload))
    assert [lesson.id for lesson in lessons] == ["c1-5-14:00"]


def test_missing_or_unusable_schedule_yields_no_lessons():
    assert class_to_lesson_slots(make_class(schedule=None)) == []
    assert class_to_lesson_slots(make_class(schedule={"day": 1})) == []
    assert class_to_lesson_slots(make_class(schedule=json.dumps({"day": 1}))) == []
    assert classes_to_lesson_slots([]) == []


def test_unparseable_json_is_reported():
    result = normalize_classes([make_class(schedule="[{oops")])
    assert result.lessons == []
    assert result.issues[0].code == NormalizationIssueCode.UNPARSEABLE_SCHEDULE


def test_parse_schedule_returns_valid_entries():
    entries = parse_schedule([entry(1, "09:00", "10:00", "Lab"), entry(9, "09:00", "10:00")])
    assert entries == [RawScheduleEntry(day=1, start_time="09:00", end_time="10:00", location="Lab")]
    assert parse_schedule(None) == []


def test_has_schedule():
    assert has_schedule(make_class(schedule=[entry(1, "09:00", "10:00")]))
    assert has_schedule(make_class(schedule=json.dumps([entry(1, "09:00", "10:00")])))
    assert not has_schedule(make_class(schedule=[]))
    assert not has_schedule(make_class(schedule=None))


# ============================================
# Lesson queries
# ============================================

def sample_lessons():
    return classes_to_lesson_slots([
        make_class("c1", [entry(1, "10:00", "11:00"), entry(1, "08:00", "09:00")]),
        make_class("c2", [entry(1, "09:00", "10:00"), entry(2, "08:00", "09:30")],
                   class_type="cca", year_level="Sec 1"),
    ])


def test_lessons_for_day_sorted_by_start():
    lessons = lessons_for_day(sample_lessons(), 1)
    assert [lesson.start_time for lesson in lessons] == ["08:00", "09:00", "10:00"]


def test_group_lessons_by_day_and_class():
    lessons = sample_lessons()

    by_day = group_lessons_by_day(lessons)
    assert sorted(by_day) == [1, 2]
    assert [lesson.start_time for lesson in by_day[1]] == ["08:00", "09:00", "10:00"]

    by_class = group_lessons_by_class(lessons)
    assert len(by_class["c1"]) == 2
    assert len(by_class["c2"]) == 2


def test_lessons_in_time_range():
    lessons = lessons_in_time_range(sample_lessons(), 1, "08:30", "10:00")
    assert [lesson.start_time for lesson in lessons] == ["08:00", "09:00"]


def test_total_hours_and_filters():
    lessons = sample_lessons()
    assert total_hours(lessons) == 4.5
    assert len(filter_by_type(lessons, ClassType.CCA)) == 2
    assert len(filter_by_year_level(lessons, "Sec 1")) == 2
    assert total_hours([]) == 0


def test_current_and_next_lesson():
    lessons = sample_lessons()
    assert current_lesson(lessons, 1, "09:15").class_id == "c2"
    assert current_lesson(lessons, 1, "12:00") is None
    assert next_lesson(lessons, 1, "09:15").start_time == "10:00"
    assert next_lesson(lessons, 1, "10:00") is None


# ============================================
# Payload helpers
# ============================================

def test_schedule_to_json_omits_missing_location():
    entries = [
        RawScheduleEntry(day=1, start_time="09:00", end_time="10:00"),
        RawScheduleEntry(day=2, start_time="10:00", end_time="11:00", location="Hall"),
    ]
    assert json.loads(schedule_to_json(entries)) == [
        entry(1, "09:00", "10:00"),
        entry(2, "10:00", "11:00", "Hall"),
    ]


def test_validate_schedule_reports_each_problem():
    result = validate_schedule([
        entry(1, "09:00", "10:00"),
        entry(8, "09:00", "10:00"),
        entry(1, "11:00", "10:00"),
        entry(1, "05:00", "23:00"),
    ])

    assert not result.valid
    assert result.errors == [
        "Entry 1: Invalid schedule entry format",
        "Entry 2: Start time (11:00) must be before end time (10:00)",
        "Entry 3: Start time seems outside school hours",
        "Entry 3: End time seems outside school hours",
    ]


def test_validate_schedule_accepts_clean_schedule():
    result = validate_schedule([RawScheduleEntry(day=3, start_time="08:00", end_time="09:00")])
    assert result.valid
    assert result.errors == []


def test_validate_schedule_checks_hours_after_time_order_error():
    result = validate_schedule([entry(1, "23:00", "05:00")])

    assert result.errors == [
        "Entry 0: Start time (23:00) must be before end time (05:00)",
        "Entry 0: Start time seems outside school hours",
        "Entry 0: End time seems outside school hours",
    ]


def test_null_metadata_becomes_blank():
    cls = make_class(schedule=[entry(1, "09:00", "10:00")], subject_name=None, year_level=None)

    lesson = class_to_lesson_slots(cls)[0]

    assert cls.subject_name == ""
    assert cls.year_level == ""
    assert lesson.subject_name == ""
    assert lesson.year_level == ""
