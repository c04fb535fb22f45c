"""
Tests for day, week and month aggregation.
"""
from datetime import date, datetime

import pytest

from models.schemas import ClassWithSchedule, LessonCandidate, NormalizationIssueCode
from service.aggregator import (
    TimetableAggregator, class_schedule, classes_needing_schedule, current_week_schedule,
    has_scheduled_classes, month_calendar, month_schedule, schedule_overview, today_agenda,
    today_schedule, validate_new_lesson, week_schedule
)

MONDAY = date(2025, 1, 27)
# Wednesday of the same week, mid-morning
NOW = datetime(2025, 1, 29, 10, 0)


def get_classes():
    """Three scheduled classes with one Monday overlap, plus one unscheduled class."""
    return [
        ClassWithSchedule(id="math", name="3A Math", subject_name="Mathematics", schedule=[
            {"day": 1, "start_time": "09:00", "end_time": "10:00", "location": "Room 101"},
            {"day": 3, "start_time": "08:00", "end_time": "09:00"},
            {"day": 3, "start_time": "11:00", "end_time": "12:00"},
        ]),
        ClassWithSchedule(id="form", name="3A Form", type="form", role="form_teacher", schedule=[
            {"day": 1, "start_time": "09:30", "end_time": "10:30"},
        ]),
        ClassWithSchedule(id="band", name="Band", type="cca", schedule=[
            {"day": 6, "start_time": "14:00", "end_time": "16:00"},
        ]),
        ClassWithSchedule(id="new", name="4B Science", schedule=None),
    ]


# ============================================
# Week view
# ============================================

def test_week_schedule_covers_monday_anchored_week():
    week = week_schedule(get_classes(), date(2025, 1, 29), NOW)

    assert week.week_start == MONDAY
    assert week.week_end == date(2025, 2, 2)
    assert len(week.days) == 7
    assert week.total_lessons == 5
    assert week.has_conflicts
    assert len(week.conflicts) == 1


def test_week_days_indexed_by_weekday():
    """days[0] is the Sunday closing the week, days[1] its Monday."""
    week = week_schedule(get_classes(), MONDAY, NOW)

    assert [day.day_of_week for day in week.days] == [0, 1, 2, 3, 4, 5, 6]
    assert week.days[0].date == date(2025, 2, 2)
    assert week.days[1].date == MONDAY
    assert week.day(6).date == date(2025, 2, 1)
    assert [lesson.class_id for lesson in week.day(6).lessons] == ["band"]


def test_week_day_flags():
    week = week_schedule(get_classes(), MONDAY, NOW)

    assert week.day(1).has_conflicts
    assert not week.day(3).has_conflicts
    assert [day.is_today for day in week.days].count(True) == 1
    assert week.day(3).is_today


def test_day_lessons_sorted_by_start():
    week = week_schedule(get_classes(), MONDAY, NOW)
    assert [lesson.start_time for lesson in week.day(1).lessons] == ["09:00", "09:30"]
    assert [lesson.start_time for lesson in week.day(3).lessons] == ["08:00", "11:00"]


def test_week_schedule_every_lesson_lands_on_its_weekday():
    week = week_schedule(get_classes(), MONDAY, NOW)
    for day in week.days:
        assert all(lesson.day == day.day_of_week for lesson in day.lessons)
    assert sum(len(day.lessons) for day in week.days) == week.total_lessons


def test_current_week_schedule():
    week = current_week_schedule(get_classes(), datetime(2025, 2, 2, 20, 0))
    assert week.week_start == MONDAY
    assert week.day(0).is_today


def test_empty_class_list():
    aggregator = TimetableAggregator([])
    week = aggregator.week_schedule(MONDAY, NOW)

    assert len(week.days) == 7
    assert all(day.lessons == [] for day in week.days)
    assert week.total_lessons == 0
    assert week.conflicts == []
    assert not week.has_conflicts
    assert aggregator.stats().total_lessons == 0


# ============================================
# Day view
# ============================================

def test_day_schedule():
    aggregator = TimetableAggregator(get_classes())

    monday = aggregator.day_schedule(MONDAY, NOW)
    assert monday.day_of_week == 1
    assert monday.has_conflicts
    assert not monday.is_today
    assert len(monday.lessons) == 2

    tuesday = aggregator.day_schedule(date(2025, 1, 28), NOW)
    assert tuesday.lessons == []
    assert not tuesday.has_conflicts


def test_today_schedule():
    today = today_schedule(get_classes(), NOW)
    assert today.date == date(2025, 1, 29)
    assert today.is_today
    assert len(today.lessons) == 2


def test_conflict_flag_repeats_every_week():
    """A Monday conflict is flagged on every Monday."""
    aggregator = TimetableAggregator(get_classes())
    assert aggregator.day_schedule(date(2025, 3, 3), NOW).has_conflicts
    assert aggregator.day_schedule(date(2024, 12, 30), NOW).has_conflicts


# ============================================
# Today agenda
# ============================================

def test_today_agenda():
    agenda = today_agenda(get_classes(), NOW)

    assert agenda.date == date(2025, 1, 29)
    assert agenda.total_count == 2
    assert agenda.remaining_count == 1
    assert [lesson.start_time for lesson in agenda.lessons] == ["11:00"]
    assert agenda.next_lesson.start_time == "11:00"


def test_today_agenda_during_lesson_has_no_next():
    agenda = today_agenda(get_classes(), datetime(2025, 1, 29, 11, 30))
    assert agenda.remaining_count == 1
    assert agenda.next_lesson is None


def test_today_agenda_caps_lessons():
    cls = ClassWithSchedule(id="busy", name="Busy", schedule=[
        {"day": 3, "start_time": f"{hour:02d}:00", "end_time": f"{hour:02d}:45"}
        for hour in range(8, 14)
    ])

    agenda = today_agenda([cls], datetime(2025, 1, 29, 7, 0), max_lessons=3)

    assert len(agenda.lessons) == 3
    assert agenda.remaining_count == 6
    assert agenda.next_lesson.start_time == "08:00"


# ============================================
# Month view
# ============================================

def test_month_schedule_keyed_by_weekday():
    by_day = month_schedule(get_classes())
    assert sorted(by_day) == [1, 3, 6]
    assert len(by_day[3]) == 2


def test_month_calendar():
    cells = month_calendar(get_classes(), date(2025, 2, 14), NOW)

    assert len(cells) == 35
    assert cells[0].date == MONDAY
    assert not cells[0].is_current_month
    assert cells[0].has_conflicts
    assert cells[0].lesson_count == 2
    assert cells[2].is_today

    feb_first = next(cell for cell in cells if cell.date == date(2025, 2, 1))
    assert feb_first.is_current_month
    assert feb_first.lesson_count == 1
    assert sum(cell.is_today for cell in cells) == 1


# ============================================
# Overview and helpers
# ============================================

def test_schedule_overview():
    overview = schedule_overview(get_classes())
    assert overview.total_classes == 4
    assert overview.classes_with_schedule == 3
    assert overview.total_lessons == 5


def test_schedule_helpers():
    classes = get_classes()
    assert has_scheduled_classes(classes)
    assert not has_scheduled_classes(classes[3:])
    assert [cls.id for cls in classes_needing_schedule(classes)] == ["new"]
    assert [lesson.day for lesson in class_schedule(classes[0])] == [1, 3, 3]


def test_aggregator_exposes_issues():
    cls = ClassWithSchedule(id="bad", name="Bad", schedule=[
        {"day": 9, "start_time": "09:00", "end_time": "10:00"},
        {"day": 2, "start_time": "09:00", "end_time": "10:00"},
    ])

    aggregator = TimetableAggregator([cls])

    assert len(aggregator.lessons) == 1
    assert [issue.code for issue in aggregator.issues] == [NormalizationIssueCode.INVALID_ENTRY]


# ============================================
# Lesson validation
# ============================================

@pytest.fixture
def existing_lessons():
    return TimetableAggregator(get_classes()).lessons


def test_validate_new_lesson_clear_slot(existing_lessons):
    result = validate_new_lesson(
        LessonCandidate(day=1, start_time="10:30", end_time="11:00"), existing_lessons
    )
    assert result.valid
    assert result.conflicts == []


def test_validate_new_lesson_reports_conflicts(existing_lessons):
    result = validate_new_lesson(
        LessonCandidate(day=1, start_time="09:15", end_time="09:45"), existing_lessons
    )
    assert not result.valid
    assert {lesson.class_id for lesson in result.conflicts} == {"math", "form"}
    assert result.message == "Conflicts with 2 existing lessons"


def test_validate_new_lesson_single_conflict_message(existing_lessons):
    result = validate_new_lesson(
        LessonCandidate(day=1, start_time="10:00", end_time="10:45"), existing_lessons
    )
    assert result.message == "Conflicts with 1 existing lesson"


def test_validate_new_lesson_time_order(existing_lessons):
    result = validate_new_lesson(
        LessonCandidate(day=2, start_time="10:00", end_time="10:00"), existing_lessons
    )
    assert not result.valid
    assert result.message == "Start time must be before end time"
