import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter

from config import settings
from models.schemas import (
    ConflictDetail, ConflictReport, DaySchedule, DayScheduleRequest, ExportGridRequest,
    GapsRequest, LessonValidationResult, ScheduleGap, TeachingLoad, TeachingLoadRequest,
    TimetableGrid, TimetableRequest, TimetableStats, TodayAgenda, ValidateLessonRequest,
    WeekSchedule, WeekScheduleRequest
)
from service.aggregator import TimetableAggregator, validate_new_lesson
from service.conflict_detector import (
    conflict_severity, conflict_summary, format_conflict_message, overlap_minutes,
    schedule_gaps, teaching_load
)
from service.export import build_timetable_grid

logger = logging.getLogger(__name__)

# Create a router instance
router = APIRouter()


def _now(request: TimetableRequest) -> datetime:
    # The engine never reads the clock; this boundary supplies it when the caller doesn't
    return request.now or datetime.now()


def _aggregator(request: TimetableRequest) -> TimetableAggregator:
    return TimetableAggregator(request.classes, settings.timetable_policy())


@router.post("/timetable/week", response_model=WeekSchedule)
async def get_week_schedule(request: WeekScheduleRequest):
    """
    Build the week view for a teacher's classes.

    Defaults to the week containing ``now`` when no week start is given.
    """
    now = _now(request)
    aggregator = _aggregator(request)
    week = aggregator.week_schedule(request.week_start or now.date(), now)
    logger.info(
        f"Week {week.week_start}: {len(request.classes)} classes, "
        f"{week.total_lessons} lessons, {len(week.conflicts)} conflicts"
    )
    return week


@router.post("/timetable/day", response_model=DaySchedule)
async def get_day_schedule(request: DayScheduleRequest):
    """Lessons for a single date (today when omitted)."""
    now = _now(request)
    day = _aggregator(request).day_schedule(request.date or now.date(), now)
    logger.info(f"Day {day.date}: {len(request.classes)} classes, {len(day.lessons)} lessons")
    return day


@router.post("/timetable/today", response_model=TodayAgenda)
async def get_today_agenda(request: TimetableRequest):
    """Remaining lessons today and the next one to start."""
    return _aggregator(request).today_agenda(_now(request))


@router.post("/timetable/conflicts", response_model=ConflictReport)
async def get_conflicts(request: TimetableRequest):
    """Every overlapping lesson pair with severity and a display message."""
    policy = settings.timetable_policy()
    conflicts = _aggregator(request).conflicts

    details: List[ConflictDetail] = [
        ConflictDetail(
            conflict=conflict,
            severity=conflict_severity(conflict, policy),
            overlap_minutes=overlap_minutes(conflict),
            message=format_conflict_message(conflict, policy)
        )
        for conflict in conflicts
    ]
    return ConflictReport(conflicts=details, summary=conflict_summary(conflicts, policy))


@router.post("/timetable/stats", response_model=TimetableStats)
async def get_stats(request: TimetableRequest):
    return _aggregator(request).stats()


@router.post("/timetable/gaps", response_model=List[ScheduleGap])
async def get_gaps(request: GapsRequest):
    """Free periods on one weekday."""
    lessons = _aggregator(request).lessons
    return schedule_gaps(lessons, request.day, request.min_gap_minutes, settings.timetable_policy())


@router.post("/timetable/teaching-load", response_model=TeachingLoad)
async def get_teaching_load(request: TeachingLoadRequest):
    """Longest back-to-back teaching stretch on one weekday."""
    return teaching_load(_aggregator(request).lessons, request.day)


@router.post("/timetable/validate-lesson", response_model=LessonValidationResult)
async def post_validate_lesson(request: ValidateLessonRequest):
    """
    Check a proposed lesson against the teacher's existing lessons.

    Advisory only; nothing is saved.
    """
    return validate_new_lesson(request.candidate, _aggregator(request).lessons)


@router.post("/timetable/export-grid", response_model=TimetableGrid)
async def get_export_grid(request: ExportGridRequest):
    """Hour x weekday table data for the PDF exporter."""
    now = _now(request)
    week = _aggregator(request).week_schedule(request.week_start or now.date(), now)
    return build_timetable_grid(
        week,
        teacher_name=request.teacher_name,
        include_locations=request.include_locations,
        policy=settings.timetable_policy()
    )
