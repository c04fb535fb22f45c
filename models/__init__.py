"""
Data models and Pydantic schemas for the timetable engine.
"""
from .schemas import (
    TIME_PATTERN,
    DEFAULT_POLICY,
    ClassType,
    TeacherRole,
    Severity,
    NormalizationIssueCode,
    TimetablePolicy,
    RawScheduleEntry,
    ClassWithSchedule,
    LessonSlot,
    OverlapWindow,
    ScheduleConflict,
    DaySchedule,
    WeekSchedule,
    ScheduleGap,
    TeachingStretch,
    TeachingLoad,
    TimetableStats,
    ConflictSummary,
    CalendarDay,
    TimeSlot,
    TodayAgenda,
    ScheduleOverview,
    NormalizationIssue,
    NormalizationResult,
    ScheduleValidationResult,
    LessonCandidate,
    LessonValidationResult,
    TimetableRequest,
    WeekScheduleRequest,
    DayScheduleRequest,
    GapsRequest,
    TeachingLoadRequest,
    ValidateLessonRequest,
    ExportGridRequest,
    ConflictDetail,
    ConflictReport,
    TimetableGrid,
)

__all__ = [
    "TIME_PATTERN",
    "DEFAULT_POLICY",
    "ClassType",
    "TeacherRole",
    "Severity",
    "NormalizationIssueCode",
    "TimetablePolicy",
    "RawScheduleEntry",
    "ClassWithSchedule",
    "LessonSlot",
    "OverlapWindow",
    "ScheduleConflict",
    "DaySchedule",
    "WeekSchedule",
    "ScheduleGap",
    "TeachingStretch",
    "TeachingLoad",
    "TimetableStats",
    "ConflictSummary",
    "CalendarDay",
    "TimeSlot",
    "TodayAgenda",
    "ScheduleOverview",
    "NormalizationIssue",
    "NormalizationResult",
    "ScheduleValidationResult",
    "LessonCandidate",
    "LessonValidationResult",
    "TimetableRequest",
    "WeekScheduleRequest",
    "DayScheduleRequest",
    "GapsRequest",
    "TeachingLoadRequest",
    "ValidateLessonRequest",
    "ExportGridRequest",
    "ConflictDetail",
    "ConflictReport",
    "TimetableGrid",
]
