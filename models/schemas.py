import datetime
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"


# ===========================
# Enumerations
# ===========================

class ClassType(str, Enum):
    SUBJECT = "subject"
    FORM = "form"
    CCA = "cca"


class TeacherRole(str, Enum):
    TEACHER = "teacher"
    FORM_TEACHER = "form_teacher"


class Severity(str, Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"


class NormalizationIssueCode(str, Enum):
    INVALID_ENTRY = "invalid_entry"
    INVALID_TIME_ORDER = "invalid_time_order"
    DUPLICATE_SLOT = "duplicate_slot"
    UNPARSEABLE_SCHEDULE = "unparseable_schedule"


# ===========================
# Policy
# ===========================

class TimetablePolicy(BaseModel):
    """Tunable constants used by conflict classification and analytics."""
    model_config = ConfigDict(frozen=True)

    minor_max_minutes: int = 15       # overlap <= this is minor
    moderate_max_minutes: int = 45    # overlap <= this is moderate, above is severe
    weekday_divisor: int = 5          # fixed divisor for average lessons per weekday
    min_gap_minutes: int = 30
    school_day_start: str = Field("08:00", pattern=TIME_PATTERN)
    school_day_end: str = Field("16:00", pattern=TIME_PATTERN)
    grid_interval_minutes: int = Field(30, gt=0)
    school_hours_earliest: int = Field(6, ge=0, le=23)
    school_hours_latest: int = Field(22, ge=0, le=23)

    @model_validator(mode="after")
    def check_thresholds(self) -> "TimetablePolicy":
        if self.minor_max_minutes > self.moderate_max_minutes:
            raise ValueError("minor_max_minutes must not exceed moderate_max_minutes")
        if self.weekday_divisor < 1:
            raise ValueError("weekday_divisor must be at least 1")
        if self.school_hours_earliest > self.school_hours_latest:
            raise ValueError("school_hours_earliest must not exceed school_hours_latest")
        if self.school_day_start >= self.school_day_end:
            raise ValueError("school_day_start must be before school_day_end")
        return self


DEFAULT_POLICY = TimetablePolicy()


# ===========================
# Source Records
# ===========================

class RawScheduleEntry(BaseModel):
    """One recurring weekly meeting as stored by the class catalog"""
    model_config = ConfigDict(frozen=True)

    day: int                 # 0-6, Sunday = 0
    start_time: str          # HH:MM format, e.g., "09:00"
    end_time: str
    location: Optional[str] = None


class ClassWithSchedule(BaseModel):
    """A teaching assignment with its raw (unvalidated) schedule payload"""
    id: str
    name: str
    subject_name: Optional[str] = ""
    type: ClassType = ClassType.SUBJECT
    year_level: Optional[str] = ""
    role: TeacherRole = TeacherRole.TEACHER
    schedule: Any = None     # list, JSON string, or None

    @field_validator("subject_name", "year_level", mode="before")
    @classmethod
    def blank_missing_text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("type", mode="before")
    @classmethod
    def coerce_unknown_type(cls, value: Any) -> Any:
        if isinstance(value, ClassType):
            return value
        try:
            return ClassType(value)
        except ValueError:
            logger.warning(f"Unknown class type {value!r}, treating as subject")
            return ClassType.SUBJECT

    @field_validator("role", mode="before")
    @classmethod
    def default_role(cls, value: Any) -> Any:
        return value or TeacherRole.TEACHER


# ===========================
# Engine Entities
# ===========================

class LessonSlot(BaseModel):
    """One normalized occurrence of a recurring weekly class meeting"""
    model_config = ConfigDict(frozen=True)

    id: str                  # {class_id}-{day}-{start_time}
    class_id: str
    class_name: str
    subject_name: str
    class_type: ClassType
    day: int
    start_time: str
    end_time: str
    location: Optional[str] = None
    year_level: str = ""
    role: TeacherRole = TeacherRole.TEACHER
    color: str


class OverlapWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: str
    end: str


class ScheduleConflict(BaseModel):
    """Two lessons on the same weekday whose time ranges overlap"""
    model_config = ConfigDict(frozen=True)

    id: str
    lesson_a: LessonSlot
    lesson_b: LessonSlot
    overlap_start: str
    overlap_end: str
    day: int


class DaySchedule(BaseModel):
    """Schedule for a single calendar date"""
    date: datetime.date
    day_of_week: int
    lessons: List[LessonSlot] = []
    has_conflicts: bool = False
    is_today: bool = False


class WeekSchedule(BaseModel):
    """Seven DaySchedules indexed by weekday (Sunday first)"""
    week_start: datetime.date
    week_end: datetime.date
    days: List[DaySchedule]
    conflicts: List[ScheduleConflict] = []
    total_lessons: int = 0
    has_conflicts: bool = False

    def day(self, day_of_week: int) -> DaySchedule:
        return self.days[day_of_week]


# ===========================
# Analytics
# ===========================

class ScheduleGap(BaseModel):
    start: str
    end: str
    duration: int            # minutes


class TeachingStretch(BaseModel):
    start: str
    end: str
    hours: float


class TeachingLoad(BaseModel):
    consecutive_hours: float
    longest_stretch: TeachingStretch


class TimetableStats(BaseModel):
    total_lessons: int
    total_hours: float
    lessons_by_type: Dict[ClassType, int]
    lessons_by_day: Dict[int, int]
    average_lessons_per_day: float
    conflict_count: int


class ConflictSummary(BaseModel):
    total: int = 0
    minor: int = 0
    moderate: int = 0
    severe: int = 0
    affected_lessons: int = 0


class CalendarDay(BaseModel):
    """One cell of a month calendar grid"""
    date: datetime.date
    is_current_month: bool
    is_today: bool
    lessons: List[LessonSlot] = []
    lesson_count: int = 0
    has_conflicts: bool = False


class TimeSlot(BaseModel):
    """Row marker for grid rendering"""
    time: str
    hour: int
    minute: int
    label: str               # e.g. "9:00 AM"


class TodayAgenda(BaseModel):
    date: datetime.date
    lessons: List[LessonSlot] = []        # not yet finished, capped
    next_lesson: Optional[LessonSlot] = None
    remaining_count: int = 0
    total_count: int = 0


class ScheduleOverview(BaseModel):
    total_classes: int
    total_lessons: int
    classes_with_schedule: int


# ===========================
# Validation Results
# ===========================

class NormalizationIssue(BaseModel):
    class_id: str
    index: Optional[int] = None
    code: NormalizationIssueCode
    message: str


class NormalizationResult(BaseModel):
    lessons: List[LessonSlot] = []
    issues: List[NormalizationIssue] = []


class ScheduleValidationResult(BaseModel):
    valid: bool
    errors: List[str] = []


class LessonCandidate(BaseModel):
    """A prospective lesson that has not been given an identity yet"""
    day: int = Field(ge=0, le=6)
    start_time: str = Field(pattern=TIME_PATTERN)
    end_time: str = Field(pattern=TIME_PATTERN)
    class_id: Optional[str] = None
    class_name: Optional[str] = None
    location: Optional[str] = None


class LessonValidationResult(BaseModel):
    valid: bool
    conflicts: List[LessonSlot] = []
    message: Optional[str] = None


# ===========================
# Request Schemas
# ===========================

class TimetableRequest(BaseModel):
    """Class list for one teacher plus the caller's notion of now"""
    classes: List[ClassWithSchedule] = []
    now: Optional[datetime.datetime] = None


class WeekScheduleRequest(TimetableRequest):
    week_start: Optional[datetime.date] = None


class DayScheduleRequest(TimetableRequest):
    date: Optional[datetime.date] = None


class GapsRequest(TimetableRequest):
    day: int = Field(ge=0, le=6)
    min_gap_minutes: Optional[int] = Field(None, ge=0)


class TeachingLoadRequest(TimetableRequest):
    day: int = Field(ge=0, le=6)


class ValidateLessonRequest(TimetableRequest):
    candidate: LessonCandidate


class ExportGridRequest(WeekScheduleRequest):
    include_locations: bool = True
    teacher_name: str = "Teacher"


# ===========================
# Response Schemas
# ===========================

class ConflictDetail(BaseModel):
    conflict: ScheduleConflict
    severity: Severity
    overlap_minutes: int
    message: str


class ConflictReport(BaseModel):
    conflicts: List[ConflictDetail] = []
    summary: ConflictSummary = ConflictSummary()


class TimetableGrid(BaseModel):
    """Hour x weekday table handed to the PDF exporter"""
    header: List[str]
    rows: List[List[str]]
    cell_colors: List[List[Optional[str]]] = []   # parallel to rows, day columns only
    hour_span: Optional[List[int]] = None          # [first_hour, last_hour]
    week_label: str = ""
    conflict_warning: Optional[str] = None
    filename: Optional[str] = None
