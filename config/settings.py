"""
Configuration management for the timetable engine API.
"""
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

from models.schemas import TimetablePolicy


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Application
    app_name: str = "Timetable Engine API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = False

    # Conflict severity thresholds (overlap minutes, inclusive upper bounds)
    conflict_minor_max_minutes: int = 15
    conflict_moderate_max_minutes: int = 45

    # Analytics
    stats_weekday_divisor: int = 5
    default_min_gap_minutes: int = 30

    # School day / grid
    school_day_start: str = "08:00"
    school_day_end: str = "16:00"
    grid_interval_minutes: int = 30
    school_hours_earliest: int = 6
    school_hours_latest: int = 22

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    @model_validator(mode="after")
    def check_policy(self) -> "Settings":
        # TimetablePolicy rejects inverted thresholds and a zero divisor
        self.timetable_policy()
        return self

    def timetable_policy(self) -> TimetablePolicy:
        """Snapshot of the tunable timetable constants."""
        return TimetablePolicy(
            minor_max_minutes=self.conflict_minor_max_minutes,
            moderate_max_minutes=self.conflict_moderate_max_minutes,
            weekday_divisor=self.stats_weekday_divisor,
            min_gap_minutes=self.default_min_gap_minutes,
            school_day_start=self.school_day_start,
            school_day_end=self.school_day_end,
            grid_interval_minutes=self.grid_interval_minutes,
            school_hours_earliest=self.school_hours_earliest,
            school_hours_latest=self.school_hours_latest,
        )


settings = Settings()
