# models/notification.py
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

WEEK_DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
SECONDS_PER_DAY = 86400

DistanceUnit = Literal["km", "m", "min"]


class NotificationIn(BaseModel):
    """Payload for creating/updating a smart notification (proximity + time window + weekdays)."""
    line_id: str = Field(..., min_length=1)
    stop_id: str = Field(..., min_length=1)
    distance: float = Field(..., ge=0)
    distance_unit: DistanceUnit
    start_time: int
    end_time: int
    week_days: List[str]

    @field_validator("start_time")
    @classmethod
    def _start_in_day(cls, value: int) -> int:
        if value < 0 or value > SECONDS_PER_DAY:
            raise ValueError("Start time must be between 0 and 86400")
        return value

    @field_validator("end_time")
    @classmethod
    def _end_in_day(cls, value: int) -> int:
        if value < 0 or value > SECONDS_PER_DAY:
            raise ValueError("End time must be between 0 and 86400")
        return value

    @field_validator("week_days")
    @classmethod
    def _known_week_days(cls, value: List[str]) -> List[str]:
        if len(value) == 0:
            raise ValueError("At least one week day is required")
        for week_day in value:
            if week_day not in WEEK_DAYS:
                raise ValueError("Invalid week day")
        return value

    @model_validator(mode="after")
    def _window_not_empty(self):
        # a window cannot span midnight
        if self.end_time <= self.start_time:
            raise ValueError("End time must be greater than start time")
        return self


class Notification(NotificationIn):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: Optional[datetime] = Field(default_factory=lambda: datetime.now(timezone.utc))
