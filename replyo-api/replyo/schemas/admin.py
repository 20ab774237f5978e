from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class AggregateStatsRequest(BaseModel):
    business_id: Optional[UUID] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    force: bool = False

    @model_validator(mode="after")
    def check_period(self) -> "AggregateStatsRequest":
        if (self.period_start is None) != (self.period_end is None):
            raise ValueError("period_start and period_end must be given together")
        if self.period_start and self.period_end and self.period_end <= self.period_start:
            raise ValueError("period_end must be after period_start")
        return self


class ScheduleFollowUpRequest(BaseModel):
    follow_up_type: Literal["first", "second"] = "first"
    delay_hours: float = Field(default=12, ge=0)


class RunJobsRequest(BaseModel):
    limit: int = Field(default=10, ge=1, le=100)


class AlertTestResponse(BaseModel):
    success: bool
    message: str


class BusinessUpdateRequest(BaseModel):
    business_name: Optional[str] = None
    booking_link: Optional[str] = None
    industry: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    hours: Optional[str] = None
    tone: Optional[str] = None
    avg_order_value: Optional[float] = Field(default=None, gt=0)
    conversion_multiplier: Optional[float] = Field(default=None, gt=0, le=1)
