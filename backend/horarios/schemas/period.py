from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from horarios.models.period import Shift
from horarios.schemas.common import TIME_PATTERN, format_time, parse_time_to_minutes


class PeriodBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    start_date: date
    end_date: date
    is_active: bool = True

    @model_validator(mode="after")
    def validate_dates(self) -> "PeriodBase":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class PeriodCreate(PeriodBase):
    pass


class PeriodUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_active: bool | None = None


class PeriodOut(PeriodBase):
    id: int

    model_config = {"from_attributes": True}


class TimeBlockBase(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    start_time: str
    end_time: str
    shift: Shift
    day_of_week: int | None = Field(default=None, ge=1, le=6)
    order: int = Field(default=0, ge=0, le=100)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_time(cls, value) -> str:
        text = format_time(value)
        if not TIME_PATTERN.match(text):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return text

    @model_validator(mode="after")
    def validate_order(self) -> "TimeBlockBase":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TimeBlockCreate(TimeBlockBase):
    pass


class TimeBlockUpdate(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    start_time: str | None = None
    end_time: str | None = None
    shift: Shift | None = None
    day_of_week: int | None = Field(default=None, ge=1, le=6)
    order: int | None = Field(default=None, ge=0, le=100)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def validate_time(cls, value):
        if value is None:
            return value
        text = format_time(value)
        if not TIME_PATTERN.match(text):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return text


class TimeBlockOut(TimeBlockBase):
    id: int

    model_config = {"from_attributes": True}
