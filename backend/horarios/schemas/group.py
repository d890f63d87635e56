from pydantic import BaseModel, Field, field_validator

from horarios.models.period import Shift


class GroupBase(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    career_id: int
    period_id: int
    estimated_students: int = Field(default=0, ge=0, le=2000)
    preferred_shift: Shift = Shift.morning
    direct_teacher_id: int | None = None


class GroupCreate(GroupBase):
    subject_ids: list[int] = Field(min_length=1, max_length=50)

    @field_validator("subject_ids")
    @classmethod
    def dedupe_subjects(cls, value: list[int]) -> list[int]:
        return sorted(set(value))


class GroupUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    career_id: int | None = None
    period_id: int | None = None
    estimated_students: int | None = Field(default=None, ge=0, le=2000)
    preferred_shift: Shift | None = None
    direct_teacher_id: int | None = None
    subject_ids: list[int] | None = Field(default=None, min_length=1, max_length=50)


class GroupOut(GroupBase):
    id: int
    subject_ids: list[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}
