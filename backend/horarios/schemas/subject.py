from pydantic import BaseModel, Field, field_validator


def _unique_ids(value: list[int]) -> list[int]:
    seen: set[int] = set()
    ordered: list[int] = []
    for item in value:
        if item in seen:
            continue
        seen.add(item)
        ordered.append(item)
    return ordered


class SubjectBase(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    theory_hours: int = Field(default=0, ge=0, le=40)
    practice_hours: int = Field(default=0, ge=0, le=40)
    lab_hours: int = Field(default=0, ge=0, le=40)
    required_room_type_id: int | None = None
    required_specialty_ids: list[int] = Field(default_factory=list, max_length=50)
    cycle_id: int | None = None
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("required_specialty_ids")
    @classmethod
    def dedupe_specialties(cls, value: list[int]) -> list[int]:
        return _unique_ids(value)


class SubjectCreate(SubjectBase):
    career_ids: list[int] = Field(min_length=1, max_length=50)

    @field_validator("career_ids")
    @classmethod
    def dedupe_careers(cls, value: list[int]) -> list[int]:
        return _unique_ids(value)


class SubjectUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    theory_hours: int | None = Field(default=None, ge=0, le=40)
    practice_hours: int | None = Field(default=None, ge=0, le=40)
    lab_hours: int | None = Field(default=None, ge=0, le=40)
    required_room_type_id: int | None = None
    required_specialty_ids: list[int] | None = Field(default=None, max_length=50)
    cycle_id: int | None = None
    is_active: bool | None = None
    career_ids: list[int] | None = Field(default=None, min_length=1, max_length=50)


class SubjectOut(SubjectBase):
    id: int
    total_hours: int
    career_ids: list[int] = Field(default_factory=list)

    model_config = {"from_attributes": True}
