from pydantic import BaseModel, EmailStr, Field, field_validator

from horarios.models.teacher import ContractType


class TeacherBase(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    first_names: str = Field(min_length=1, max_length=150)
    last_names: str = Field(min_length=1, max_length=150)
    national_id: str | None = Field(default=None, max_length=30)
    email: EmailStr
    phone: str | None = Field(default=None, max_length=40)
    contract_type: ContractType = ContractType.full_time
    max_weekly_hours: int = Field(default=20, ge=1, le=80)
    unit_id: int | None = None
    specialty_ids: list[int] = Field(default_factory=list, max_length=50)
    is_active: bool = True

    @field_validator("specialty_ids")
    @classmethod
    def dedupe_specialties(cls, value: list[int]) -> list[int]:
        return sorted(set(value))


class TeacherCreate(TeacherBase):
    pass


class TeacherUpdate(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=50)
    first_names: str | None = Field(default=None, min_length=1, max_length=150)
    last_names: str | None = Field(default=None, min_length=1, max_length=150)
    national_id: str | None = Field(default=None, max_length=30)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=40)
    contract_type: ContractType | None = None
    max_weekly_hours: int | None = Field(default=None, ge=1, le=80)
    unit_id: int | None = None
    specialty_ids: list[int] | None = Field(default=None, max_length=50)
    is_active: bool | None = None


class TeacherOut(TeacherBase):
    id: int
    full_name: str

    model_config = {"from_attributes": True}
