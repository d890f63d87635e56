from pydantic import BaseModel, Field


class AcademicUnitBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)


class AcademicUnitCreate(AcademicUnitBase):
    pass


class AcademicUnitUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)


class AcademicUnitOut(AcademicUnitBase):
    id: int

    model_config = {"from_attributes": True}


class CareerBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    total_curriculum_hours: int = Field(default=0, ge=0, le=20_000)
    unit_id: int


class CareerCreate(CareerBase):
    pass


class CareerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    code: str | None = Field(default=None, min_length=1, max_length=50)
    total_curriculum_hours: int | None = Field(default=None, ge=0, le=20_000)
    unit_id: int | None = None


class CareerOut(CareerBase):
    id: int

    model_config = {"from_attributes": True}


class CycleBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    order: int = Field(ge=1, le=20)
    career_id: int


class CycleCreate(CycleBase):
    pass


class CycleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    order: int | None = Field(default=None, ge=1, le=20)
    career_id: int | None = None


class CycleOut(CycleBase):
    id: int

    model_config = {"from_attributes": True}


class RoomTypeBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)


class RoomTypeCreate(RoomTypeBase):
    pass


class RoomTypeUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)


class RoomTypeOut(RoomTypeBase):
    id: int

    model_config = {"from_attributes": True}


class SpecialtyBase(BaseModel):
    name: str = Field(min_length=1, max_length=150)


class SpecialtyCreate(SpecialtyBase):
    pass


class SpecialtyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=150)


class SpecialtyOut(SpecialtyBase):
    id: int

    model_config = {"from_attributes": True}
