from pydantic import BaseModel, Field


class ClassroomBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    room_type_id: int
    capacity: int = Field(ge=1, le=2000)
    location: str = Field(min_length=1, max_length=200)
    extra_resources: str | None = Field(default=None, max_length=2000)
    unit_id: int


class ClassroomCreate(ClassroomBase):
    pass


class ClassroomUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    room_type_id: int | None = None
    capacity: int | None = Field(default=None, ge=1, le=2000)
    location: str | None = Field(default=None, min_length=1, max_length=200)
    extra_resources: str | None = Field(default=None, max_length=2000)
    unit_id: int | None = None


class ClassroomOut(ClassroomBase):
    id: int

    model_config = {"from_attributes": True}
