from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from horarios.models.availability import AvailabilityOrigin


class AvailabilityCreate(BaseModel):
    teacher_id: int = Field(validation_alias=AliasChoices("teacher_id", "docente"))
    period_id: int = Field(validation_alias=AliasChoices("period_id", "periodo"))
    day: int = Field(ge=1, le=6, validation_alias=AliasChoices("day", "dia_semana"))
    block_id: int = Field(validation_alias=AliasChoices("block_id", "bloque_horario"))
    is_available: bool = Field(default=True, validation_alias=AliasChoices("is_available", "esta_disponible"))
    preference: int = Field(default=0, ge=0, le=10, validation_alias=AliasChoices("preference", "preferencia"))


class AvailabilityUpdate(BaseModel):
    is_available: bool | None = Field(default=None, validation_alias=AliasChoices("is_available", "esta_disponible"))
    preference: int | None = Field(default=None, ge=0, le=10, validation_alias=AliasChoices("preference", "preferencia"))


class AvailabilityOut(BaseModel):
    id: int
    teacher_id: int
    period_id: int
    day: int
    block_id: int
    is_available: bool
    preference: int
    origin: AvailabilityOrigin
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class RowFailure(BaseModel):
    row: int
    reason: str


BatchStatus = Literal["SUCCESS", "PARTIAL_FAILURE", "FAILURE"]


class ImportResult(BaseModel):
    status: BatchStatus
    total_rows: int
    succeeded: int
    failed: int
    failures: list[RowFailure] = Field(default_factory=list)
