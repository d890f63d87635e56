from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from horarios.models.schedule_assignment import AssignmentOrigin


class AssignmentCandidate(BaseModel):
    """Proposed manual placement.

    Every field is optional at the schema level so the validator can report
    the first missing one with its own rule name.
    """

    group_id: int | None = Field(default=None, validation_alias=AliasChoices("group_id", "grupo"))
    subject_id: int | None = Field(default=None, validation_alias=AliasChoices("subject_id", "materia"))
    teacher_id: int | None = Field(default=None, validation_alias=AliasChoices("teacher_id", "docente"))
    classroom_id: int | None = Field(default=None, validation_alias=AliasChoices("classroom_id", "espacio"))
    period_id: int | None = Field(default=None, validation_alias=AliasChoices("period_id", "periodo"))
    day: int | None = Field(default=None, validation_alias=AliasChoices("day", "dia_semana"))
    block_id: int | None = Field(default=None, validation_alias=AliasChoices("block_id", "bloque_horario"))


class AssignmentOut(BaseModel):
    id: int
    group_id: int
    subject_id: int
    teacher_id: int
    classroom_id: int
    period_id: int
    day: int
    block_id: int
    origin: AssignmentOrigin
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class ValidationResult(BaseModel):
    valid: bool
    code: str | None = None
    rule: str | None = None
    message: str | None = None
    details: dict = Field(default_factory=dict)
