from datetime import datetime
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field


class GenerationRequest(BaseModel):
    period_id: int = Field(validation_alias=AliasChoices("period_id", "periodo_id"))


class UnresolvedConflict(BaseModel):
    group_id: int
    group_code: str
    subject_id: int
    subject_name: str
    reason: str


class GenerationReport(BaseModel):
    status: Literal["SUCCESS", "PARTIAL_FAILURE"]
    message: str
    period_id: int
    assigned_count: int
    conflict_count: int
    total_groups: int
    success_percentage: float
    preserved_count: int = 0
    removed_auto_count: int = 0
    unresolved_conflicts: list[UnresolvedConflict] = Field(default_factory=list)
    runtime_ms: int = 0


class GenerationProgress(BaseModel):
    period_id: int
    running: bool
    progress: int = Field(ge=0, le=100)
    phase: str
    updated_at: datetime | None = None
