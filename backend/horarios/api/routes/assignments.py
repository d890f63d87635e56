import logging

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.api.crud import get_or_404
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.schemas.assignment import AssignmentCandidate, AssignmentOut, ValidationResult
from horarios.schemas.common import Page
from horarios.services.assignment_validator import check_assignment, create_manual_assignment
from horarios.services.audit import log_activity

router = APIRouter()
logger = logging.getLogger(__name__)


def _serialize(row: ScheduleAssignment) -> dict:
    return AssignmentOut.model_validate(row).model_dump(mode="json")


@router.get("/", response_model=Page[AssignmentOut])
def list_assignments(
    page: int = Query(default=1, ge=1),
    period_id: int | None = None,
    group_id: int | None = None,
    teacher_id: int | None = None,
    classroom_id: int | None = None,
    day: int | None = Query(default=None, ge=1, le=6),
    db: Session = Depends(get_db),
) -> dict:
    query = select(ScheduleAssignment).order_by(
        ScheduleAssignment.period_id,
        ScheduleAssignment.day,
        ScheduleAssignment.block_id,
        ScheduleAssignment.id,
    )
    if period_id is not None:
        query = query.where(ScheduleAssignment.period_id == period_id)
    if group_id is not None:
        query = query.where(ScheduleAssignment.group_id == group_id)
    if teacher_id is not None:
        query = query.where(ScheduleAssignment.teacher_id == teacher_id)
    if classroom_id is not None:
        query = query.where(ScheduleAssignment.classroom_id == classroom_id)
    if day is not None:
        query = query.where(ScheduleAssignment.day == day)
    return paginate(db, query, page=page, serialize=_serialize)


@router.post("/", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(payload: AssignmentCandidate = Body(...), db: Session = Depends(get_db)) -> ScheduleAssignment:
    return create_manual_assignment(db, payload)


@router.post("/validar", response_model=ValidationResult)
def validate_assignment(payload: AssignmentCandidate = Body(...), db: Session = Depends(get_db)) -> dict:
    return check_assignment(db, payload)


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(assignment_id: int, db: Session = Depends(get_db)) -> ScheduleAssignment:
    return get_or_404(db, ScheduleAssignment, assignment_id, "ScheduleAssignment")


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(assignment_id: int, db: Session = Depends(get_db)) -> Response:
    row = get_or_404(db, ScheduleAssignment, assignment_id, "ScheduleAssignment")
    log_activity(
        db,
        action="assignment.delete",
        entity_type="schedule_assignment",
        entity_id=assignment_id,
        details={"period_id": row.period_id, "day": row.day, "block_id": row.block_id, "origin": row.origin.value},
    )
    db.delete(row)
    db.commit()
    logger.info("ASSIGNMENT DELETED | id=%s | period_id=%s", assignment_id, row.period_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
