from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from horarios.core.config import Settings, get_settings
from horarios.core.exceptions import (
    AppError,
    AvailabilityError,
    ConflictError,
    PolicyError,
    ResourceNotFoundError,
    ValidationFailedError,
)
from horarios.models.career import Career, Cycle
from horarios.models.group import Group, GroupSubject
from horarios.models.period import Period, TimeBlock
from horarios.models.room import Classroom
from horarios.models.schedule_assignment import AssignmentOrigin, ScheduleAssignment
from horarios.models.subject import Subject
from horarios.models.teacher import Teacher
from horarios.schemas.assignment import AssignmentCandidate
from horarios.schemas.common import DAY_VALUES
from horarios.services import availability, cycle_policy, restrictions
from horarios.services.audit import log_activity
from horarios.services.occupancy import Placement, ScheduleState

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("group_id", "subject_id", "teacher_id", "classroom_id", "period_id", "day", "block_id")


@dataclass
class ResolvedCandidate:
    group: Group
    subject: Subject
    teacher: Teacher
    classroom: Classroom
    period: Period
    block: TimeBlock
    day: int

    def placement(self) -> Placement:
        return Placement(
            group_id=self.group.id,
            subject_id=self.subject.id,
            teacher_id=self.teacher.id,
            classroom_id=self.classroom.id,
            day=self.day,
            block_id=self.block.id,
            origin=self.origin,
        )

    @property
    def origin(self) -> AssignmentOrigin:
        if self.group.direct_teacher_id is not None and self.group.direct_teacher_id == self.teacher.id:
            return AssignmentOrigin.override
        return AssignmentOrigin.manual


def _require(db: Session, model, resource_type: str, entity_id: int):
    entity = db.get(model, entity_id)
    if entity is None:
        raise ResourceNotFoundError(resource_type, entity_id, details={"rule": "NOT_FOUND"})
    return entity


def _resolve(db: Session, candidate: AssignmentCandidate) -> ResolvedCandidate:
    for field_name in REQUIRED_FIELDS:
        if getattr(candidate, field_name) is None:
            raise ValidationFailedError(
                f"Field '{field_name}' is required",
                details={"rule": "MISSING_FIELD", "field": field_name},
            )

    group = _require(db, Group, "Group", candidate.group_id)
    subject = _require(db, Subject, "Subject", candidate.subject_id)
    teacher = _require(db, Teacher, "Teacher", candidate.teacher_id)
    classroom = _require(db, Classroom, "Classroom", candidate.classroom_id)
    period = _require(db, Period, "Period", candidate.period_id)
    block = _require(db, TimeBlock, "TimeBlock", candidate.block_id)

    def invalid(message: str, **details) -> ValidationFailedError:
        return ValidationFailedError(message, details={"rule": "INVALID_REFERENCE", **details})

    if group.period_id != period.id:
        raise invalid(f"Group {group.code} does not belong to period {period.id}", group_id=group.id)
    linked = db.execute(
        select(GroupSubject.id).where(GroupSubject.group_id == group.id, GroupSubject.subject_id == subject.id)
    ).first()
    if linked is None:
        raise invalid(f"Subject {subject.code} is not part of group {group.code}", subject_id=subject.id)
    if candidate.day not in DAY_VALUES:
        raise invalid(f"Day {candidate.day} is outside Monday-Saturday (1-6)", day=candidate.day)
    if not block.applies_to(candidate.day):
        raise invalid(f"Block {block.id} is not scheduled on day {candidate.day}", block_id=block.id)

    return ResolvedCandidate(
        group=group,
        subject=subject,
        teacher=teacher,
        classroom=classroom,
        period=period,
        block=block,
        day=candidate.day,
    )


def validate_assignment(
    db: Session,
    candidate: AssignmentCandidate,
    *,
    settings: Settings | None = None,
) -> ResolvedCandidate:
    """Run the manual placement rules in order and stop at the first failure."""
    settings = settings or get_settings()
    resolved = _resolve(db, candidate)
    state = ScheduleState.load(db, resolved.period.id)
    day, block_id = resolved.day, resolved.block.id

    taken = state.group_busy(resolved.group.id, day, block_id)
    if taken is not None:
        raise ConflictError(
            f"Group {resolved.group.code} already has a class on day {day}, block {block_id}",
            details={"rule": "GROUP_ALREADY_SCHEDULED", "group_id": resolved.group.id, "day": day, "block_id": block_id},
        )

    if not availability.is_available(
        db,
        teacher_id=resolved.teacher.id,
        period_id=resolved.period.id,
        day=day,
        block_id=block_id,
    ):
        raise AvailabilityError(
            f"Teacher {resolved.teacher.full_name} is not available on day {day}, block {block_id}",
            details={"rule": "TEACHER_UNAVAILABLE", "teacher_id": resolved.teacher.id, "day": day, "block_id": block_id},
        )

    teacher_taken = state.teacher_busy(resolved.teacher.id, day, block_id)
    room_taken = state.room_busy(resolved.classroom.id, day, block_id)
    if teacher_taken is not None or room_taken is not None:
        axis = "teacher" if teacher_taken is not None else "classroom"
        raise ConflictError(
            f"The {axis} is already booked on day {day}, block {block_id}",
            details={"rule": "RESOURCE_CONFLICT", "axis": axis, "day": day, "block_id": block_id},
        )

    cycle = db.get(Cycle, resolved.subject.cycle_id) if resolved.subject.cycle_id is not None else None
    career = db.get(Career, resolved.group.career_id)
    cycle_number = cycle_policy.cycle_number_for(
        mode=settings.cycle_policy_mode,
        subject=resolved.subject,
        cycle=cycle,
        career=career,
    )
    if not cycle_policy.block_fits_cycle(resolved.block, cycle_number):
        raise PolicyError(
            cycle_policy.violation_message(resolved.block, cycle_number),
            details={"rule": "CYCLE_TIME_WINDOW_VIOLATION", "cycle": cycle_number, "block_id": block_id},
        )

    rules = restrictions.applicable_restrictions(db, resolved.period.id)
    violated = restrictions.check_hard(
        rules,
        resolved.placement(),
        state,
        overrides=settings.restriction_severity_overrides,
    )
    if violated is not None:
        raise PolicyError(
            f"Restriction {violated.code} ({violated.kind.value}) forbids this placement",
            details={"rule": "RESTRICTION_VIOLATION", "restriction": violated.code, "kind": violated.kind.value},
        )

    return resolved


def create_manual_assignment(
    db: Session,
    candidate: AssignmentCandidate,
    *,
    settings: Settings | None = None,
) -> ScheduleAssignment:
    resolved = validate_assignment(db, candidate, settings=settings)
    row = ScheduleAssignment(
        group_id=resolved.group.id,
        subject_id=resolved.subject.id,
        teacher_id=resolved.teacher.id,
        classroom_id=resolved.classroom.id,
        period_id=resolved.period.id,
        day=resolved.day,
        block_id=resolved.block.id,
        origin=resolved.origin,
    )
    db.add(row)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        logger.warning(
            "ASSIGNMENT RACE | period_id=%s | day=%s | block_id=%s",
            resolved.period.id,
            resolved.day,
            resolved.block.id,
        )
        raise ConflictError(
            "Another assignment took this slot concurrently",
            details={"rule": "RESOURCE_CONFLICT", "day": resolved.day, "block_id": resolved.block.id},
        ) from exc

    log_activity(
        db,
        action="assignment.create",
        entity_type="schedule_assignment",
        entity_id=row.id,
        details={"origin": row.origin.value, "period_id": row.period_id, "day": row.day, "block_id": row.block_id},
    )
    db.commit()
    db.refresh(row)
    logger.info(
        "ASSIGNMENT CREATED | id=%s | group_id=%s | teacher_id=%s | day=%s | block_id=%s",
        row.id,
        row.group_id,
        row.teacher_id,
        row.day,
        row.block_id,
    )
    return row


def check_assignment(db: Session, candidate: AssignmentCandidate, *, settings: Settings | None = None) -> dict:
    """Dry-run form of the validator; never writes."""
    try:
        validate_assignment(db, candidate, settings=settings)
    except AppError as exc:
        return {
            "valid": False,
            "code": exc.code,
            "rule": exc.details.get("rule"),
            "message": exc.message,
            "details": exc.details,
        }
    return {"valid": True, "code": None, "rule": None, "message": None, "details": {}}
