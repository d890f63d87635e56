from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from horarios.api.crud import commit_or_conflict, flush_or_conflict, ensure_exists, ensure_unreferenced, get_or_404, update_data
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.core.exceptions import ValidationFailedError
from horarios.models.career import Career, Cycle
from horarios.models.group import GroupSubject
from horarios.models.room import RoomType
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.models.subject import Subject, SubjectCareer
from horarios.models.teacher import Specialty
from horarios.schemas.common import Page
from horarios.schemas.subject import SubjectCreate, SubjectOut, SubjectUpdate
from horarios.services.audit import log_activity

router = APIRouter()


def _career_ids(db: Session, subject_id: int) -> list[int]:
    return list(
        db.execute(
            select(SubjectCareer.career_id).where(SubjectCareer.subject_id == subject_id).order_by(SubjectCareer.career_id)
        ).scalars()
    )


def _serialize(db: Session, subject: Subject) -> dict:
    payload = SubjectOut.model_validate(subject).model_dump(mode="json", exclude={"career_ids"})
    payload["career_ids"] = _career_ids(db, subject.id)
    return payload


def _validate_links(db: Session, *, career_ids: list[int], cycle_id: int | None, room_type_id: int | None, specialty_ids: list[int]) -> None:
    for career_id in career_ids:
        ensure_exists(db, Career, career_id, "career_ids")
    ensure_exists(db, RoomType, room_type_id, "required_room_type_id")
    for specialty_id in specialty_ids:
        ensure_exists(db, Specialty, specialty_id, "required_specialty_ids")
    if cycle_id is None:
        return
    cycle = db.get(Cycle, cycle_id)
    if cycle is None:
        ensure_exists(db, Cycle, cycle_id, "cycle_id")
    if len(career_ids) != 1:
        raise ValidationFailedError(
            "A cycle can only be set when the subject belongs to exactly one career",
            details={"field": "cycle_id", "career_ids": career_ids},
        )
    if cycle.career_id != career_ids[0]:
        raise ValidationFailedError(
            f"Cycle {cycle_id} does not belong to career {career_ids[0]}",
            details={"field": "cycle_id"},
        )


def _replace_careers(db: Session, subject_id: int, career_ids: list[int]) -> None:
    db.execute(delete(SubjectCareer).where(SubjectCareer.subject_id == subject_id))
    for career_id in career_ids:
        db.add(SubjectCareer(subject_id=subject_id, career_id=career_id))


@router.get("/", response_model=Page[SubjectOut])
def list_subjects(
    page: int = Query(default=1, ge=1),
    career_id: int | None = None,
    is_active: bool | None = None,
    db: Session = Depends(get_db),
) -> dict:
    query = select(Subject).order_by(Subject.code)
    if career_id is not None:
        query = query.where(
            Subject.id.in_(select(SubjectCareer.subject_id).where(SubjectCareer.career_id == career_id))
        )
    if is_active is not None:
        query = query.where(Subject.is_active.is_(is_active))
    return paginate(db, query, page=page, serialize=lambda subject: _serialize(db, subject))


@router.post("/", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(payload: SubjectCreate, db: Session = Depends(get_db)) -> dict:
    _validate_links(
        db,
        career_ids=payload.career_ids,
        cycle_id=payload.cycle_id,
        room_type_id=payload.required_room_type_id,
        specialty_ids=payload.required_specialty_ids,
    )
    subject = Subject(**payload.model_dump(exclude={"career_ids"}))
    db.add(subject)
    flush_or_conflict(db, "Subject")
    _replace_careers(db, subject.id, payload.career_ids)
    log_activity(db, action="subjects.create", entity_type="subjects", entity_id=subject.id)
    commit_or_conflict(db, "Subject")
    db.refresh(subject)
    return _serialize(db, subject)


@router.get("/{subject_id}", response_model=SubjectOut)
def get_subject(subject_id: int, db: Session = Depends(get_db)) -> dict:
    return _serialize(db, get_or_404(db, Subject, subject_id, "Subject"))


@router.api_route("/{subject_id}", methods=["PUT", "PATCH"], response_model=SubjectOut)
def update_subject(subject_id: int, payload: SubjectUpdate, db: Session = Depends(get_db)) -> dict:
    subject = get_or_404(db, Subject, subject_id, "Subject")
    data = update_data(payload, Subject)
    career_ids = data.pop("career_ids", None)
    if career_ids is not None:
        career_ids = sorted(set(career_ids))
    effective_careers = career_ids if career_ids is not None else _career_ids(db, subject_id)
    _validate_links(
        db,
        career_ids=effective_careers,
        cycle_id=data.get("cycle_id", subject.cycle_id),
        room_type_id=data.get("required_room_type_id"),
        specialty_ids=data.get("required_specialty_ids") or [],
    )
    if "code" in data and data["code"]:
        data["code"] = data["code"].strip().upper()
    for key, value in data.items():
        setattr(subject, key, value)
    if career_ids is not None:
        _replace_careers(db, subject_id, career_ids)
    log_activity(db, action="subjects.update", entity_type="subjects", entity_id=subject_id, details={"fields": sorted(payload.model_fields_set)})
    commit_or_conflict(db, "Subject")
    db.refresh(subject)
    return _serialize(db, subject)


@router.delete("/{subject_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_subject(subject_id: int, db: Session = Depends(get_db)) -> Response:
    subject = get_or_404(db, Subject, subject_id, "Subject")
    ensure_unreferenced(db, subject_id, "Subject", [(ScheduleAssignment, "subject_id"), (GroupSubject, "subject_id")])
    db.execute(delete(SubjectCareer).where(SubjectCareer.subject_id == subject_id))
    db.delete(subject)
    log_activity(db, action="subjects.delete", entity_type="subjects", entity_id=subject_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
