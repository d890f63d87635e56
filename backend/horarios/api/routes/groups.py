from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from horarios.api.crud import commit_or_conflict, flush_or_conflict, ensure_exists, ensure_unreferenced, get_or_404, update_data
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.models.career import Career
from horarios.models.group import Group, GroupSubject
from horarios.models.period import Period
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.models.subject import Subject
from horarios.models.teacher import Teacher
from horarios.schemas.common import Page
from horarios.schemas.group import GroupCreate, GroupOut, GroupUpdate
from horarios.services.audit import log_activity

router = APIRouter()


def _subject_ids(db: Session, group_id: int) -> list[int]:
    return list(
        db.execute(
            select(GroupSubject.subject_id).where(GroupSubject.group_id == group_id).order_by(GroupSubject.subject_id)
        ).scalars()
    )


def _serialize(db: Session, group: Group) -> dict:
    payload = GroupOut.model_validate(group).model_dump(mode="json", exclude={"subject_ids"})
    payload["subject_ids"] = _subject_ids(db, group.id)
    return payload


def _replace_subjects(db: Session, group_id: int, subject_ids: list[int]) -> None:
    db.execute(delete(GroupSubject).where(GroupSubject.group_id == group_id))
    for subject_id in subject_ids:
        db.add(GroupSubject(group_id=group_id, subject_id=subject_id))


@router.get("/", response_model=Page[GroupOut])
def list_groups(
    page: int = Query(default=1, ge=1),
    period_id: int | None = None,
    career_id: int | None = None,
    db: Session = Depends(get_db),
) -> dict:
    query = select(Group).order_by(Group.code, Group.id)
    if period_id is not None:
        query = query.where(Group.period_id == period_id)
    if career_id is not None:
        query = query.where(Group.career_id == career_id)
    return paginate(db, query, page=page, serialize=lambda group: _serialize(db, group))


@router.post("/", response_model=GroupOut, status_code=status.HTTP_201_CREATED)
def create_group(payload: GroupCreate, db: Session = Depends(get_db)) -> dict:
    ensure_exists(db, Career, payload.career_id, "career_id")
    ensure_exists(db, Period, payload.period_id, "period_id")
    ensure_exists(db, Teacher, payload.direct_teacher_id, "direct_teacher_id")
    for subject_id in payload.subject_ids:
        ensure_exists(db, Subject, subject_id, "subject_ids")
    group = Group(**payload.model_dump(exclude={"subject_ids"}))
    db.add(group)
    flush_or_conflict(db, "Group")
    _replace_subjects(db, group.id, payload.subject_ids)
    log_activity(db, action="groups.create", entity_type="groups", entity_id=group.id)
    commit_or_conflict(db, "Group")
    db.refresh(group)
    return _serialize(db, group)


@router.get("/{group_id}", response_model=GroupOut)
def get_group(group_id: int, db: Session = Depends(get_db)) -> dict:
    return _serialize(db, get_or_404(db, Group, group_id, "Group"))


@router.api_route("/{group_id}", methods=["PUT", "PATCH"], response_model=GroupOut)
def update_group(group_id: int, payload: GroupUpdate, db: Session = Depends(get_db)) -> dict:
    group = get_or_404(db, Group, group_id, "Group")
    data = update_data(payload, Group)
    subject_ids = data.pop("subject_ids", None)
    if "career_id" in data:
        ensure_exists(db, Career, data["career_id"], "career_id")
    if "period_id" in data:
        ensure_exists(db, Period, data["period_id"], "period_id")
    if "direct_teacher_id" in data:
        ensure_exists(db, Teacher, data["direct_teacher_id"], "direct_teacher_id")
    if subject_ids is not None:
        subject_ids = sorted(set(subject_ids))
        for subject_id in subject_ids:
            ensure_exists(db, Subject, subject_id, "subject_ids")
    for key, value in data.items():
        setattr(group, key, value)
    if subject_ids is not None:
        _replace_subjects(db, group_id, subject_ids)
    log_activity(db, action="groups.update", entity_type="groups", entity_id=group_id, details={"fields": sorted(payload.model_fields_set)})
    commit_or_conflict(db, "Group")
    db.refresh(group)
    return _serialize(db, group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_group(group_id: int, db: Session = Depends(get_db)) -> Response:
    group = get_or_404(db, Group, group_id, "Group")
    ensure_unreferenced(db, group_id, "Group", [(ScheduleAssignment, "group_id")])
    db.execute(delete(GroupSubject).where(GroupSubject.group_id == group_id))
    db.delete(group)
    log_activity(db, action="groups.delete", entity_type="groups", entity_id=group_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
