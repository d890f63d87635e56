from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from horarios.api.crud import commit_or_conflict, flush_or_conflict, ensure_exists, ensure_unreferenced, get_or_404, update_data
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.models.academic_unit import AcademicUnit
from horarios.models.availability import TeacherAvailability
from horarios.models.group import Group
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.models.teacher import Specialty, Teacher
from horarios.schemas.common import Page
from horarios.schemas.teacher import TeacherCreate, TeacherOut, TeacherUpdate
from horarios.services.audit import log_activity

router = APIRouter()


def _serialize(teacher: Teacher) -> dict:
    return TeacherOut.model_validate(teacher).model_dump(mode="json")


@router.get("/", response_model=Page[TeacherOut])
def list_teachers(
    page: int = Query(default=1, ge=1),
    unit_id: int | None = None,
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> dict:
    query = select(Teacher).order_by(Teacher.last_names, Teacher.first_names, Teacher.id)
    if unit_id is not None:
        query = query.where(Teacher.unit_id == unit_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Teacher.first_names.ilike(pattern),
                Teacher.last_names.ilike(pattern),
                Teacher.code.ilike(pattern),
            )
        )
    return paginate(db, query, page=page, serialize=_serialize)


@router.post("/", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)) -> Teacher:
    ensure_exists(db, AcademicUnit, payload.unit_id, "unit_id")
    for specialty_id in payload.specialty_ids:
        ensure_exists(db, Specialty, specialty_id, "specialty_ids")
    teacher = Teacher(**payload.model_dump())
    db.add(teacher)
    flush_or_conflict(db, "Teacher")
    log_activity(db, action="teachers.create", entity_type="teachers", entity_id=teacher.id)
    commit_or_conflict(db, "Teacher")
    db.refresh(teacher)
    return teacher


@router.get("/{teacher_id}", response_model=TeacherOut)
def get_teacher(teacher_id: int, db: Session = Depends(get_db)) -> Teacher:
    return get_or_404(db, Teacher, teacher_id, "Teacher")


@router.api_route("/{teacher_id}", methods=["PUT", "PATCH"], response_model=TeacherOut)
def update_teacher(teacher_id: int, payload: TeacherUpdate, db: Session = Depends(get_db)) -> Teacher:
    teacher = get_or_404(db, Teacher, teacher_id, "Teacher")
    data = update_data(payload, Teacher)
    if "unit_id" in data:
        ensure_exists(db, AcademicUnit, data["unit_id"], "unit_id")
    if data.get("specialty_ids") is not None:
        data["specialty_ids"] = sorted(set(data["specialty_ids"]))
        for specialty_id in data["specialty_ids"]:
            ensure_exists(db, Specialty, specialty_id, "specialty_ids")
    for key, value in data.items():
        setattr(teacher, key, value)
    log_activity(db, action="teachers.update", entity_type="teachers", entity_id=teacher_id, details={"fields": sorted(data)})
    commit_or_conflict(db, "Teacher")
    db.refresh(teacher)
    return teacher


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_teacher(teacher_id: int, db: Session = Depends(get_db)) -> Response:
    teacher = get_or_404(db, Teacher, teacher_id, "Teacher")
    ensure_unreferenced(
        db,
        teacher_id,
        "Teacher",
        [(ScheduleAssignment, "teacher_id"), (Group, "direct_teacher_id"), (TeacherAvailability, "teacher_id")],
    )
    db.delete(teacher)
    log_activity(db, action="teachers.delete", entity_type="teachers", entity_id=teacher_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
