from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.api.crud import ensure_exists, get_or_404, update_data
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.core.config import get_settings
from horarios.core.exceptions import ValidationFailedError
from horarios.models.availability import AvailabilityOrigin, TeacherAvailability
from horarios.models.period import Period, TimeBlock
from horarios.models.teacher import Teacher
from horarios.schemas.availability import (
    AvailabilityCreate,
    AvailabilityOut,
    AvailabilityUpdate,
    ImportResult,
    RowFailure,
)
from horarios.schemas.common import Page
from horarios.services.audit import log_activity
from horarios.services.availability import (
    import_availability_rows,
    parse_availability_workbook,
    upsert_availability,
)

router = APIRouter()
settings = get_settings()


def _serialize(row: TeacherAvailability) -> dict:
    return AvailabilityOut.model_validate(row).model_dump(mode="json")


@router.get("/disponibilidad-docentes", response_model=Page[AvailabilityOut])
def list_availability(
    page: int = Query(default=1, ge=1),
    teacher_id: int | None = None,
    period_id: int | None = None,
    day: int | None = Query(default=None, ge=1, le=6),
    docente: int | None = None,
    periodo: int | None = None,
    dia: int | None = Query(default=None, ge=1, le=6),
    db: Session = Depends(get_db),
) -> dict:
    # the administrative client filters with Spanish names
    teacher_id = teacher_id if teacher_id is not None else docente
    period_id = period_id if period_id is not None else periodo
    day = day if day is not None else dia
    query = select(TeacherAvailability).order_by(
        TeacherAvailability.teacher_id,
        TeacherAvailability.day,
        TeacherAvailability.block_id,
    )
    if teacher_id is not None:
        query = query.where(TeacherAvailability.teacher_id == teacher_id)
    if period_id is not None:
        query = query.where(TeacherAvailability.period_id == period_id)
    if day is not None:
        query = query.where(TeacherAvailability.day == day)
    return paginate(db, query, page=page, serialize=_serialize)


@router.post("/disponibilidad-docentes", response_model=AvailabilityOut, status_code=status.HTTP_201_CREATED)
def create_availability(payload: AvailabilityCreate, db: Session = Depends(get_db)) -> TeacherAvailability:
    get_or_404(db, Teacher, payload.teacher_id, "Teacher")
    get_or_404(db, Period, payload.period_id, "Period")
    block = get_or_404(db, TimeBlock, payload.block_id, "TimeBlock")
    if not block.applies_to(payload.day):
        raise ValidationFailedError(
            f"Block {block.id} is not scheduled on day {payload.day}",
            details={"rule": "INVALID_REFERENCE", "block_id": block.id, "day": payload.day},
        )
    record, created = upsert_availability(
        db,
        teacher_id=payload.teacher_id,
        period_id=payload.period_id,
        day=payload.day,
        block_id=payload.block_id,
        is_available=payload.is_available,
        preference=payload.preference,
        origin=AvailabilityOrigin.manual,
    )
    log_activity(
        db,
        action="availability.create" if created else "availability.update",
        entity_type="teacher_availability",
        entity_id=record.id,
        details={"is_available": record.is_available},
    )
    db.commit()
    db.refresh(record)
    return record


@router.get("/disponibilidad-docentes/{availability_id}", response_model=AvailabilityOut)
def get_availability(availability_id: int, db: Session = Depends(get_db)) -> TeacherAvailability:
    return get_or_404(db, TeacherAvailability, availability_id, "TeacherAvailability")


@router.patch("/disponibilidad-docentes/{availability_id}", response_model=AvailabilityOut)
def update_availability(
    availability_id: int,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
) -> TeacherAvailability:
    record = get_or_404(db, TeacherAvailability, availability_id, "TeacherAvailability")
    data = update_data(payload, TeacherAvailability)
    for key, value in data.items():
        if value is not None:
            setattr(record, key, value)
    record.origin = AvailabilityOrigin.manual
    log_activity(
        db,
        action="availability.update",
        entity_type="teacher_availability",
        entity_id=availability_id,
        details={"fields": sorted(data)},
    )
    db.commit()
    db.refresh(record)
    return record


@router.post("/importar-disponibilidad-excel", response_model=ImportResult)
def import_availability(
    file: UploadFile = File(...),
    period_id: int = Form(...),
    teacher_id: int = Form(...),
    db: Session = Depends(get_db),
) -> ImportResult:
    ensure_exists(db, Teacher, teacher_id, "teacher_id")
    ensure_exists(db, Period, period_id, "period_id")
    content = file.file.read()
    if not content:
        raise ValidationFailedError("Uploaded file is empty", details={"filename": file.filename})

    rows = parse_availability_workbook(content, max_rows=settings.max_import_rows)
    outcome = import_availability_rows(db, teacher_id=teacher_id, period_id=period_id, rows=rows)
    log_activity(
        db,
        action="availability.import",
        entity_type="teacher",
        entity_id=teacher_id,
        details={
            "period_id": period_id,
            "filename": file.filename,
            "imported": len(outcome.successes),
            "rejected": len(outcome.failures),
        },
    )
    db.commit()
    return ImportResult(
        status=outcome.status if outcome.total else "SUCCESS",
        total_rows=outcome.total,
        succeeded=len(outcome.successes),
        failed=len(outcome.failures),
        failures=[RowFailure(row=item.row, reason=item.reason) for item in outcome.failures],
    )
