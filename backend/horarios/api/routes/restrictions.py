from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.api.crud import commit_or_conflict, flush_or_conflict, ensure_exists, get_or_404, update_data
from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.models.period import Period
from horarios.models.restriction import Restriction, RestrictionKind
from horarios.schemas.common import Page
from horarios.schemas.restriction import RestrictionCreate, RestrictionOut, RestrictionUpdate
from horarios.services.audit import log_activity
from horarios.services.restrictions import severity_of

router = APIRouter()


def _serialize(restriction: Restriction) -> dict:
    return RestrictionOut(
        id=restriction.id,
        code=restriction.code,
        description=restriction.description or "",
        kind=restriction.kind,
        severity=severity_of(restriction.kind),
        entity_id_1=restriction.entity_id_1,
        entity_id_2=restriction.entity_id_2,
        parameter_value=restriction.parameter_value,
        period_id=restriction.period_id,
        is_active=restriction.is_active,
    ).model_dump(mode="json")


@router.get("/", response_model=Page[RestrictionOut])
def list_restrictions(
    page: int = Query(default=1, ge=1),
    period_id: int | None = None,
    kind: RestrictionKind | None = None,
    is_active: bool | None = None,
    db: Session = Depends(get_db),
) -> dict:
    query = select(Restriction).order_by(Restriction.id)
    if period_id is not None:
        query = query.where(Restriction.period_id == period_id)
    if kind is not None:
        query = query.where(Restriction.kind == kind)
    if is_active is not None:
        query = query.where(Restriction.is_active.is_(is_active))
    return paginate(db, query, page=page, serialize=_serialize)


@router.post("/", response_model=RestrictionOut, status_code=status.HTTP_201_CREATED)
def create_restriction(payload: RestrictionCreate, db: Session = Depends(get_db)) -> dict:
    ensure_exists(db, Period, payload.period_id, "period_id")
    restriction = Restriction(**payload.model_dump())
    db.add(restriction)
    flush_or_conflict(db, "Restriction")
    log_activity(
        db,
        action="restrictions.create",
        entity_type="restrictions",
        entity_id=restriction.id,
        details={"code": restriction.code, "kind": restriction.kind.value},
    )
    commit_or_conflict(db, "Restriction")
    db.refresh(restriction)
    return _serialize(restriction)


@router.get("/{restriction_id}", response_model=RestrictionOut)
def get_restriction(restriction_id: int, db: Session = Depends(get_db)) -> dict:
    return _serialize(get_or_404(db, Restriction, restriction_id, "Restriction"))


@router.api_route("/{restriction_id}", methods=["PUT", "PATCH"], response_model=RestrictionOut)
def update_restriction(restriction_id: int, payload: RestrictionUpdate, db: Session = Depends(get_db)) -> dict:
    restriction = get_or_404(db, Restriction, restriction_id, "Restriction")
    data = update_data(payload, Restriction)
    if "period_id" in data:
        ensure_exists(db, Period, data["period_id"], "period_id")
    if data.get("code"):
        data["code"] = data["code"].strip().upper()
    for key, value in data.items():
        setattr(restriction, key, value)
    log_activity(db, action="restrictions.update", entity_type="restrictions", entity_id=restriction_id, details={"fields": sorted(data)})
    commit_or_conflict(db, "Restriction")
    db.refresh(restriction)
    return _serialize(restriction)


@router.delete("/{restriction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_restriction(restriction_id: int, db: Session = Depends(get_db)) -> Response:
    restriction = get_or_404(db, Restriction, restriction_id, "Restriction")
    db.delete(restriction)
    log_activity(db, action="restrictions.delete", entity_type="restrictions", entity_id=restriction_id)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
