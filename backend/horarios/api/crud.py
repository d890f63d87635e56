from typing import Any, Callable

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from horarios.api.deps import get_db
from horarios.api.pagination import paginate
from horarios.core.exceptions import ConflictError, ResourceNotFoundError, ValidationFailedError
from horarios.schemas.common import Page
from horarios.services.audit import log_activity

Reference = tuple[type, str]


def get_or_404(db: Session, model: type, entity_id: int, resource_type: str):
    entity = db.get(model, entity_id)
    if entity is None:
        raise ResourceNotFoundError(resource_type, entity_id)
    return entity


def ensure_exists(db: Session, model: type, entity_id: int | None, field_name: str) -> None:
    if entity_id is None:
        return
    if db.get(model, entity_id) is None:
        raise ValidationFailedError(
            f"{field_name} references unknown id {entity_id}",
            details={"rule": "INVALID_REFERENCE", "field": field_name, "id": entity_id},
        )


def ensure_unreferenced(db: Session, entity_id: int, resource_type: str, references: list[Reference]) -> None:
    for model, column_name in references:
        column = getattr(model, column_name)
        in_use = db.execute(select(column).where(column == entity_id).limit(1)).first()
        if in_use is not None:
            raise ConflictError(
                f"{resource_type} {entity_id} is still referenced by {model.__tablename__}",
                details={"resource": resource_type, "id": entity_id, "referenced_by": model.__tablename__},
            )


def update_data(payload: BaseModel, model: type) -> dict[str, Any]:
    """Fields explicitly sent in a partial update; null is refused for required columns."""
    data = payload.model_dump(exclude_unset=True)
    columns = model.__table__.columns
    for key, value in data.items():
        if value is None and key in columns and not columns[key].nullable:
            raise ValidationFailedError(
                f"{key} cannot be null",
                details={"field": key},
            )
    return data


def commit_or_conflict(db: Session, resource_type: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            f"{resource_type} conflicts with stored data",
            details={"resource": resource_type},
        ) from exc


def flush_or_conflict(db: Session, resource_type: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise ConflictError(
            f"{resource_type} conflicts with stored data",
            details={"resource": resource_type},
        ) from exc


def build_crud_router(
    *,
    model: type,
    resource_type: str,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    out_schema: type[BaseModel],
    foreign_keys: dict[str, type] | None = None,
    references: list[Reference] | None = None,
    prepare: Callable[[dict[str, Any]], dict[str, Any]] | None = None,
    check: Callable[[Any], None] | None = None,
) -> APIRouter:
    """Paged list, create, read, update and delete for a flat catalog table."""
    router = APIRouter()
    foreign_keys = foreign_keys or {}
    references = references or []
    prepare = prepare or (lambda data: data)
    entity_name = model.__tablename__

    def serialize(entity) -> dict:
        return out_schema.model_validate(entity).model_dump(mode="json")

    @router.get("/", response_model=Page[out_schema])
    def list_items(page: int = Query(default=1, ge=1), db: Session = Depends(get_db)) -> dict:
        return paginate(db, select(model).order_by(model.id), page=page, serialize=serialize)

    @router.post("/", response_model=out_schema, status_code=status.HTTP_201_CREATED)
    def create_item(payload: create_schema, db: Session = Depends(get_db)):
        data = payload.model_dump()
        for field_name, target in foreign_keys.items():
            ensure_exists(db, target, data.get(field_name), field_name)
        entity = model(**prepare(data))
        if check is not None:
            check(entity)
        db.add(entity)
        flush_or_conflict(db, resource_type)
        log_activity(db, action=f"{entity_name}.create", entity_type=entity_name, entity_id=entity.id)
        commit_or_conflict(db, resource_type)
        db.refresh(entity)
        return entity

    @router.get("/{item_id}", response_model=out_schema)
    def get_item(item_id: int, db: Session = Depends(get_db)):
        return get_or_404(db, model, item_id, resource_type)

    @router.api_route("/{item_id}", methods=["PUT", "PATCH"], response_model=out_schema)
    def update_item(item_id: int, payload: update_schema, db: Session = Depends(get_db)):
        entity = get_or_404(db, model, item_id, resource_type)
        data = update_data(payload, model)
        for field_name, target in foreign_keys.items():
            if field_name in data:
                ensure_exists(db, target, data[field_name], field_name)
        for key, value in prepare(data).items():
            setattr(entity, key, value)
        if check is not None:
            check(entity)
        if data:
            log_activity(db, action=f"{entity_name}.update", entity_type=entity_name, entity_id=item_id, details={"fields": sorted(data)})
        commit_or_conflict(db, resource_type)
        db.refresh(entity)
        return entity

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
    def delete_item(item_id: int, db: Session = Depends(get_db)) -> Response:
        entity = get_or_404(db, model, item_id, resource_type)
        ensure_unreferenced(db, item_id, resource_type, references)
        db.delete(entity)
        log_activity(db, action=f"{entity_name}.delete", entity_type=entity_name, entity_id=item_id)
        db.commit()
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
