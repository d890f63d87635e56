from __future__ import annotations

import math
from typing import Any, Callable

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from horarios.core.config import get_settings
from horarios.core.exceptions import ResourceNotFoundError


def paginate(
    db: Session,
    query: Select,
    *,
    page: int,
    serialize: Callable[[Any], Any],
    page_size: int | None = None,
) -> dict:
    """Slice a select into the `{count, next, previous, results}` page shape."""
    size = page_size or get_settings().page_size
    count = db.execute(select(func.count()).select_from(query.order_by(None).subquery())).scalar_one()
    last_page = max(1, math.ceil(count / size))
    if page > last_page:
        raise ResourceNotFoundError("Page", page, details={"count": count, "last_page": last_page})

    rows = db.execute(query.offset((page - 1) * size).limit(size)).scalars().all()
    return {
        "count": count,
        "next": page + 1 if page < last_page else None,
        "previous": page - 1 if page > 1 else None,
        "results": [serialize(row) for row in rows],
    }
