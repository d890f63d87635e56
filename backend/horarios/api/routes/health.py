from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text

from horarios.db.bootstrap import missing_tables
from horarios.db.session import engine

router = APIRouter()


@router.get("/health")
def health() -> JSONResponse:
    db_ok = True
    db_error: str | None = None
    missing: list[str] = []
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing = missing_tables()
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = str(exc)

    ready = db_ok and not missing
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"ok": db_ok, "missing_tables": missing, "error": db_error},
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
