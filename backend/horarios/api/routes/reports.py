from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from horarios.api.crud import get_or_404
from horarios.api.deps import get_db
from horarios.models.period import Period
from horarios.schemas.report import ScheduleGrid
from horarios.services.reporting import build_views, export_schedule_workbook

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/reportes-horarios", response_model=list[ScheduleGrid])
def schedule_report(
    period_id: int = Query(...),
    group_id: int | None = None,
    teacher_id: int | None = None,
    classroom_id: int | None = None,
    career_id: int | None = None,
    db: Session = Depends(get_db),
) -> list[ScheduleGrid]:
    return build_views(
        db,
        period_id,
        group_id=group_id,
        teacher_id=teacher_id,
        classroom_id=classroom_id,
        career_id=career_id,
    )


@router.get("/exportar-horarios-excel")
def export_schedule(
    period_id: int = Query(...),
    group_id: int | None = None,
    teacher_id: int | None = None,
    classroom_id: int | None = None,
    career_id: int | None = None,
    db: Session = Depends(get_db),
) -> Response:
    period = get_or_404(db, Period, period_id, "Period")
    views = build_views(
        db,
        period_id,
        group_id=group_id,
        teacher_id=teacher_id,
        classroom_id=classroom_id,
        career_id=career_id,
    )
    content = export_schedule_workbook(views)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d")
    filename = f"horarios_{period.id}_{stamp}.xlsx"
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
