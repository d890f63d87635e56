from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from horarios.api.crud import get_or_404
from horarios.api.deps import get_db
from horarios.models.period import Period
from horarios.schemas.generation import GenerationProgress, GenerationReport, GenerationRequest
from horarios.services.generation_registry import generation_registry
from horarios.services.scheduling_engine import generate_schedule

router = APIRouter()


@router.post("/generar-horario-automatico", response_model=GenerationReport)
def generate(payload: GenerationRequest, db: Session = Depends(get_db)) -> GenerationReport:
    return generate_schedule(db, payload.period_id, registry=generation_registry)


@router.get("/generar-horario-automatico/{period_id}/progreso", response_model=GenerationProgress)
def generation_progress(period_id: int, db: Session = Depends(get_db)) -> GenerationProgress:
    get_or_404(db, Period, period_id, "Period")
    state = generation_registry.snapshot(period_id)
    return GenerationProgress(
        period_id=period_id,
        running=state.running,
        progress=state.progress,
        phase=state.phase,
        updated_at=state.updated_at,
    )
