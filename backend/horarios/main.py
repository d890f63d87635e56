from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from horarios.api.routes import (
    assignments,
    availability,
    catalog,
    generation,
    groups,
    health,
    reports,
    restrictions,
    subjects,
    teachers,
)
from horarios.core.config import get_settings
from horarios.core.exceptions import AppError
from horarios.core.logging import setup_logging
from horarios.core.middleware import RequestLoggingMiddleware, RequestSizeLimitMiddleware
from horarios.db.bootstrap import ensure_schema

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(settings)
    ensure_schema()
    logger.info("STARTUP | project=%s | environment=%s", settings.project_name, settings.environment)
    yield


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("APP ERROR | path=%s | code=%s | message=%s", request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
            "type": error.get("type", ""),
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"code": "VALIDATION_ERROR", "message": "Request validation failed", "details": {"errors": errors}},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("UNHANDLED ERROR | method=%s | path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"code": "INTERNAL_ERROR", "message": "Internal server error", "details": {}},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(RequestLoggingMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

api = settings.api_prefix
app.include_router(health.router, prefix=api, tags=["health"])
app.include_router(catalog.academic_units, prefix=f"{api}/unidades-academicas", tags=["academic-units"])
app.include_router(catalog.careers, prefix=f"{api}/carreras", tags=["careers"])
app.include_router(catalog.cycles, prefix=f"{api}/ciclos", tags=["cycles"])
app.include_router(catalog.room_types, prefix=f"{api}/tipos-espacio", tags=["room-types"])
app.include_router(catalog.classrooms, prefix=f"{api}/espacios-fisicos", tags=["classrooms"])
app.include_router(catalog.specialties, prefix=f"{api}/especialidades", tags=["specialties"])
app.include_router(catalog.periods, prefix=f"{api}/periodos-academicos", tags=["periods"])
app.include_router(catalog.time_blocks, prefix=f"{api}/bloques-horarios", tags=["time-blocks"])
app.include_router(subjects.router, prefix=f"{api}/materias", tags=["subjects"])
app.include_router(teachers.router, prefix=f"{api}/docentes", tags=["teachers"])
app.include_router(groups.router, prefix=f"{api}/grupos", tags=["groups"])
app.include_router(restrictions.router, prefix=f"{api}/configuracion-restricciones", tags=["restrictions"])
app.include_router(assignments.router, prefix=f"{api}/horarios-asignados", tags=["assignments"])
app.include_router(availability.router, prefix=api, tags=["availability"])
app.include_router(generation.router, prefix=api, tags=["generation"])
app.include_router(reports.router, prefix=api, tags=["reports"])
