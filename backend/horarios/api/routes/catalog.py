from datetime import time

from horarios.api.crud import build_crud_router
from horarios.core.exceptions import ValidationFailedError
from horarios.models.academic_unit import AcademicUnit
from horarios.models.availability import TeacherAvailability
from horarios.models.career import Career, Cycle
from horarios.models.group import Group
from horarios.models.period import Period, TimeBlock
from horarios.models.room import Classroom, RoomType
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.models.subject import Subject, SubjectCareer
from horarios.models.teacher import Specialty, Teacher
from horarios.schemas.academic import (
    AcademicUnitCreate,
    AcademicUnitOut,
    AcademicUnitUpdate,
    CareerCreate,
    CareerOut,
    CareerUpdate,
    CycleCreate,
    CycleOut,
    CycleUpdate,
    RoomTypeCreate,
    RoomTypeOut,
    RoomTypeUpdate,
    SpecialtyCreate,
    SpecialtyOut,
    SpecialtyUpdate,
)
from horarios.schemas.classroom import ClassroomCreate, ClassroomOut, ClassroomUpdate
from horarios.schemas.period import PeriodCreate, PeriodOut, PeriodUpdate, TimeBlockCreate, TimeBlockOut, TimeBlockUpdate


def _parse_block_times(data: dict) -> dict:
    for key in ("start_time", "end_time"):
        if isinstance(data.get(key), str):
            data[key] = time.fromisoformat(data[key])
    return data


def _check_block(block: TimeBlock) -> None:
    if block.end_time <= block.start_time:
        raise ValidationFailedError("end_time must be after start_time", details={"field": "end_time"})


def _check_period(period: Period) -> None:
    if period.end_date <= period.start_date:
        raise ValidationFailedError("end_date must be after start_date", details={"field": "end_date"})


academic_units = build_crud_router(
    model=AcademicUnit,
    resource_type="AcademicUnit",
    create_schema=AcademicUnitCreate,
    update_schema=AcademicUnitUpdate,
    out_schema=AcademicUnitOut,
    references=[(Career, "unit_id"), (Classroom, "unit_id"), (Teacher, "unit_id")],
)

careers = build_crud_router(
    model=Career,
    resource_type="Career",
    create_schema=CareerCreate,
    update_schema=CareerUpdate,
    out_schema=CareerOut,
    foreign_keys={"unit_id": AcademicUnit},
    references=[(Cycle, "career_id"), (Group, "career_id"), (SubjectCareer, "career_id")],
)

cycles = build_crud_router(
    model=Cycle,
    resource_type="Cycle",
    create_schema=CycleCreate,
    update_schema=CycleUpdate,
    out_schema=CycleOut,
    foreign_keys={"career_id": Career},
    references=[(Subject, "cycle_id")],
)

room_types = build_crud_router(
    model=RoomType,
    resource_type="RoomType",
    create_schema=RoomTypeCreate,
    update_schema=RoomTypeUpdate,
    out_schema=RoomTypeOut,
    references=[(Classroom, "room_type_id"), (Subject, "required_room_type_id")],
)

specialties = build_crud_router(
    model=Specialty,
    resource_type="Specialty",
    create_schema=SpecialtyCreate,
    update_schema=SpecialtyUpdate,
    out_schema=SpecialtyOut,
)

classrooms = build_crud_router(
    model=Classroom,
    resource_type="Classroom",
    create_schema=ClassroomCreate,
    update_schema=ClassroomUpdate,
    out_schema=ClassroomOut,
    foreign_keys={"room_type_id": RoomType, "unit_id": AcademicUnit},
    references=[(ScheduleAssignment, "classroom_id")],
)

periods = build_crud_router(
    model=Period,
    resource_type="Period",
    create_schema=PeriodCreate,
    update_schema=PeriodUpdate,
    out_schema=PeriodOut,
    references=[(Group, "period_id"), (ScheduleAssignment, "period_id"), (TeacherAvailability, "period_id")],
    check=_check_period,
)

time_blocks = build_crud_router(
    model=TimeBlock,
    resource_type="TimeBlock",
    create_schema=TimeBlockCreate,
    update_schema=TimeBlockUpdate,
    out_schema=TimeBlockOut,
    references=[(ScheduleAssignment, "block_id"), (TeacherAvailability, "block_id")],
    prepare=_parse_block_times,
    check=_check_block,
)
