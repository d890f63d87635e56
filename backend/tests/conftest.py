import os
import tempfile
from datetime import date, time
from pathlib import Path

# The application engine is created at import time; point it at a scratch file first.
_SCRATCH_DIR = tempfile.mkdtemp(prefix="horarios-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite+pysqlite:///{Path(_SCRATCH_DIR) / 'app.db'}")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from horarios.api.deps import get_db
from horarios.db.base import Base
from horarios.main import app
from horarios.models import (
    AcademicUnit,
    Career,
    Classroom,
    Cycle,
    Group,
    GroupSubject,
    Period,
    Restriction,
    RestrictionKind,
    RoomType,
    Shift,
    Specialty,
    Subject,
    SubjectCareer,
    Teacher,
    TeacherAvailability,
    TimeBlock,
)
from horarios.services.generation_registry import generation_registry


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    generation_registry.clear()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    generation_registry.clear()


class Factory:
    """Builds small academic data sets directly through the session."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    def _save(self, entity):
        self.db.add(entity)
        self.db.commit()
        self.db.refresh(entity)
        return entity

    def unit(self, name: str | None = None) -> AcademicUnit:
        return self._save(AcademicUnit(name=name or f"Unit {self._next()}"))

    def career(self, unit: AcademicUnit | None = None, *, total_curriculum_hours: int = 240) -> Career:
        unit = unit or self.unit()
        seq = self._next()
        return self._save(
            Career(name=f"Career {seq}", code=f"CAR{seq}", total_curriculum_hours=total_curriculum_hours, unit_id=unit.id)
        )

    def cycle(self, career: Career, order: int) -> Cycle:
        return self._save(Cycle(name=f"Cycle {order}", order=order, career_id=career.id))

    def room_type(self, name: str | None = None) -> RoomType:
        return self._save(RoomType(name=name or f"Type {self._next()}"))

    def specialty(self, name: str | None = None) -> Specialty:
        return self._save(Specialty(name=name or f"Specialty {self._next()}"))

    def classroom(
        self,
        *,
        unit: AcademicUnit,
        room_type: RoomType,
        capacity: int = 40,
        location: str = "Building A",
        name: str | None = None,
    ) -> Classroom:
        return self._save(
            Classroom(
                name=name or f"Room {self._next()}",
                room_type_id=room_type.id,
                capacity=capacity,
                location=location,
                unit_id=unit.id,
            )
        )

    def subject(
        self,
        *,
        careers: list[Career],
        theory: int = 1,
        practice: int = 0,
        lab: int = 0,
        room_type: RoomType | None = None,
        specialties: list[Specialty] | None = None,
        cycle: Cycle | None = None,
        name: str | None = None,
    ) -> Subject:
        seq = self._next()
        subject = self._save(
            Subject(
                code=f"SUB{seq}",
                name=name or f"Subject {seq}",
                theory_hours=theory,
                practice_hours=practice,
                lab_hours=lab,
                required_room_type_id=room_type.id if room_type else None,
                required_specialty_ids=[item.id for item in specialties or []],
                cycle_id=cycle.id if cycle else None,
                is_active=True,
            )
        )
        for career in careers:
            self.db.add(SubjectCareer(subject_id=subject.id, career_id=career.id))
        self.db.commit()
        return subject

    def teacher(
        self,
        *,
        unit: AcademicUnit | None = None,
        specialties: list[Specialty] | None = None,
        max_weekly_hours: int = 20,
    ) -> Teacher:
        seq = self._next()
        return self._save(
            Teacher(
                code=f"DOC{seq}",
                first_names=f"Teacher{seq}",
                last_names="Test",
                email=f"teacher{seq}@example.com",
                max_weekly_hours=max_weekly_hours,
                unit_id=unit.id if unit else None,
                specialty_ids=[item.id for item in specialties or []],
            )
        )

    def period(self, name: str | None = None) -> Period:
        return self._save(
            Period(
                name=name or f"Period {self._next()}",
                start_date=date(2026, 3, 1),
                end_date=date(2026, 7, 31),
                is_active=True,
            )
        )

    def block(
        self,
        start: str,
        end: str,
        *,
        shift: Shift = Shift.morning,
        order: int = 0,
        day_of_week: int | None = None,
    ) -> TimeBlock:
        return self._save(
            TimeBlock(
                name=f"{start}-{end}",
                start_time=time.fromisoformat(start),
                end_time=time.fromisoformat(end),
                shift=shift,
                order=order,
                day_of_week=day_of_week,
            )
        )

    def morning_blocks(self, count: int = 4) -> list[TimeBlock]:
        return [
            self.block(f"{7 + index:02d}:00", f"{8 + index:02d}:00", order=index + 1)
            for index in range(count)
        ]

    def group(
        self,
        *,
        career: Career,
        period: Period,
        subjects: list[Subject],
        students: int = 30,
        preferred_shift: Shift = Shift.morning,
        direct_teacher: Teacher | None = None,
        code: str | None = None,
    ) -> Group:
        group = self._save(
            Group(
                code=code or f"G{self._next()}",
                career_id=career.id,
                period_id=period.id,
                estimated_students=students,
                preferred_shift=preferred_shift,
                direct_teacher_id=direct_teacher.id if direct_teacher else None,
            )
        )
        for subject in subjects:
            self.db.add(GroupSubject(group_id=group.id, subject_id=subject.id))
        self.db.commit()
        return group

    def availability(
        self,
        teacher: Teacher,
        period: Period,
        slots: list[tuple[int, TimeBlock]],
        *,
        available: bool = True,
    ) -> None:
        for day, block in slots:
            self.db.add(
                TeacherAvailability(
                    teacher_id=teacher.id,
                    period_id=period.id,
                    day=day,
                    block_id=block.id,
                    is_available=available,
                    preference=0,
                )
            )
        self.db.commit()

    def restriction(
        self,
        kind: RestrictionKind,
        *,
        entity_id_1: int | None = None,
        entity_id_2: int | None = None,
        value: float | None = None,
        period: Period | None = None,
        active: bool = True,
    ) -> Restriction:
        return self._save(
            Restriction(
                code=f"R{self._next()}",
                description=kind.value,
                kind=kind,
                entity_id_1=entity_id_1,
                entity_id_2=entity_id_2,
                parameter_value=value,
                period_id=period.id if period else None,
                is_active=active,
            )
        )


@pytest.fixture()
def factory(db_session):
    return Factory(db_session)
