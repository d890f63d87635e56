"""Seed a small demo faculty for the timetable generator.

Run:
  PYTHONPATH=backend python scripts/seed_demo_data.py
"""

from __future__ import annotations

from datetime import date, time
import os

from sqlalchemy import select

from horarios.db.bootstrap import ensure_schema
from horarios.db.session import SessionLocal
from horarios.models import (
    AcademicUnit,
    AvailabilityOrigin,
    Career,
    Classroom,
    Cycle,
    Group,
    GroupSubject,
    Period,
    RoomType,
    Shift,
    Specialty,
    Subject,
    SubjectCareer,
    Teacher,
    TeacherAvailability,
    TimeBlock,
)

PERIOD_NAME = os.getenv("SEED_PERIOD_NAME", "2026-1").strip() or "2026-1"
GROUPS_PER_CYCLE = max(1, int(os.getenv("SEED_GROUPS_PER_CYCLE", "2")))
WORKING_DAYS = [1, 2, 3, 4, 5]

UNIT_NAME = "Facultad de Ingenieria"
CAREER = ("Ingenieria de Sistemas", "ISI", 3600)
ROOM_TYPES = ["Aula", "Laboratorio"]
SPECIALTIES = ["Matematicas", "Programacion", "Redes", "Humanidades"]

# (start, end, shift)
BLOCKS = [
    ("07:00", "08:00", Shift.morning),
    ("08:00", "09:00", Shift.morning),
    ("09:00", "10:00", Shift.morning),
    ("10:00", "11:00", Shift.morning),
    ("11:00", "12:00", Shift.morning),
    ("13:00", "14:00", Shift.afternoon),
    ("14:00", "15:00", Shift.afternoon),
    ("15:00", "16:00", Shift.afternoon),
    ("18:00", "19:00", Shift.evening),
    ("19:00", "20:00", Shift.evening),
]

# code, name, cycle, theory, practice, lab, specialty, room type
SUBJECTS = [
    ("MAT101", "Calculo I", 1, 3, 1, 0, "Matematicas", None),
    ("PRG101", "Fundamentos de Programacion", 1, 2, 0, 2, "Programacion", "Laboratorio"),
    ("HUM101", "Comunicacion Oral y Escrita", 1, 2, 0, 0, "Humanidades", None),
    ("MAT201", "Algebra Lineal", 4, 3, 0, 0, "Matematicas", None),
    ("PRG201", "Estructuras de Datos", 4, 2, 0, 2, "Programacion", "Laboratorio"),
    ("RED301", "Redes de Computadoras", 7, 2, 0, 2, "Redes", "Laboratorio"),
]

# code, first names, last names, specialties, max weekly hours, available block indexes
TEACHERS = [
    ("DOC001", "Maria", "Cordero", ["Matematicas"], 20, range(0, 8)),
    ("DOC002", "Jorge", "Salinas", ["Matematicas", "Humanidades"], 16, range(0, 10)),
    ("DOC003", "Lucia", "Paredes", ["Programacion"], 20, range(0, 10)),
    ("DOC004", "Andres", "Vega", ["Programacion", "Redes"], 20, range(5, 10)),
    ("DOC005", "Carla", "Mendez", ["Humanidades"], 10, range(0, 5)),
]

ROOMS = [
    ("A-101", "Aula", 40, "Bloque A"),
    ("A-102", "Aula", 40, "Bloque A"),
    ("B-201", "Aula", 35, "Bloque B"),
    ("LAB-1", "Laboratorio", 30, "Bloque C"),
    ("LAB-2", "Laboratorio", 30, "Bloque C"),
]


def get_or_create(session, model, *, defaults: dict | None = None, **filters):
    instance = session.execute(select(model).filter_by(**filters)).scalar_one_or_none()
    if instance is not None:
        return instance, False
    instance = model(**filters, **(defaults or {}))
    session.add(instance)
    session.flush()
    return instance, True


def seed_catalogs(session) -> dict:
    unit, _ = get_or_create(session, AcademicUnit, name=UNIT_NAME)
    career, _ = get_or_create(
        session,
        Career,
        code=CAREER[1],
        defaults={"name": CAREER[0], "total_curriculum_hours": CAREER[2], "unit_id": unit.id},
    )
    room_types = {name: get_or_create(session, RoomType, name=name)[0] for name in ROOM_TYPES}
    specialties = {name: get_or_create(session, Specialty, name=name)[0] for name in SPECIALTIES}
    cycles = {
        order: get_or_create(session, Cycle, career_id=career.id, order=order, defaults={"name": f"Ciclo {order}"})[0]
        for order in sorted({item[2] for item in SUBJECTS})
    }
    for name, type_name, capacity, location in ROOMS:
        get_or_create(
            session,
            Classroom,
            name=name,
            defaults={
                "room_type_id": room_types[type_name].id,
                "capacity": capacity,
                "location": location,
                "unit_id": unit.id,
            },
        )
    return {"unit": unit, "career": career, "room_types": room_types, "specialties": specialties, "cycles": cycles}


def seed_blocks(session) -> list[TimeBlock]:
    blocks = []
    for index, (start, end, shift) in enumerate(BLOCKS, start=1):
        block, _ = get_or_create(
            session,
            TimeBlock,
            start_time=time.fromisoformat(start),
            end_time=time.fromisoformat(end),
            defaults={"name": f"{start}-{end}", "shift": shift, "order": index},
        )
        blocks.append(block)
    return blocks


def seed_subjects(session, catalogs: dict) -> dict[str, Subject]:
    career = catalogs["career"]
    subjects = {}
    for code, name, cycle, theory, practice, lab, specialty, room_type in SUBJECTS:
        subject, _ = get_or_create(
            session,
            Subject,
            code=code,
            defaults={
                "name": name,
                "theory_hours": theory,
                "practice_hours": practice,
                "lab_hours": lab,
                "cycle_id": catalogs["cycles"][cycle].id,
                "required_specialty_ids": [catalogs["specialties"][specialty].id],
                "required_room_type_id": catalogs["room_types"][room_type].id if room_type else None,
            },
        )
        get_or_create(session, SubjectCareer, subject_id=subject.id, career_id=career.id)
        subjects[code] = subject
    return subjects


def seed_teachers(session, catalogs: dict, period: Period, blocks: list[TimeBlock]) -> int:
    slots = 0
    for code, first, last, specialties, max_hours, block_indexes in TEACHERS:
        teacher, _ = get_or_create(
            session,
            Teacher,
            code=code,
            defaults={
                "first_names": first,
                "last_names": last,
                "email": f"{code.lower()}@demo.edu",
                "max_weekly_hours": max_hours,
                "unit_id": catalogs["unit"].id,
                "specialty_ids": sorted(catalogs["specialties"][name].id for name in specialties),
            },
        )
        for day in WORKING_DAYS:
            for index in block_indexes:
                _, created = get_or_create(
                    session,
                    TeacherAvailability,
                    teacher_id=teacher.id,
                    period_id=period.id,
                    day=day,
                    block_id=blocks[index].id,
                    defaults={"is_available": True, "preference": 0, "origin": AvailabilityOrigin.imported},
                )
                slots += int(created)
    return slots


def seed_groups(session, catalogs: dict, period: Period, subjects: dict[str, Subject]) -> int:
    shifts = {1: Shift.morning, 4: Shift.afternoon, 7: Shift.evening}
    created_groups = 0
    by_cycle: dict[int, list[Subject]] = {}
    for code, _, cycle, *_ in SUBJECTS:
        by_cycle.setdefault(cycle, []).append(subjects[code])
    for cycle, cycle_subjects in sorted(by_cycle.items()):
        for index in range(GROUPS_PER_CYCLE):
            group, created = get_or_create(
                session,
                Group,
                period_id=period.id,
                code=f"{CAREER[1]}-{cycle}{chr(ord('A') + index)}",
                defaults={
                    "career_id": catalogs["career"].id,
                    "estimated_students": 28,
                    "preferred_shift": shifts.get(cycle, Shift.morning),
                },
            )
            created_groups += int(created)
            for subject in cycle_subjects:
                get_or_create(session, GroupSubject, group_id=group.id, subject_id=subject.id)
    return created_groups


def main() -> None:
    ensure_schema()
    with SessionLocal() as session:
        catalogs = seed_catalogs(session)
        blocks = seed_blocks(session)
        period, _ = get_or_create(
            session,
            Period,
            name=PERIOD_NAME,
            defaults={"start_date": date(2026, 3, 2), "end_date": date(2026, 7, 31), "is_active": True},
        )
        subjects = seed_subjects(session, catalogs)
        slots = seed_teachers(session, catalogs, period, blocks)
        groups = seed_groups(session, catalogs, period, subjects)
        session.commit()

        print(f"Seeded period {period.name} (id={period.id})")
        print(f"New groups: {groups} | new availability slots: {slots}")


if __name__ == "__main__":
    main()
