import pytest

from horarios.core.config import Settings
from horarios.core.exceptions import GenerationInProgressError, ResourceNotFoundError
from horarios.models import AssignmentOrigin, RestrictionKind, ScheduleAssignment, TeacherAvailability
from horarios.services.generation_registry import GenerationRegistry, generation_registry
from horarios.services.scheduling_engine import SchedulingEngine, generate_schedule, success_percentage


def _rows(db):
    db.expire_all()
    return db.query(ScheduleAssignment).order_by(ScheduleAssignment.id).all()


def _signature(rows):
    return sorted(
        (row.group_id, row.subject_id, row.teacher_id, row.classroom_id, row.day, row.block_id, row.origin.value)
        for row in rows
    )


@pytest.fixture()
def base(factory):
    unit = factory.unit()
    career = factory.career(unit)
    room_type = factory.room_type("Aula")
    period = factory.period()
    blocks = factory.morning_blocks(4)

    class Base:
        pass

    b = Base()
    b.unit, b.career, b.room_type, b.period, b.blocks = unit, career, room_type, period, blocks
    return b


def _run(db, period, **kwargs):
    return generate_schedule(db, period.id, registry=GenerationRegistry(), **kwargs)


@pytest.mark.parametrize(
    ("assigned", "conflicts", "expected"),
    [(8, 2, 80.0), (0, 0, 0.0), (2, 1, 66.67), (5, 0, 100.0)],
)
def test_success_percentage(assigned, conflicts, expected):
    assert success_percentage(assigned, conflicts) == expected


def test_single_available_slot_is_used(db_session, factory, base):
    room = factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=1)
    teacher = factory.teacher()
    group = factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0])])

    report = _run(db_session, base.period)

    assert report.status == "SUCCESS"
    assert report.assigned_count == 1
    assert report.conflict_count == 0
    assert report.success_percentage == 100.0
    assert report.total_groups == 1
    rows = _rows(db_session)
    assert _signature(rows) == [(group.id, subject.id, teacher.id, room.id, 1, base.blocks[0].id, "auto")]


def test_unknown_period_is_not_found(db_session):
    with pytest.raises(ResourceNotFoundError):
        generate_schedule(db_session, 404, registry=GenerationRegistry())


def test_rerun_is_deterministic_and_replaces_auto_rows(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subjects = [factory.subject(careers=[base.career], theory=2) for _ in range(3)]
    teachers = [factory.teacher() for _ in range(2)]
    for index in range(3):
        factory.group(career=base.career, period=base.period, subjects=subjects, code=f"A{index}")
    for teacher in teachers:
        factory.availability(
            teacher,
            base.period,
            [(day, block) for day in range(1, 6) for block in base.blocks],
        )

    first = _run(db_session, base.period)
    first_rows = _signature(_rows(db_session))
    second = _run(db_session, base.period)
    second_rows = _signature(_rows(db_session))

    assert first.assigned_count == 18
    assert first.conflict_count == 0
    assert second.assigned_count == first.assigned_count
    assert second.removed_auto_count == first.assigned_count
    assert first_rows == second_rows
    assert len(second_rows) == 18


def test_no_double_booking_and_only_available_slots(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subjects = [factory.subject(careers=[base.career], theory=2) for _ in range(4)]
    teachers = [factory.teacher(max_weekly_hours=10) for _ in range(3)]
    for index in range(3):
        factory.group(career=base.career, period=base.period, subjects=subjects, code=f"B{index}")
    for offset, teacher in enumerate(teachers):
        factory.availability(
            teacher,
            base.period,
            [(day, block) for day in range(1, 6) for block in base.blocks if (day + offset) % 3 != 0],
        )

    report = _run(db_session, base.period)
    rows = _rows(db_session)

    assert report.assigned_count + report.conflict_count == 24
    assert len(rows) == report.assigned_count
    for axis in ("teacher_id", "classroom_id", "group_id"):
        keys = [(getattr(row, axis), row.day, row.block_id) for row in rows]
        assert len(keys) == len(set(keys))
    available = {
        (record.teacher_id, record.day, record.block_id)
        for record in db_session.query(TeacherAvailability).filter_by(is_available=True)
    }
    assert all((row.teacher_id, row.day, row.block_id) in available for row in rows)
    per_teacher = {}
    for row in rows:
        per_teacher[row.teacher_id] = per_teacher.get(row.teacher_id, 0) + 1
    assert all(count <= 10 for count in per_teacher.values())


def test_teacher_keeps_subject_across_sessions(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=3)
    teachers = [factory.teacher() for _ in range(2)]
    factory.group(career=base.career, period=base.period, subjects=[subject])
    for teacher in teachers:
        factory.availability(teacher, base.period, [(day, base.blocks[0]) for day in range(1, 6)])

    _run(db_session, base.period)

    assert len({row.teacher_id for row in _rows(db_session)}) == 1


def test_unavailable_slots_leave_conflicts(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=3)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0]), (2, base.blocks[1])])
    factory.availability(teacher, base.period, [(3, base.blocks[0])], available=False)

    report = _run(db_session, base.period)

    assert report.status == "PARTIAL_FAILURE"
    assert report.assigned_count == 2
    assert report.conflict_count == 1
    assert report.success_percentage == 66.67
    assert {(row.day, row.block_id) for row in _rows(db_session)} == {(1, base.blocks[0].id), (2, base.blocks[1].id)}
    assert report.unresolved_conflicts[0].subject_id == subject.id


def test_day_blackout_moves_sessions(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=1)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0]), (2, base.blocks[0])])
    factory.restriction(RestrictionKind.teacher_day_blackout, entity_id_1=teacher.id, value=1, period=base.period)

    report = _run(db_session, base.period)

    assert report.assigned_count == 1
    assert [row.day for row in _rows(db_session)] == [2]


def test_missing_room_is_reported(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type, capacity=20)
    subject = factory.subject(careers=[base.career], theory=2)
    teacher = factory.teacher()
    group = factory.group(career=base.career, period=base.period, subjects=[subject], students=45)
    factory.availability(teacher, base.period, [(1, base.blocks[0]), (1, base.blocks[1])])

    report = _run(db_session, base.period)

    assert report.assigned_count == 0
    assert report.conflict_count == 2
    assert report.success_percentage == 0.0
    conflict = report.unresolved_conflicts[0]
    assert conflict.group_code == group.code
    assert "No compatible room" in conflict.reason


def test_weekly_hour_cap_is_reported(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=2)
    teacher = factory.teacher(max_weekly_hours=1)
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0]), (2, base.blocks[0])])

    report = _run(db_session, base.period)

    assert report.assigned_count == 1
    assert "maximum weekly hours" in report.unresolved_conflicts[0].reason


def test_cycle_window_without_matching_slots(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    cycle = factory.cycle(base.career, 8)
    subject = factory.subject(careers=[base.career], theory=1, cycle=cycle)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0])])

    report = _run(db_session, base.period)
    assert report.conflict_count == 1
    assert "cycle 8" in report.unresolved_conflicts[0].reason

    relaxed = _run(db_session, base.period, settings=Settings(cycle_policy_mode="disabled"))
    assert relaxed.assigned_count == 1


def test_specialty_and_direct_teacher(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    factory.classroom(unit=base.unit, room_type=base.room_type)
    math = factory.specialty("Math")
    subject = factory.subject(careers=[base.career], theory=1, specialties=[math])
    qualified = factory.teacher(specialties=[math])
    direct = factory.teacher()
    regular = factory.group(career=base.career, period=base.period, subjects=[subject])
    tutored = factory.group(career=base.career, period=base.period, subjects=[subject], direct_teacher=direct)
    for teacher in (qualified, direct):
        factory.availability(teacher, base.period, [(1, base.blocks[0]), (1, base.blocks[1])])

    _run(db_session, base.period)

    teacher_by_group = {row.group_id: row.teacher_id for row in _rows(db_session)}
    assert teacher_by_group == {regular.id: qualified.id, tutored.id: direct.id}


def test_lab_sessions_use_required_room_type(db_session, factory, base):
    lab_type = factory.room_type("Laboratorio")
    lab = factory.classroom(unit=base.unit, room_type=lab_type)
    plain = factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=1, lab=1, room_type=lab_type)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0]), (2, base.blocks[0])])

    report = _run(db_session, base.period)

    assert report.assigned_count == 2
    assert {row.classroom_id for row in _rows(db_session)} <= {lab.id, plain.id}
    assert lab.id in {row.classroom_id for row in _rows(db_session)}


def test_manual_rows_are_preserved_and_counted(db_session, factory, base):
    room = factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=2)
    teacher = factory.teacher()
    other = factory.teacher()
    group = factory.group(career=base.career, period=base.period, subjects=[subject])
    slots = [(1, base.blocks[0]), (1, base.blocks[1]), (2, base.blocks[0])]
    factory.availability(teacher, base.period, slots)
    factory.availability(other, base.period, slots)
    manual = ScheduleAssignment(
        group_id=group.id,
        subject_id=subject.id,
        teacher_id=teacher.id,
        classroom_id=room.id,
        period_id=base.period.id,
        day=1,
        block_id=base.blocks[0].id,
        origin=AssignmentOrigin.manual,
    )
    db_session.add(manual)
    db_session.commit()

    first = _run(db_session, base.period)
    second = _run(db_session, base.period)

    assert first.preserved_count == 1
    assert first.assigned_count == 1
    assert second.removed_auto_count == 1
    rows = _rows(db_session)
    assert len(rows) == 2
    assert {row.origin for row in rows} == {AssignmentOrigin.manual, AssignmentOrigin.auto}
    assert {row.teacher_id for row in rows} == {teacher.id}
    assert any(row.id == manual.id for row in rows)


def test_direct_teacher_wins_over_manual_row_teacher(db_session, factory, base):
    room = factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=3)
    direct = factory.teacher()
    substitute = factory.teacher()
    group = factory.group(career=base.career, period=base.period, subjects=[subject], direct_teacher=direct)
    slots = [(1, base.blocks[0]), (1, base.blocks[1]), (2, base.blocks[0]), (2, base.blocks[1])]
    factory.availability(direct, base.period, slots)
    factory.availability(substitute, base.period, slots)
    db_session.add(
        ScheduleAssignment(
            group_id=group.id,
            subject_id=subject.id,
            teacher_id=substitute.id,
            classroom_id=room.id,
            period_id=base.period.id,
            day=1,
            block_id=base.blocks[0].id,
            origin=AssignmentOrigin.manual,
        )
    )
    db_session.commit()

    report = _run(db_session, base.period)

    assert report.assigned_count == 2
    auto_rows = [row for row in _rows(db_session) if row.origin == AssignmentOrigin.auto]
    assert len(auto_rows) == 2
    assert {row.teacher_id for row in auto_rows} == {direct.id}


def test_repair_relocates_a_blocking_session(db_session, factory, base):
    lab_type = factory.room_type("Laboratorio")
    factory.classroom(unit=base.unit, room_type=lab_type)
    factory.classroom(unit=base.unit, room_type=base.room_type)
    factory.classroom(unit=base.unit, room_type=base.room_type)
    chemistry, history = factory.specialty("Chemistry"), factory.specialty("History")
    lab_subject = factory.subject(careers=[base.career], theory=0, lab=1, room_type=lab_type, specialties=[chemistry])
    lecture = factory.subject(careers=[base.career], theory=1, specialties=[history])
    chemist = factory.teacher(specialties=[chemistry])
    historian = factory.teacher(specialties=[history])
    factory.group(career=base.career, period=base.period, subjects=[lab_subject, lecture])
    factory.availability(chemist, base.period, [(1, base.blocks[0]), (1, base.blocks[1])])
    factory.availability(historian, base.period, [(1, base.blocks[0])])

    report = _run(db_session, base.period)

    assert report.conflict_count == 0
    placed = {row.subject_id: (row.day, row.block_id) for row in _rows(db_session)}
    assert placed == {lecture.id: (1, base.blocks[0].id), lab_subject.id: (1, base.blocks[1].id)}


def test_solve_does_not_write(db_session, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=1)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0])])

    engine = SchedulingEngine(db=db_session, period_id=base.period.id, settings=Settings())
    requests, result = engine.solve()

    assert len(requests) == 1
    assert len(result.placements) == 1
    assert _rows(db_session) == []


def test_registry_rejects_concurrent_run(db_session, base):
    registry = GenerationRegistry()
    assert registry.acquire(base.period.id)

    with pytest.raises(GenerationInProgressError):
        generate_schedule(db_session, base.period.id, registry=registry)

    registry.release(base.period.id)
    report = generate_schedule(db_session, base.period.id, registry=registry)
    assert report.assigned_count == 0
    assert registry.snapshot(base.period.id).progress == 100


def test_generation_endpoint(client, factory, base):
    factory.classroom(unit=base.unit, room_type=base.room_type)
    subject = factory.subject(careers=[base.career], theory=1)
    teacher = factory.teacher()
    factory.group(career=base.career, period=base.period, subjects=[subject])
    factory.availability(teacher, base.period, [(1, base.blocks[0])])

    response = client.post("/api/generar-horario-automatico", json={"periodo_id": base.period.id})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "SUCCESS"
    assert body["assigned_count"] == 1
    assert body["success_percentage"] == 100.0

    progress = client.get(f"/api/generar-horario-automatico/{base.period.id}/progreso")
    assert progress.status_code == 200
    assert progress.json()["running"] is False
    assert progress.json()["phase"] == "finished"


def test_generation_endpoint_conflicts_while_running(client, base):
    generation_registry.acquire(base.period.id)

    response = client.post("/api/generar-horario-automatico", json={"period_id": base.period.id})

    assert response.status_code == 409
    assert response.json()["code"] == "CONFLICT_ERROR"
    progress = client.get(f"/api/generar-horario-automatico/{base.period.id}/progreso")
    assert progress.json()["running"] is True
