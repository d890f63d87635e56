import logging

import pytest

from horarios.models import Restriction, RestrictionKind, Shift
from horarios.services.occupancy import Placement, ScheduleState
from horarios.services.restrictions import (
    applicable_restrictions,
    check_hard,
    evaluate,
    may_affect,
    missing_parameters,
    severity_of,
    soft_penalty,
)

K = RestrictionKind


def _rule(kind, *, entity_id_1=None, entity_id_2=None, value=None, code="R-1"):
    return Restriction(
        code=code,
        description="",
        kind=kind,
        entity_id_1=entity_id_1,
        entity_id_2=entity_id_2,
        parameter_value=value,
        is_active=True,
    )


@pytest.fixture()
def world(factory):
    unit = factory.unit()
    room_type = factory.room_type()
    career = factory.career(unit)
    period = factory.period()
    blocks = factory.morning_blocks(5)
    evening = factory.block("19:00", "20:00", shift=Shift.evening, order=10)
    room_a = factory.classroom(unit=unit, room_type=room_type, location="Building A")
    room_b = factory.classroom(unit=unit, room_type=room_type, location="Building B")
    subject_1 = factory.subject(careers=[career])
    subject_2 = factory.subject(careers=[career])
    teacher = factory.teacher()
    group = factory.group(career=career, period=period, subjects=[subject_1, subject_2])
    state = ScheduleState(
        period_id=period.id,
        blocks=blocks + [evening],
        classrooms={room_a.id: room_a, room_b.id: room_b},
        groups={group.id: group},
    )

    def place(block, *, day=1, room=room_a, subject=subject_1, teacher_id=None):
        return Placement(
            group_id=group.id,
            subject_id=subject.id,
            teacher_id=teacher_id or teacher.id,
            classroom_id=room.id,
            day=day,
            block_id=block.id,
        )

    class World:
        pass

    w = World()
    w.period, w.blocks, w.evening = period, blocks, evening
    w.room_a, w.room_b = room_a, room_b
    w.subject_1, w.subject_2 = subject_1, subject_2
    w.teacher, w.group, w.state, w.place = teacher, group, state, place
    return w


def test_max_hours_per_day_counts_the_candidate(world):
    rule = _rule(K.max_teacher_hours_per_day, entity_id_1=world.teacher.id, value=2)
    world.state.add(world.place(world.blocks[0]))
    assert evaluate(rule, world.place(world.blocks[2]), world.state)

    world.state.add(world.place(world.blocks[2]))
    assert not evaluate(rule, world.place(world.blocks[4]), world.state)
    assert evaluate(rule, world.place(world.blocks[4], day=2), world.state)


def test_max_consecutive_hours(world):
    rule = _rule(K.max_consecutive_hours, entity_id_1=world.teacher.id, value=2)
    world.state.add(world.place(world.blocks[0]))
    world.state.add(world.place(world.blocks[1]))

    assert not evaluate(rule, world.place(world.blocks[2]), world.state)
    assert evaluate(rule, world.place(world.blocks[3]), world.state)


def test_rest_between_blocks_requires_free_gap(world):
    rule = _rule(K.rest_between_blocks, entity_id_1=world.teacher.id, value=1)
    world.state.add(world.place(world.blocks[0]))

    assert not evaluate(rule, world.place(world.blocks[1]), world.state)
    assert evaluate(rule, world.place(world.blocks[2]), world.state)


def test_day_and_block_blackouts(world):
    day_rule = _rule(K.teacher_day_blackout, entity_id_1=world.teacher.id, value=3)
    block_rule = _rule(K.teacher_block_blackout, entity_id_1=world.teacher.id, value=2, entity_id_2=world.blocks[1].id)

    assert not evaluate(day_rule, world.place(world.blocks[0], day=3), world.state)
    assert evaluate(day_rule, world.place(world.blocks[0], day=4), world.state)
    assert not evaluate(block_rule, world.place(world.blocks[1], day=2), world.state)
    assert evaluate(block_rule, world.place(world.blocks[1], day=1), world.state)
    assert evaluate(block_rule, world.place(world.blocks[0], day=2), world.state)


def test_blackout_ignores_other_teachers(world):
    rule = _rule(K.teacher_day_blackout, entity_id_1=world.teacher.id, value=1)
    assert evaluate(rule, world.place(world.blocks[0], teacher_id=world.teacher.id + 100), world.state)


def test_subject_specific_room(world):
    rule = _rule(K.subject_specific_room, entity_id_1=world.subject_1.id, entity_id_2=world.room_b.id)

    assert not evaluate(rule, world.place(world.blocks[0], room=world.room_a), world.state)
    assert evaluate(rule, world.place(world.blocks[0], room=world.room_b), world.state)
    assert evaluate(rule, world.place(world.blocks[0], room=world.room_a, subject=world.subject_2), world.state)


def test_max_teacher_days(world):
    rule = _rule(K.max_teacher_days, entity_id_1=world.teacher.id, value=2)
    world.state.add(world.place(world.blocks[0], day=1))
    world.state.add(world.place(world.blocks[0], day=2))

    assert evaluate(rule, world.place(world.blocks[1], day=2), world.state)
    assert not evaluate(rule, world.place(world.blocks[1], day=3), world.state)


def test_travel_time_between_buildings(world):
    rule = _rule(K.room_travel_time, entity_id_1=world.teacher.id, value=1)
    world.state.add(world.place(world.blocks[1], room=world.room_a))

    assert not evaluate(rule, world.place(world.blocks[2], room=world.room_b), world.state)
    assert not evaluate(rule, world.place(world.blocks[0], room=world.room_b), world.state)
    assert evaluate(rule, world.place(world.blocks[3], room=world.room_b), world.state)
    assert evaluate(rule, world.place(world.blocks[2], room=world.room_a), world.state)


def test_group_shift_preference_is_soft(world):
    rule = _rule(K.group_shift_preference, entity_id_1=world.group.id)
    evening = world.place(world.evening)

    assert not evaluate(rule, evening, world.state)
    assert check_hard([rule], evening, world.state, overrides={}) is None
    assert soft_penalty([rule], evening, world.state, overrides={}) == 1.0
    assert soft_penalty([rule], world.place(world.blocks[0]), world.state, overrides={}) == 0.0


def test_consecutive_subjects_prefers_adjacent_blocks(world):
    rule = _rule(K.consecutive_subjects, entity_id_1=world.subject_1.id, entity_id_2=world.subject_2.id)
    world.state.add(world.place(world.blocks[1], subject=world.subject_1))

    assert evaluate(rule, world.place(world.blocks[2], subject=world.subject_2), world.state)
    assert not evaluate(rule, world.place(world.blocks[4], subject=world.subject_2), world.state)
    assert not evaluate(rule, world.place(world.blocks[0], day=2, subject=world.subject_2), world.state)


def test_severity_override_turns_soft_rule_hard(world):
    rule = _rule(K.group_shift_preference, entity_id_1=world.group.id)
    overrides = {K.group_shift_preference.value: "hard"}

    assert severity_of(K.group_shift_preference, overrides) == "hard"
    assert severity_of(K.teacher_day_blackout, {}) == "hard"
    assert check_hard([rule], world.place(world.evening), world.state, overrides=overrides) is rule
    assert soft_penalty([rule], world.place(world.evening), world.state, overrides=overrides) == 0.0


def test_check_hard_returns_first_violated_rule(world):
    first = _rule(K.teacher_day_blackout, entity_id_1=world.teacher.id, value=1, code="A")
    second = _rule(K.teacher_block_blackout, entity_id_1=world.teacher.id, value=1, entity_id_2=world.blocks[0].id, code="B")

    assert check_hard([first, second], world.place(world.blocks[0]), world.state, overrides={}) is first


def test_incomplete_rule_is_satisfied_and_listed_missing(world):
    rule = _rule(K.teacher_block_blackout, entity_id_1=world.teacher.id, value=1)

    assert missing_parameters(rule) == ["entity_id_2"]
    assert evaluate(rule, world.place(world.blocks[0]), world.state)


def test_applicable_restrictions_scopes_by_period_and_skips_incomplete(db_session, factory, caplog):
    period = factory.period()
    other = factory.period()
    teacher = factory.teacher()
    scoped = factory.restriction(K.teacher_day_blackout, entity_id_1=teacher.id, value=1, period=period)
    unscoped = factory.restriction(K.max_teacher_days, entity_id_1=teacher.id, value=3)
    factory.restriction(K.teacher_day_blackout, entity_id_1=teacher.id, value=2, period=other)
    factory.restriction(K.teacher_day_blackout, entity_id_1=teacher.id, value=2, period=period, active=False)
    incomplete = factory.restriction(K.max_consecutive_hours, entity_id_1=teacher.id, period=period)

    with caplog.at_level(logging.WARNING):
        rules = applicable_restrictions(db_session, period.id)

    assert [rule.id for rule in rules] == [scoped.id, unscoped.id]
    assert any(incomplete.code in record.getMessage() for record in caplog.records)


def test_may_affect_filters_by_target(world):
    teacher_rule = _rule(K.teacher_day_blackout, entity_id_1=world.teacher.id, value=1)
    group_rule = _rule(K.group_shift_preference, entity_id_1=world.group.id)
    room_rule = _rule(K.subject_specific_room, entity_id_1=world.subject_2.id, entity_id_2=world.room_a.id)

    kwargs = {"group_id": world.group.id, "subject_id": world.subject_1.id}
    assert may_affect(teacher_rule, teacher_ids={world.teacher.id}, **kwargs)
    assert not may_affect(teacher_rule, teacher_ids={world.teacher.id + 1}, **kwargs)
    assert may_affect(group_rule, teacher_ids=set(), **kwargs)
    assert not may_affect(room_rule, teacher_ids=set(), **kwargs)
