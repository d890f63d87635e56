from __future__ import annotations

import logging
from typing import Callable

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from horarios.core.config import RestrictionSeverity, get_settings
from horarios.models.restriction import Restriction, RestrictionKind
from horarios.services.occupancy import Placement, ScheduleState

logger = logging.getLogger(__name__)

K = RestrictionKind

DEFAULT_SEVERITY: dict[RestrictionKind, RestrictionSeverity] = {
    K.max_teacher_hours_per_day: "hard",
    K.max_consecutive_hours: "hard",
    K.rest_between_blocks: "hard",
    K.group_shift_preference: "soft",
    K.room_travel_time: "hard",
    K.teacher_day_blackout: "hard",
    K.teacher_block_blackout: "hard",
    K.subject_specific_room: "hard",
    K.consecutive_subjects: "soft",
    K.max_teacher_days: "hard",
}

# Fields each kind cannot be evaluated without.
REQUIRED_PARAMETERS: dict[RestrictionKind, tuple[str, ...]] = {
    K.max_teacher_hours_per_day: ("entity_id_1", "parameter_value"),
    K.max_consecutive_hours: ("entity_id_1", "parameter_value"),
    K.rest_between_blocks: ("entity_id_1", "parameter_value"),
    K.group_shift_preference: ("entity_id_1",),
    K.room_travel_time: ("entity_id_1", "parameter_value"),
    K.teacher_day_blackout: ("entity_id_1", "parameter_value"),
    K.teacher_block_blackout: ("entity_id_1", "parameter_value", "entity_id_2"),
    K.subject_specific_room: ("entity_id_1", "entity_id_2"),
    K.consecutive_subjects: ("entity_id_1", "entity_id_2"),
    K.max_teacher_days: ("entity_id_1", "parameter_value"),
}


def severity_of(kind: RestrictionKind, overrides: dict[str, str] | None = None) -> RestrictionSeverity:
    if overrides is None:
        overrides = get_settings().restriction_severity_overrides
    override = overrides.get(kind.value)
    if override in ("hard", "soft"):
        return override
    return DEFAULT_SEVERITY[kind]


def missing_parameters(restriction: Restriction) -> list[str]:
    return [name for name in REQUIRED_PARAMETERS[restriction.kind] if getattr(restriction, name) is None]


def applicable_restrictions(db: Session, period_id: int) -> list[Restriction]:
    """Active restrictions scoped to the period or unscoped, minus incomplete ones."""
    rows = db.execute(
        select(Restriction)
        .where(
            Restriction.is_active.is_(True),
            or_(Restriction.period_id == period_id, Restriction.period_id.is_(None)),
        )
        .order_by(Restriction.id)
    ).scalars()
    usable: list[Restriction] = []
    for restriction in rows:
        missing = missing_parameters(restriction)
        if missing:
            logger.warning(
                "RESTRICTION IGNORED | code=%s | kind=%s | missing=%s",
                restriction.code,
                restriction.kind.value,
                ",".join(missing),
            )
            continue
        usable.append(restriction)
    return usable


def _param(restriction: Restriction) -> int:
    return int(restriction.parameter_value or 0)


def _teacher_positions(state: ScheduleState, teacher_id: int, day: int) -> list[int]:
    positions = []
    for placement in state.teacher_placements_on(teacher_id, day):
        position = state.position(day, placement.block_id)
        if position is not None:
            positions.append(position)
    return positions


def _longest_run(positions: list[int]) -> int:
    ordered = sorted(set(positions))
    longest = current = 0
    previous = None
    for position in ordered:
        current = current + 1 if previous is not None and position == previous + 1 else 1
        longest = max(longest, current)
        previous = position
    return longest


def _max_hours_per_day(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.teacher_id != restriction.entity_id_1:
        return False
    return len(state.teacher_placements_on(candidate.teacher_id, candidate.day)) + 1 > _param(restriction)


def _max_consecutive(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.teacher_id != restriction.entity_id_1:
        return False
    position = state.position(candidate.day, candidate.block_id)
    if position is None:
        return False
    positions = _teacher_positions(state, candidate.teacher_id, candidate.day) + [position]
    return _longest_run(positions) > _param(restriction)


def _rest_between(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.teacher_id != restriction.entity_id_1 or _param(restriction) <= 0:
        return False
    position = state.position(candidate.day, candidate.block_id)
    if position is None:
        return False
    for other in _teacher_positions(state, candidate.teacher_id, candidate.day):
        free_between = abs(position - other) - 1
        if free_between < _param(restriction):
            return True
    return False


def _shift_preference(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.group_id != restriction.entity_id_1:
        return False
    group = state.groups.get(candidate.group_id)
    block = state.blocks.get(candidate.block_id)
    if group is None or block is None:
        return False
    return block.shift != group.preferred_shift


def _travel_time(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.teacher_id != restriction.entity_id_1:
        return False
    position = state.position(candidate.day, candidate.block_id)
    room = state.classrooms.get(candidate.classroom_id)
    if position is None or room is None:
        return False

    before: tuple[int, Placement] | None = None
    after: tuple[int, Placement] | None = None
    for placement in state.teacher_placements_on(candidate.teacher_id, candidate.day):
        other = state.position(candidate.day, placement.block_id)
        if other is None:
            continue
        if other < position and (before is None or other > before[0]):
            before = (other, placement)
        if other > position and (after is None or other < after[0]):
            after = (other, placement)

    for neighbour in (before, after):
        if neighbour is None:
            continue
        other_position, placement = neighbour
        other_room = state.classrooms.get(placement.classroom_id)
        if other_room is None or other_room.location == room.location:
            continue
        if abs(position - other_position) - 1 < _param(restriction):
            return True
    return False


def _day_blackout(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    return candidate.teacher_id == restriction.entity_id_1 and candidate.day == _param(restriction)


def _block_blackout(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    return (
        candidate.teacher_id == restriction.entity_id_1
        and candidate.day == _param(restriction)
        and candidate.block_id == restriction.entity_id_2
    )


def _specific_room(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    return candidate.subject_id == restriction.entity_id_1 and candidate.classroom_id != restriction.entity_id_2


def _consecutive_subjects(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    pair = {restriction.entity_id_1, restriction.entity_id_2}
    if candidate.subject_id not in pair:
        return False
    partner = restriction.entity_id_2 if candidate.subject_id == restriction.entity_id_1 else restriction.entity_id_1
    position = state.position(candidate.day, candidate.block_id)
    partner_positions = [
        state.position(candidate.day, placement.block_id)
        for placement in state.group_placements_on(candidate.group_id, candidate.day)
        if placement.subject_id == partner
    ]
    partner_positions = [item for item in partner_positions if item is not None]
    if not partner_positions:
        # Only penalise when the partner already sits on another day.
        return bool(state.group_subject_days(candidate.group_id, partner))
    if position is None:
        return False
    return all(abs(position - other) != 1 for other in partner_positions)


def _max_days(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    if candidate.teacher_id != restriction.entity_id_1:
        return False
    days = state.teacher_days(candidate.teacher_id) | {candidate.day}
    return len(days) > _param(restriction)


VIOLATION_CHECKS: dict[RestrictionKind, Callable[[Restriction, Placement, ScheduleState], bool]] = {
    K.max_teacher_hours_per_day: _max_hours_per_day,
    K.max_consecutive_hours: _max_consecutive,
    K.rest_between_blocks: _rest_between,
    K.group_shift_preference: _shift_preference,
    K.room_travel_time: _travel_time,
    K.teacher_day_blackout: _day_blackout,
    K.teacher_block_blackout: _block_blackout,
    K.subject_specific_room: _specific_room,
    K.consecutive_subjects: _consecutive_subjects,
    K.max_teacher_days: _max_days,
}


def evaluate(restriction: Restriction, candidate: Placement, state: ScheduleState) -> bool:
    """Return True when the candidate satisfies the restriction.

    A restriction that does not target the candidate is satisfied.
    """
    if missing_parameters(restriction):
        return True
    return not VIOLATION_CHECKS[restriction.kind](restriction, candidate, state)


def penalty(
    restriction: Restriction,
    candidate: Placement,
    state: ScheduleState,
    *,
    overrides: dict[str, str] | None = None,
) -> float:
    if severity_of(restriction.kind, overrides) != "soft":
        return 0.0
    return 0.0 if evaluate(restriction, candidate, state) else 1.0


def check_hard(
    restrictions: list[Restriction],
    candidate: Placement,
    state: ScheduleState,
    *,
    overrides: dict[str, str] | None = None,
) -> Restriction | None:
    for restriction in restrictions:
        if severity_of(restriction.kind, overrides) != "hard":
            continue
        if not evaluate(restriction, candidate, state):
            return restriction
    return None


def soft_penalty(
    restrictions: list[Restriction],
    candidate: Placement,
    state: ScheduleState,
    *,
    overrides: dict[str, str] | None = None,
) -> float:
    return sum(penalty(item, candidate, state, overrides=overrides) for item in restrictions)


GROUP_KINDS = {K.group_shift_preference}
SUBJECT_KINDS = {K.subject_specific_room, K.consecutive_subjects}


def may_affect(restriction: Restriction, *, group_id: int, subject_id: int, teacher_ids: set[int]) -> bool:
    """Cheap pre-filter: False when the restriction can never apply to these entities."""
    if restriction.kind in GROUP_KINDS:
        return restriction.entity_id_1 == group_id
    if restriction.kind == K.subject_specific_room:
        return restriction.entity_id_1 == subject_id
    if restriction.kind == K.consecutive_subjects:
        return subject_id in (restriction.entity_id_1, restriction.entity_id_2)
    return restriction.entity_id_1 in teacher_ids
