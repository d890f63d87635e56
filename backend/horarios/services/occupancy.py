from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.models.group import Group
from horarios.models.period import TimeBlock
from horarios.models.room import Classroom
from horarios.models.schedule_assignment import AssignmentOrigin, ScheduleAssignment
from horarios.schemas.common import DAY_VALUES


@dataclass(frozen=True)
class Placement:
    group_id: int
    subject_id: int
    teacher_id: int
    classroom_id: int
    day: int
    block_id: int
    origin: AssignmentOrigin = AssignmentOrigin.auto

    @classmethod
    def from_assignment(cls, row: ScheduleAssignment) -> "Placement":
        return cls(
            group_id=row.group_id,
            subject_id=row.subject_id,
            teacher_id=row.teacher_id,
            classroom_id=row.classroom_id,
            day=row.day,
            block_id=row.block_id,
            origin=row.origin,
        )


def block_sort_key(block: TimeBlock) -> tuple:
    return (block.order, block.start_time, block.id)


class ScheduleState:
    """Occupancy of one period on the teacher, room and group axes.

    Lookups are keyed ``(day, block_id, resource_id)``. The state also keeps
    the ordered block sequence of each weekday so contiguity checks can work
    with positions instead of clock times.
    """

    def __init__(
        self,
        *,
        period_id: int,
        blocks: list[TimeBlock],
        classrooms: dict[int, Classroom],
        groups: dict[int, Group],
    ) -> None:
        self.period_id = period_id
        self.blocks = {block.id: block for block in blocks}
        self.classrooms = classrooms
        self.groups = groups
        self.day_blocks: dict[int, list[TimeBlock]] = {
            day: sorted((block for block in blocks if block.applies_to(day)), key=block_sort_key)
            for day in DAY_VALUES
        }
        self._positions: dict[tuple[int, int], int] = {
            (day, block.id): index
            for day, ordered in self.day_blocks.items()
            for index, block in enumerate(ordered)
        }
        self.teacher_occ: dict[tuple[int, int, int], Placement] = {}
        self.room_occ: dict[tuple[int, int, int], Placement] = {}
        self.group_occ: dict[tuple[int, int, int], Placement] = {}
        self.teacher_day: dict[tuple[int, int], list[Placement]] = defaultdict(list)
        self.group_day: dict[tuple[int, int], list[Placement]] = defaultdict(list)
        self.teacher_load: dict[int, int] = defaultdict(int)
        self.room_load: dict[int, int] = defaultdict(int)

    @classmethod
    def load(cls, db: Session, period_id: int, *, origins: tuple[AssignmentOrigin, ...] | None = None) -> "ScheduleState":
        blocks = list(db.execute(select(TimeBlock)).scalars())
        classrooms = {room.id: room for room in db.execute(select(Classroom)).scalars()}
        groups = {group.id: group for group in db.execute(select(Group).where(Group.period_id == period_id)).scalars()}
        state = cls(period_id=period_id, blocks=blocks, classrooms=classrooms, groups=groups)
        query = select(ScheduleAssignment).where(ScheduleAssignment.period_id == period_id)
        if origins is not None:
            query = query.where(ScheduleAssignment.origin.in_(origins))
        for row in db.execute(query.order_by(ScheduleAssignment.id)).scalars():
            state.add(Placement.from_assignment(row))
        return state

    def position(self, day: int, block_id: int) -> int | None:
        return self._positions.get((day, block_id))

    def block_valid_for_day(self, day: int, block_id: int) -> bool:
        return (day, block_id) in self._positions

    def teacher_busy(self, teacher_id: int, day: int, block_id: int) -> Placement | None:
        return self.teacher_occ.get((day, block_id, teacher_id))

    def room_busy(self, classroom_id: int, day: int, block_id: int) -> Placement | None:
        return self.room_occ.get((day, block_id, classroom_id))

    def group_busy(self, group_id: int, day: int, block_id: int) -> Placement | None:
        return self.group_occ.get((day, block_id, group_id))

    def teacher_placements_on(self, teacher_id: int, day: int) -> list[Placement]:
        return self.teacher_day.get((teacher_id, day), [])

    def group_placements_on(self, group_id: int, day: int) -> list[Placement]:
        return self.group_day.get((group_id, day), [])

    def teacher_days(self, teacher_id: int) -> set[int]:
        return {day for day in DAY_VALUES if self.teacher_day.get((teacher_id, day))}

    def group_subject_days(self, group_id: int, subject_id: int) -> set[int]:
        return {
            day
            for day in DAY_VALUES
            for placement in self.group_day.get((group_id, day), [])
            if placement.subject_id == subject_id
        }

    def add(self, placement: Placement) -> None:
        key_day, key_block = placement.day, placement.block_id
        self.teacher_occ[(key_day, key_block, placement.teacher_id)] = placement
        self.room_occ[(key_day, key_block, placement.classroom_id)] = placement
        self.group_occ[(key_day, key_block, placement.group_id)] = placement
        self.teacher_day[(placement.teacher_id, key_day)].append(placement)
        self.group_day[(placement.group_id, key_day)].append(placement)
        self.teacher_load[placement.teacher_id] += 1
        self.room_load[placement.classroom_id] += 1

    def remove(self, placement: Placement) -> None:
        key_day, key_block = placement.day, placement.block_id
        self.teacher_occ.pop((key_day, key_block, placement.teacher_id), None)
        self.room_occ.pop((key_day, key_block, placement.classroom_id), None)
        self.group_occ.pop((key_day, key_block, placement.group_id), None)
        self.teacher_day[(placement.teacher_id, key_day)].remove(placement)
        self.group_day[(placement.group_id, key_day)].remove(placement)
        self.teacher_load[placement.teacher_id] -= 1
        self.room_load[placement.classroom_id] -= 1
