from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
import logging
from time import perf_counter
from typing import Callable, Literal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from horarios.core.config import Settings, get_settings
from horarios.core.exceptions import ResourceNotFoundError
from horarios.models.career import Career, Cycle
from horarios.models.group import Group, GroupSubject
from horarios.models.period import Period, TimeBlock
from horarios.models.restriction import Restriction
from horarios.models.room import Classroom
from horarios.models.schedule_assignment import PRESERVED_ORIGINS, AssignmentOrigin, ScheduleAssignment
from horarios.models.subject import Subject
from horarios.models.teacher import Teacher
from horarios.schemas.generation import GenerationReport, UnresolvedConflict
from horarios.services import cycle_policy, restrictions
from horarios.services.audit import log_activity
from horarios.services.availability import AvailabilityIndex
from horarios.services.generation_registry import GenerationRegistry, generation_registry
from horarios.services.occupancy import Placement, ScheduleState

logger = logging.getLogger(__name__)

SessionType = Literal["theory", "practice", "lab"]
ProgressCallback = Callable[[int, str], None]

MAX_REPAIR_ATTEMPTS = 200


@dataclass(frozen=True)
class SessionRequest:
    request_id: int
    group_id: int
    subject_id: int
    session_type: SessionType
    student_count: int
    room_type_id: int | None
    teacher_ids: tuple[int, ...]
    cycle_number: int | None
    room_ids: tuple[int, ...]
    option_count: int


@dataclass(frozen=True)
class PlacementOption:
    teacher_id: int
    day: int
    block_id: int
    classroom_id: int


@dataclass
class SolveResult:
    placements: dict[int, Placement] = field(default_factory=dict)
    unresolved: list[tuple[SessionRequest, str]] = field(default_factory=list)


def success_percentage(assigned: int, conflicts: int) -> float:
    total = assigned + conflicts
    if total == 0:
        return 0.0
    return round(assigned / total * 100, 2)


def _session_types(subject: Subject) -> list[SessionType]:
    return (
        ["theory"] * (subject.theory_hours or 0)
        + ["practice"] * (subject.practice_hours or 0)
        + ["lab"] * (subject.lab_hours or 0)
    )


def _required_room_type(subject: Subject, session_type: SessionType) -> int | None:
    if subject.required_room_type_id is None:
        return None
    if session_type != "theory":
        return subject.required_room_type_id
    # Theory only needs the special room when the subject has no hands-on hours.
    if (subject.practice_hours or 0) + (subject.lab_hours or 0) == 0:
        return subject.required_room_type_id
    return None


class SchedulingEngine:
    """Greedy most-constrained-first solver for one period.

    Each required hour of a group's subject is one session request. Requests
    are placed in scarcity order on the best-scoring (teacher, day, block,
    room) option that passes every hard check; a request with no option gets
    one repair attempt that relocates a single blocking placement of this run.
    """

    def __init__(
        self,
        *,
        db: Session,
        period_id: int,
        settings: Settings | None = None,
        progress: ProgressCallback | None = None,
    ) -> None:
        self.db = db
        self.period_id = period_id
        self.settings = settings or get_settings()
        self.weights = self.settings.engine_weights
        self.overrides = self.settings.restriction_severity_overrides
        self._progress = progress or (lambda value, phase: None)

        self.period = db.get(Period, period_id)
        if self.period is None:
            raise ResourceNotFoundError("Period", period_id)

    # Loading

    def _load(self) -> None:
        db = self.db
        self.groups: list[Group] = list(
            db.execute(select(Group).where(Group.period_id == self.period_id).order_by(Group.id)).scalars()
        )
        group_ids = [group.id for group in self.groups]
        self.group_subjects: dict[int, list[int]] = defaultdict(list)
        if group_ids:
            links = db.execute(
                select(GroupSubject)
                .where(GroupSubject.group_id.in_(group_ids))
                .order_by(GroupSubject.group_id, GroupSubject.subject_id)
            ).scalars()
            for link in links:
                self.group_subjects[link.group_id].append(link.subject_id)

        self.subjects = {subject.id: subject for subject in db.execute(select(Subject)).scalars()}
        self.teachers = {teacher.id: teacher for teacher in db.execute(select(Teacher).order_by(Teacher.id)).scalars()}
        self.classrooms = {room.id: room for room in db.execute(select(Classroom).order_by(Classroom.id)).scalars()}
        self.careers = {career.id: career for career in db.execute(select(Career)).scalars()}
        self.cycles = {cycle.id: cycle for cycle in db.execute(select(Cycle)).scalars()}
        self.blocks: dict[int, TimeBlock] = {block.id: block for block in db.execute(select(TimeBlock)).scalars()}

        self.availability = AvailabilityIndex.load(db, self.period_id)
        self.rules: list[Restriction] = restrictions.applicable_restrictions(db, self.period_id)
        self.state = ScheduleState.load(db, self.period_id, origins=PRESERVED_ORIGINS)
        self.preserved_count = sum(self.state.teacher_load.values())
        self._slot_cache: dict[tuple[int, int | None], list[tuple[int, int]]] = {}

    # Request construction

    def _qualified_teachers(self, group: Group, subject: Subject) -> tuple[int, ...]:
        if group.direct_teacher_id is not None:
            if group.direct_teacher_id in self.teachers:
                return (group.direct_teacher_id,)
            return ()
        required = set(subject.required_specialty_ids or [])
        return tuple(
            teacher.id
            for teacher in self.teachers.values()
            if teacher.is_active and required.issubset(set(teacher.specialty_ids or []))
        )

    def _compatible_rooms(self, student_count: int, room_type_id: int | None) -> tuple[int, ...]:
        return tuple(
            room.id
            for room in self.classrooms.values()
            if room.capacity >= student_count and (room_type_id is None or room.room_type_id == room_type_id)
        )

    def _teacher_slots(self, teacher_id: int, cycle_number: int | None) -> list[tuple[int, int]]:
        cached = self._slot_cache.get((teacher_id, cycle_number))
        if cached is not None:
            return cached
        slots: list[tuple[int, int]] = []
        for day, block_id in self.availability.available_slots(teacher_id):
            block = self.blocks.get(block_id)
            if block is None or not self.state.block_valid_for_day(day, block_id):
                continue
            if not cycle_policy.block_fits_cycle(block, cycle_number):
                continue
            slots.append((day, block_id))
        slots.sort(key=lambda slot: (slot[0], self.state.position(slot[0], slot[1])))
        self._slot_cache[(teacher_id, cycle_number)] = slots
        return slots

    def _cycle_number(self, group: Group, subject: Subject) -> int | None:
        cycle = self.cycles.get(subject.cycle_id) if subject.cycle_id is not None else None
        return cycle_policy.cycle_number_for(
            mode=self.settings.cycle_policy_mode,
            subject=subject,
            cycle=cycle,
            career=self.careers.get(group.career_id),
        )

    def _build_requests(self) -> list[SessionRequest]:
        requests: list[SessionRequest] = []
        self.locked_teacher: dict[tuple[int, int], int] = {}

        for group in self.groups:
            for subject_id in self.group_subjects.get(group.id, []):
                subject = self.subjects.get(subject_id)
                if subject is None or not subject.is_active:
                    continue
                sessions = _session_types(subject)
                sessions = self._discount_preserved(group, subject, sessions)
                if not sessions:
                    continue

                teacher_ids = self._qualified_teachers(group, subject)
                locked = self.locked_teacher.get((group.id, subject.id))
                if locked is not None:
                    teacher_ids = (locked,)
                cycle_number = self._cycle_number(group, subject)

                for session_type in sessions:
                    room_type_id = _required_room_type(subject, session_type)
                    room_ids = self._compatible_rooms(group.estimated_students or 0, room_type_id)
                    slot_total = sum(len(self._teacher_slots(teacher_id, cycle_number)) for teacher_id in teacher_ids)
                    requests.append(
                        SessionRequest(
                            request_id=len(requests),
                            group_id=group.id,
                            subject_id=subject.id,
                            session_type=session_type,
                            student_count=group.estimated_students or 0,
                            room_type_id=room_type_id,
                            teacher_ids=teacher_ids,
                            cycle_number=cycle_number,
                            room_ids=room_ids,
                            option_count=slot_total * len(room_ids),
                        )
                    )
        return requests

    def _discount_preserved(self, group: Group, subject: Subject, sessions: list[SessionType]) -> list[SessionType]:
        """Drop the sessions already covered by manual or override rows."""
        remaining = list(sessions)
        preserved = [
            placement
            for day_placements in (self.state.group_placements_on(group.id, day) for day in range(1, 7))
            for placement in day_placements
            if placement.subject_id == subject.id
        ]
        for placement in sorted(preserved, key=lambda item: (item.day, item.block_id)):
            if group.direct_teacher_id is None:
                self.locked_teacher.setdefault((group.id, subject.id), placement.teacher_id)
            room = self.classrooms.get(placement.classroom_id)
            hands_on = [index for index, kind in enumerate(remaining) if kind != "theory"]
            if (
                hands_on
                and room is not None
                and subject.required_room_type_id is not None
                and room.room_type_id == subject.required_room_type_id
            ):
                remaining.pop(hands_on[0])
            elif remaining:
                theory = [index for index, kind in enumerate(remaining) if kind == "theory"]
                remaining.pop(theory[0] if theory else 0)
        return remaining

    @staticmethod
    def _priority_order(requests: list[SessionRequest]) -> list[SessionRequest]:
        return sorted(
            requests,
            key=lambda req: (
                req.option_count,       # fewest options first
                -req.student_count,     # larger groups first
                req.group_id,
                req.subject_id,
                req.request_id,
            ),
        )

    # Option search

    def _relevant_rules(self, req: SessionRequest, teacher_ids: tuple[int, ...]) -> list[Restriction]:
        return [
            rule
            for rule in self.rules
            if restrictions.may_affect(rule, group_id=req.group_id, subject_id=req.subject_id, teacher_ids=set(teacher_ids))
        ]

    def _teacher_pool(self, req: SessionRequest) -> tuple[int, ...]:
        # a group with a direct teacher never takes another one
        if self.groups_by_id[req.group_id].direct_teacher_id is not None:
            return req.teacher_ids
        locked = self.locked_teacher.get((req.group_id, req.subject_id))
        if locked is not None:
            return (locked,)
        return req.teacher_ids

    def _slot_open(self, req: SessionRequest, teacher_id: int, day: int, block_id: int) -> bool:
        if self.state.teacher_busy(teacher_id, day, block_id) is not None:
            return False
        if self.state.group_busy(req.group_id, day, block_id) is not None:
            return False
        teacher = self.teachers.get(teacher_id)
        if teacher is None:
            return False
        return self.state.teacher_load[teacher_id] + 1 <= teacher.max_weekly_hours

    def _passes_hard(self, placement: Placement, rules: list[Restriction]) -> bool:
        return restrictions.check_hard(rules, placement, self.state, overrides=self.overrides) is None

    def _score(self, req: SessionRequest, placement: Placement, rules: list[Restriction]) -> float:
        weights = self.weights
        group = self.state.groups.get(req.group_id)
        block = self.blocks[placement.block_id]
        room = self.classrooms[placement.classroom_id]

        score = restrictions.soft_penalty(rules, placement, self.state, overrides=self.overrides) * weights.soft_restriction
        if group is not None and block.shift != group.preferred_shift:
            score += weights.shift_mismatch
        same_day = sum(
            1
            for other in self.state.group_placements_on(req.group_id, placement.day)
            if other.subject_id == req.subject_id
        )
        score += same_day * weights.same_day_subject
        score += self.state.teacher_load[placement.teacher_id] * weights.teacher_load
        score += self.state.room_load[placement.classroom_id] * weights.room_load
        score += (room.capacity - req.student_count) / max(1, room.capacity) * weights.capacity_waste
        career = self.careers.get(group.career_id) if group is not None else None
        if career is not None and room.unit_id != career.unit_id:
            score += weights.unit_mismatch
        score -= self.availability.preference(placement.teacher_id, placement.day, placement.block_id) * (
            weights.availability_preference
        )
        return score

    def _best_option(self, req: SessionRequest) -> PlacementOption | None:
        pool = self._teacher_pool(req)
        rules = self._relevant_rules(req, pool)
        best: tuple | None = None
        best_option: PlacementOption | None = None

        for teacher_id in pool:
            for day, block_id in self._teacher_slots(teacher_id, req.cycle_number):
                if not self._slot_open(req, teacher_id, day, block_id):
                    continue
                position = self.state.position(day, block_id)
                for room_id in req.room_ids:
                    if self.state.room_busy(room_id, day, block_id) is not None:
                        continue
                    placement = Placement(
                        group_id=req.group_id,
                        subject_id=req.subject_id,
                        teacher_id=teacher_id,
                        classroom_id=room_id,
                        day=day,
                        block_id=block_id,
                    )
                    if not self._passes_hard(placement, rules):
                        continue
                    key = (round(self._score(req, placement, rules), 6), day, position, teacher_id, room_id)
                    if best is None or key < best:
                        best = key
                        best_option = PlacementOption(teacher_id, day, block_id, room_id)
        return best_option

    def _commit_option(self, req: SessionRequest, option: PlacementOption, result: SolveResult) -> Placement:
        placement = Placement(
            group_id=req.group_id,
            subject_id=req.subject_id,
            teacher_id=option.teacher_id,
            classroom_id=option.classroom_id,
            day=option.day,
            block_id=option.block_id,
        )
        self.state.add(placement)
        result.placements[req.request_id] = placement
        self.owner[placement] = req
        self.locked_teacher.setdefault((req.group_id, req.subject_id), option.teacher_id)
        return placement

    def _release(self, req: SessionRequest, placement: Placement, result: SolveResult) -> None:
        self.state.remove(placement)
        result.placements.pop(req.request_id, None)
        self.owner.pop(placement, None)

    # Repair

    def _blockers(self, req: SessionRequest, teacher_id: int, day: int, block_id: int, room_id: int) -> set[Placement]:
        found = {
            placement
            for placement in (
                self.state.teacher_busy(teacher_id, day, block_id),
                self.state.group_busy(req.group_id, day, block_id),
                self.state.room_busy(room_id, day, block_id),
            )
            if placement is not None
        }
        return found

    def _repair(self, req: SessionRequest, result: SolveResult) -> bool:
        pool = self._teacher_pool(req)
        attempts = 0
        for teacher_id in pool:
            for day, block_id in self._teacher_slots(teacher_id, req.cycle_number):
                for room_id in req.room_ids:
                    blockers = self._blockers(req, teacher_id, day, block_id, room_id)
                    if len(blockers) != 1:
                        continue
                    blocker = next(iter(blockers))
                    blocker_req = self.owner.get(blocker)
                    if blocker_req is None or blocker.origin != AssignmentOrigin.auto:
                        continue
                    attempts += 1
                    if attempts > MAX_REPAIR_ATTEMPTS:
                        return False
                    if self._try_swap(req, blocker_req, blocker, PlacementOption(teacher_id, day, block_id, room_id), result):
                        return True
        return False

    def _try_swap(
        self,
        req: SessionRequest,
        blocker_req: SessionRequest,
        blocker: Placement,
        option: PlacementOption,
        result: SolveResult,
    ) -> bool:
        self._release(blocker_req, blocker, result)
        placement = Placement(
            group_id=req.group_id,
            subject_id=req.subject_id,
            teacher_id=option.teacher_id,
            classroom_id=option.classroom_id,
            day=option.day,
            block_id=option.block_id,
        )
        pool = self._teacher_pool(req)
        if (
            option.teacher_id in pool
            and self._slot_open(req, option.teacher_id, option.day, option.block_id)
            and self.state.room_busy(option.classroom_id, option.day, option.block_id) is None
            and self._passes_hard(placement, self._relevant_rules(req, pool))
        ):
            lock_key = (req.group_id, req.subject_id)
            was_locked = lock_key in self.locked_teacher
            ours = self._commit_option(req, option, result)
            moved = self._best_option(blocker_req)
            if moved is not None:
                self._commit_option(blocker_req, moved, result)
                logger.debug(
                    "REPAIR MOVE | request=%s | moved_request=%s | day=%s | block_id=%s",
                    req.request_id,
                    blocker_req.request_id,
                    moved.day,
                    moved.block_id,
                )
                return True
            self._release(req, ours, result)
            if not was_locked:
                self.locked_teacher.pop(lock_key, None)

        restored = PlacementOption(blocker.teacher_id, blocker.day, blocker.block_id, blocker.classroom_id)
        self._commit_option(blocker_req, restored, result)
        return False

    def _unresolved_reason(self, req: SessionRequest) -> str:
        subject = self.subjects[req.subject_id]
        if not req.teacher_ids:
            if self.groups_by_id[req.group_id].direct_teacher_id is not None:
                return f"Directly assigned teacher for {subject.name} does not exist"
            return f"No available teacher qualified for {subject.name}"
        if not req.room_ids:
            room_rule = " of the required type" if req.room_type_id is not None else ""
            return f"No compatible room{room_rule} with capacity for {req.student_count} students"
        pool = self._teacher_pool(req)
        if not any(self._teacher_slots(teacher_id, req.cycle_number) for teacher_id in pool):
            if req.cycle_number is not None:
                return f"Qualified teachers have no available slots within the time window for cycle {req.cycle_number}"
            return f"Qualified teachers have no declared availability for {subject.name}"
        if all(
            teacher_id not in self.teachers
            or self.state.teacher_load[teacher_id] >= self.teachers[teacher_id].max_weekly_hours
            for teacher_id in pool
        ):
            return f"Qualified teachers for {subject.name} reached their maximum weekly hours"
        return f"No free slot combining teacher, room and group satisfies the constraints for {subject.name}"

    # Run

    def solve(self) -> tuple[list[SessionRequest], SolveResult]:
        self._load()
        self.groups_by_id = {group.id: group for group in self.groups}
        self._progress(15, "building requests")
        requests = self._build_requests()
        ordered = self._priority_order(requests)
        self.owner: dict[Placement, SessionRequest] = {}
        result = SolveResult()

        total = max(1, len(ordered))
        for index, req in enumerate(ordered, start=1):
            option = self._best_option(req)
            if option is not None:
                self._commit_option(req, option, result)
            elif not self._repair(req, result):
                result.unresolved.append((req, self._unresolved_reason(req)))
            if index % 25 == 0 or index == total:
                self._progress(20 + int(70 * index / total), "solving")

        return requests, result

    def run(self) -> GenerationReport:
        started = perf_counter()
        self._progress(5, "clearing previous auto assignments")
        try:
            removed = self.db.execute(
                delete(ScheduleAssignment).where(
                    ScheduleAssignment.period_id == self.period_id,
                    ScheduleAssignment.origin == AssignmentOrigin.auto,
                )
            ).rowcount or 0
            self.db.flush()

            requests, result = self.solve()
            logger.info(
                "GENERATION SOLVED | period_id=%s | groups=%s | requests=%s | placed=%s | unresolved=%s",
                self.period_id,
                len(self.groups),
                len(requests),
                len(result.placements),
                len(result.unresolved),
            )

            self._progress(95, "saving")
            for request_id in sorted(result.placements):
                placement = result.placements[request_id]
                self.db.add(
                    ScheduleAssignment(
                        group_id=placement.group_id,
                        subject_id=placement.subject_id,
                        teacher_id=placement.teacher_id,
                        classroom_id=placement.classroom_id,
                        period_id=self.period_id,
                        day=placement.day,
                        block_id=placement.block_id,
                        origin=AssignmentOrigin.auto,
                    )
                )

            report = self._report(result, removed=removed, runtime_ms=int((perf_counter() - started) * 1000))
            log_activity(
                self.db,
                action="generation.run",
                entity_type="period",
                entity_id=self.period_id,
                details={
                    "assigned_count": report.assigned_count,
                    "conflict_count": report.conflict_count,
                    "removed_auto_count": removed,
                    "runtime_ms": report.runtime_ms,
                },
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("GENERATION FAILED | period_id=%s", self.period_id)
            raise

        logger.info(
            "GENERATION DONE | period_id=%s | assigned=%s | conflicts=%s | success=%.2f | runtime_ms=%s",
            self.period_id,
            report.assigned_count,
            report.conflict_count,
            report.success_percentage,
            report.runtime_ms,
        )
        return report

    def _report(self, result: SolveResult, *, removed: int, runtime_ms: int) -> GenerationReport:
        assigned = len(result.placements)
        conflicts = len(result.unresolved)
        unresolved = [
            UnresolvedConflict(
                group_id=req.group_id,
                group_code=self.groups_by_id[req.group_id].code,
                subject_id=req.subject_id,
                subject_name=self.subjects[req.subject_id].name,
                reason=reason,
            )
            for req, reason in sorted(result.unresolved, key=lambda item: item[0].request_id)
        ]
        if conflicts:
            message = f"Generated {assigned} assignments with {conflicts} unresolved conflicts"
        else:
            message = f"Generated {assigned} assignments without conflicts"
        return GenerationReport(
            status="PARTIAL_FAILURE" if conflicts else "SUCCESS",
            message=message,
            period_id=self.period_id,
            assigned_count=assigned,
            conflict_count=conflicts,
            total_groups=len(self.groups),
            success_percentage=success_percentage(assigned, conflicts),
            preserved_count=self.preserved_count,
            removed_auto_count=removed,
            unresolved_conflicts=unresolved,
            runtime_ms=runtime_ms,
        )


def generate_schedule(
    db: Session,
    period_id: int,
    *,
    settings: Settings | None = None,
    registry: GenerationRegistry | None = None,
) -> GenerationReport:
    registry = registry or generation_registry
    with registry.hold(period_id):
        engine = SchedulingEngine(
            db=db,
            period_id=period_id,
            settings=settings,
            progress=lambda value, phase: registry.report(period_id, value, phase),
        )
        return engine.run()
