"""Time-of-day bands for subjects by curriculum cycle.

Cycles 1-3 start between 07:00 and 13:00, cycles 4-6 between 13:00 and 18:00
and cycles 7 and above between 18:00 and 22:00.
"""

from __future__ import annotations

from dataclasses import dataclass
import math

from horarios.core.config import CyclePolicyMode
from horarios.models.career import Career, Cycle
from horarios.models.period import TimeBlock
from horarios.models.subject import Subject


@dataclass(frozen=True)
class CycleBand:
    label: str
    start_hour: int
    end_hour: int

    def admits(self, hour: int) -> bool:
        return self.start_hour <= hour < self.end_hour


EARLY_BAND = CycleBand("cycles 1-3", 7, 13)
MIDDLE_BAND = CycleBand("cycles 4-6", 13, 18)
LATE_BAND = CycleBand("cycles 7+", 18, 22)


def band_for(cycle_number: int) -> CycleBand:
    if cycle_number <= 3:
        return EARLY_BAND
    if cycle_number <= 6:
        return MIDDLE_BAND
    return LATE_BAND


def cycle_number_for(
    *,
    mode: CyclePolicyMode,
    subject: Subject,
    cycle: Cycle | None,
    career: Career | None,
) -> int | None:
    """Return the cycle number that governs the subject, or None when unconstrained."""
    if mode == "disabled":
        return None
    if mode == "curriculum_hours":
        # Legacy proxy kept for installations that relied on it.
        if career is None:
            return None
        return max(1, math.ceil((career.total_curriculum_hours or 0) / 2))
    if subject.cycle_id is None or cycle is None:
        return None
    return cycle.order


def block_fits_cycle(block: TimeBlock, cycle_number: int | None) -> bool:
    if cycle_number is None:
        return True
    return band_for(cycle_number).admits(block.start_time.hour)


def violation_message(block: TimeBlock, cycle_number: int) -> str:
    band = band_for(cycle_number)
    return (
        f"Subjects in {band.label} must start between {band.start_hour:02d}:00 and "
        f"{band.end_hour:02d}:00; block {block.id} starts at {block.start_time.strftime('%H:%M')}"
    )
