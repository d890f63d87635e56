from datetime import time

import pytest

from horarios.models import Career, Cycle, Subject, TimeBlock
from horarios.services.cycle_policy import band_for, block_fits_cycle, cycle_number_for, violation_message


def _block(start: str) -> TimeBlock:
    return TimeBlock(id=1, start_time=time.fromisoformat(start), end_time=time.fromisoformat(start))


@pytest.mark.parametrize(
    ("cycle_number", "start", "fits"),
    [
        (1, "07:00", True),
        (3, "12:00", True),
        (3, "13:00", False),
        (4, "13:00", True),
        (6, "17:30", True),
        (6, "18:00", False),
        (7, "18:00", True),
        (9, "21:00", True),
        (7, "07:00", False),
        (None, "23:00", True),
    ],
)
def test_block_fits_cycle_band(cycle_number, start, fits):
    assert block_fits_cycle(_block(start), cycle_number) is fits


def test_cycle_number_depends_on_mode():
    subject = Subject(cycle_id=5)
    cycle = Cycle(id=5, order=4)
    career = Career(total_curriculum_hours=7)

    assert cycle_number_for(mode="cycle_order", subject=subject, cycle=cycle, career=career) == 4
    assert cycle_number_for(mode="curriculum_hours", subject=subject, cycle=cycle, career=career) == 4
    assert cycle_number_for(mode="disabled", subject=subject, cycle=cycle, career=career) is None
    assert cycle_number_for(mode="cycle_order", subject=Subject(cycle_id=None), cycle=None, career=career) is None


def test_violation_message_names_the_band():
    message = violation_message(_block("08:00"), 5)
    assert band_for(5).label in message
    assert "13:00" in message and "08:00" in message
