from __future__ import annotations

from dataclasses import dataclass
from io import BytesIO
import logging
import unicodedata
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.core.exceptions import ResourceNotFoundError, ValidationFailedError
from horarios.models.availability import AvailabilityOrigin, TeacherAvailability
from horarios.models.period import Period, TimeBlock
from horarios.models.teacher import Teacher
from horarios.schemas.common import DAY_NAMES, DAY_VALUES
from horarios.services.outcome import Outcome

logger = logging.getLogger(__name__)

HEADER_ALIASES = {
    "dia_semana": "day",
    "dia": "day",
    "day": "day",
    "bloque_horario": "block",
    "bloque": "block",
    "block": "block",
    "block_id": "block",
    "esta_disponible": "available",
    "disponible": "available",
    "available": "available",
    "is_available": "available",
}
REQUIRED_COLUMNS = ("day", "block", "available")

TRUE_TOKENS = {"true", "si", "s", "yes", "y", "1", "x", "verdadero"}
FALSE_TOKENS = {"false", "no", "n", "0", "", "falso"}


def _fold(value: str) -> str:
    normalized = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in normalized if not unicodedata.combining(ch)).strip().lower()


DAY_LOOKUP = {_fold(name): day for day, name in DAY_NAMES.items()}


@dataclass(frozen=True)
class ImportRow:
    row_number: int
    day: object
    block: object
    available: object


@dataclass(frozen=True)
class RowError:
    row: int
    reason: str


def is_available(db: Session, *, teacher_id: int, period_id: int, day: int, block_id: int) -> bool:
    """Default-deny lookup: a slot without a stored record is unavailable."""
    record = db.execute(
        select(TeacherAvailability.is_available).where(
            TeacherAvailability.teacher_id == teacher_id,
            TeacherAvailability.period_id == period_id,
            TeacherAvailability.day == day,
            TeacherAvailability.block_id == block_id,
        )
    ).scalar_one_or_none()
    return bool(record)


class AvailabilityIndex:
    """Read-only snapshot of one period's availability, used by the solver."""

    def __init__(self, records: list[TeacherAvailability]) -> None:
        self._slots: dict[tuple[int, int, int], tuple[bool, int]] = {}
        for record in records:
            self._slots[(record.teacher_id, record.day, record.block_id)] = (
                bool(record.is_available),
                int(record.preference or 0),
            )

    @classmethod
    def load(cls, db: Session, period_id: int) -> "AvailabilityIndex":
        records = list(
            db.execute(select(TeacherAvailability).where(TeacherAvailability.period_id == period_id)).scalars()
        )
        return cls(records)

    def is_available(self, teacher_id: int, day: int, block_id: int) -> bool:
        available, _ = self._slots.get((teacher_id, day, block_id), (False, 0))
        return available

    def preference(self, teacher_id: int, day: int, block_id: int) -> int:
        available, preference = self._slots.get((teacher_id, day, block_id), (False, 0))
        return preference if available else 0

    def available_slots(self, teacher_id: int) -> list[tuple[int, int]]:
        return sorted(
            (day, block_id)
            for (owner, day, block_id), (available, _) in self._slots.items()
            if owner == teacher_id and available
        )


def upsert_availability(
    db: Session,
    *,
    teacher_id: int,
    period_id: int,
    day: int,
    block_id: int,
    is_available: bool,
    preference: int | None = None,
    origin: AvailabilityOrigin = AvailabilityOrigin.manual,
) -> tuple[TeacherAvailability, bool]:
    record = db.execute(
        select(TeacherAvailability).where(
            TeacherAvailability.teacher_id == teacher_id,
            TeacherAvailability.period_id == period_id,
            TeacherAvailability.day == day,
            TeacherAvailability.block_id == block_id,
        )
    ).scalar_one_or_none()
    created = record is None
    if record is None:
        record = TeacherAvailability(
            teacher_id=teacher_id,
            period_id=period_id,
            day=day,
            block_id=block_id,
            preference=0,
        )
        db.add(record)
    record.is_available = is_available
    if preference is not None:
        record.preference = preference
    record.origin = origin
    db.flush()
    return record, created


def parse_bool(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        if value in (0, 1):
            return bool(value)
        raise ValueError(f"'{value}' is not a boolean flag")
    token = _fold(str(value))
    if token in TRUE_TOKENS:
        return True
    if token in FALSE_TOKENS:
        return False
    raise ValueError(f"'{value}' is not a boolean flag")


def parse_day(value: object) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"unknown day '{value}'")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"unknown day '{value}'")
        value = int(value)
    if isinstance(value, int):
        day = value
    else:
        text = _fold(str(value))
        if text in DAY_LOOKUP:
            return DAY_LOOKUP[text]
        try:
            day = int(text)
        except ValueError:
            raise ValueError(f"unknown day '{value}'") from None
    if day not in DAY_VALUES:
        raise ValueError(f"unknown day '{value}'")
    return day


def parse_block_id(value: object) -> int:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"unknown block '{value}'")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"unknown block '{value}'")
        return int(value)
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        raise ValueError(f"unknown block '{value}'") from None


def import_availability_rows(
    db: Session,
    *,
    teacher_id: int,
    period_id: int,
    rows: list[ImportRow],
) -> Outcome[TeacherAvailability, RowError]:
    """Upsert each valid row independently.

    Rows that fail validation are reported and skipped. Valid rows are committed
    one at a time, so a later failure never rolls back an earlier success.
    """
    if db.get(Teacher, teacher_id) is None:
        raise ResourceNotFoundError("Teacher", teacher_id)
    if db.get(Period, period_id) is None:
        raise ResourceNotFoundError("Period", period_id)

    blocks = {block.id: block for block in db.execute(select(TimeBlock)).scalars()}
    outcome: Outcome[TeacherAvailability, RowError] = Outcome()

    for row in rows:
        try:
            day = parse_day(row.day)
            block_id = parse_block_id(row.block)
            block = blocks.get(block_id)
            if block is None:
                raise ValueError(f"unknown block '{row.block}'")
            if not block.applies_to(day):
                raise ValueError(f"block {block_id} is not scheduled on day {day}")
            available = parse_bool(row.available)
        except ValueError as exc:
            outcome.fail(RowError(row=row.row_number, reason=str(exc)))
            continue

        record, _ = upsert_availability(
            db,
            teacher_id=teacher_id,
            period_id=period_id,
            day=day,
            block_id=block_id,
            is_available=available,
            origin=AvailabilityOrigin.imported,
        )
        db.commit()
        outcome.ok(record)

    logger.info(
        "AVAILABILITY IMPORT | teacher_id=%s | period_id=%s | imported=%s | rejected=%s",
        teacher_id,
        period_id,
        len(outcome.successes),
        len(outcome.failures),
    )
    return outcome


def parse_availability_workbook(content: bytes, *, max_rows: int = 5000) -> list[ImportRow]:
    """Read availability rows from the first sheet of an .xlsx upload."""
    try:
        workbook = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise ValidationFailedError(
            "Uploaded file is not a readable .xlsx workbook",
            details={"error": str(exc)},
        ) from exc

    try:
        sheet = workbook.worksheets[0]
        columns: dict[str, int] | None = None
        rows: list[ImportRow] = []
        for row_number, values in enumerate(sheet.iter_rows(values_only=True), start=1):
            if values is None or all(value is None or str(value).strip() == "" for value in values):
                continue
            if columns is None:
                columns = _header_columns(values)
                continue
            if len(rows) >= max_rows:
                raise ValidationFailedError(
                    f"Workbook exceeds the maximum of {max_rows} data rows",
                    details={"max_rows": max_rows},
                )
            rows.append(
                ImportRow(
                    row_number=row_number,
                    day=_cell(values, columns["day"]),
                    block=_cell(values, columns["block"]),
                    available=_cell(values, columns["available"]),
                )
            )
    finally:
        workbook.close()

    if columns is None:
        raise ValidationFailedError(
            "Workbook has no header row",
            details={"required_columns": ["dia_semana", "bloque_horario", "esta_disponible"]},
        )
    return rows


def _header_columns(values: tuple) -> dict[str, int]:
    columns: dict[str, int] = {}
    for index, value in enumerate(values):
        if value is None:
            continue
        key = HEADER_ALIASES.get(_fold(str(value)).replace(" ", "_"))
        if key and key not in columns:
            columns[key] = index
    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise ValidationFailedError(
            "Workbook header must name the columns dia_semana, bloque_horario and esta_disponible",
            details={"missing_columns": missing},
        )
    return columns


def _cell(values: tuple, index: int) -> object:
    if index >= len(values):
        return None
    return values[index]
