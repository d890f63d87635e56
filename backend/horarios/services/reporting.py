from __future__ import annotations

from io import BytesIO
import logging
import re

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from sqlalchemy import select
from sqlalchemy.orm import Session

from horarios.core.exceptions import ResourceNotFoundError
from horarios.models.group import Group
from horarios.models.period import Period, TimeBlock
from horarios.models.room import Classroom
from horarios.models.career import Career
from horarios.models.schedule_assignment import ScheduleAssignment
from horarios.models.subject import Subject
from horarios.models.teacher import Teacher
from horarios.schemas.common import DAY_NAMES, DAY_VALUES, format_time
from horarios.schemas.report import BlockLabel, ScheduleCell, ScheduleGrid
from horarios.services.occupancy import block_sort_key

logger = logging.getLogger(__name__)

INVALID_SHEET_CHARS = re.compile(r"[\[\]\*\?/\\:]")
HEADER_FILL = PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid")
CELL_FILL = PatternFill(start_color="DDEBF7", end_color="DDEBF7", fill_type="solid")
THIN = Side(style="thin")
BORDER = Border(left=THIN, right=THIN, top=THIN, bottom=THIN)


def _block_labels(blocks: list[TimeBlock]) -> list[BlockLabel]:
    labels = []
    for block in sorted(blocks, key=block_sort_key):
        start, end = format_time(block.start_time), format_time(block.end_time)
        labels.append(
            BlockLabel(
                id=block.id,
                label=block.name or f"{start}-{end}",
                start_time=start,
                end_time=end,
                shift=block.shift.value,
            )
        )
    return labels


def build_schedule_grid(
    db: Session,
    period_id: int,
    *,
    group_id: int | None = None,
    teacher_id: int | None = None,
    classroom_id: int | None = None,
    career_id: int | None = None,
) -> ScheduleGrid:
    """Day x block grid of the committed assignments matching the filters."""
    period = db.get(Period, period_id)
    if period is None:
        raise ResourceNotFoundError("Period", period_id)

    view, title, entity_id = "general", f"General - {period.name}", None
    query = select(ScheduleAssignment).where(ScheduleAssignment.period_id == period_id)
    if group_id is not None:
        group = db.get(Group, group_id)
        if group is None:
            raise ResourceNotFoundError("Group", group_id)
        query = query.where(ScheduleAssignment.group_id == group_id)
        view, title, entity_id = "group", f"Group {group.code}", group_id
    if teacher_id is not None:
        teacher = db.get(Teacher, teacher_id)
        if teacher is None:
            raise ResourceNotFoundError("Teacher", teacher_id)
        query = query.where(ScheduleAssignment.teacher_id == teacher_id)
        view, title, entity_id = "teacher", f"Teacher {teacher.full_name}", teacher_id
    if classroom_id is not None:
        classroom = db.get(Classroom, classroom_id)
        if classroom is None:
            raise ResourceNotFoundError("Classroom", classroom_id)
        query = query.where(ScheduleAssignment.classroom_id == classroom_id)
        view, title, entity_id = "classroom", f"Room {classroom.name}", classroom_id
    if career_id is not None:
        career = db.get(Career, career_id)
        if career is None:
            raise ResourceNotFoundError("Career", career_id)
        career_groups = select(Group.id).where(Group.career_id == career_id)
        query = query.where(ScheduleAssignment.group_id.in_(career_groups))
        view, title, entity_id = "career", f"Career {career.code}", career_id

    rows = list(db.execute(query.order_by(ScheduleAssignment.day, ScheduleAssignment.block_id)).scalars())
    blocks = list(db.execute(select(TimeBlock)).scalars())

    subjects = _lookup(db, Subject, {row.subject_id for row in rows})
    teachers = _lookup(db, Teacher, {row.teacher_id for row in rows})
    classrooms = _lookup(db, Classroom, {row.classroom_id for row in rows})
    groups = _lookup(db, Group, {row.group_id for row in rows})

    cells = [
        ScheduleCell(
            assignment_id=row.id,
            day=row.day,
            block_id=row.block_id,
            subject_id=row.subject_id,
            subject_name=subjects[row.subject_id].name if row.subject_id in subjects else "",
            teacher_id=row.teacher_id,
            teacher_name=teachers[row.teacher_id].full_name if row.teacher_id in teachers else "",
            classroom_id=row.classroom_id,
            classroom_name=classrooms[row.classroom_id].name if row.classroom_id in classrooms else "",
            group_id=row.group_id,
            group_code=groups[row.group_id].code if row.group_id in groups else "",
        )
        for row in rows
    ]
    return ScheduleGrid(
        view=view,
        title=title,
        period_id=period_id,
        entity_id=entity_id,
        days=list(DAY_VALUES),
        blocks=_block_labels(blocks),
        cells=cells,
    )


def _lookup(db: Session, model, ids: set[int]) -> dict:
    if not ids:
        return {}
    return {item.id: item for item in db.execute(select(model).where(model.id.in_(ids))).scalars()}


def build_views(
    db: Session,
    period_id: int,
    *,
    group_id: int | None = None,
    teacher_id: int | None = None,
    classroom_id: int | None = None,
    career_id: int | None = None,
) -> list[ScheduleGrid]:
    """One grid per supplied filter, or the general grid when none is given."""
    views: list[ScheduleGrid] = []
    if group_id is not None:
        views.append(build_schedule_grid(db, period_id, group_id=group_id))
    if teacher_id is not None:
        views.append(build_schedule_grid(db, period_id, teacher_id=teacher_id))
    if classroom_id is not None:
        views.append(build_schedule_grid(db, period_id, classroom_id=classroom_id))
    if career_id is not None:
        views.append(build_schedule_grid(db, period_id, career_id=career_id))
    if not views:
        views.append(build_schedule_grid(db, period_id))
    return views


def _sheet_title(title: str, used: set[str]) -> str:
    base = INVALID_SHEET_CHARS.sub(" ", title).strip()[:31] or "Schedule"
    candidate = base
    counter = 2
    while candidate.lower() in used:
        suffix = f" ({counter})"
        candidate = f"{base[: 31 - len(suffix)]}{suffix}"
        counter += 1
    used.add(candidate.lower())
    return candidate


def _cell_text(cell: ScheduleCell, view: str) -> str:
    lines = [cell.subject_name]
    if view != "teacher":
        lines.append(cell.teacher_name)
    if view != "classroom":
        lines.append(cell.classroom_name)
    if view != "group":
        lines.append(cell.group_code)
    return "\n".join(line for line in lines if line)


def export_schedule_workbook(views: list[ScheduleGrid]) -> bytes:
    wb = Workbook()
    if views:
        wb.remove(wb.active)
    else:
        wb.active.title = "Schedule"
    used_titles: set[str] = set()

    for grid in views:
        ws = wb.create_sheet(_sheet_title(grid.title, used_titles))
        ws.cell(1, 1, grid.title).font = Font(bold=True, size=13)

        header_row = 3
        ws.cell(header_row, 1, "Bloque")
        for column, day in enumerate(grid.days, start=2):
            ws.cell(header_row, column, DAY_NAMES.get(day, str(day)))
        for column in range(1, len(grid.days) + 2):
            cell = ws.cell(header_row, column)
            cell.font = Font(bold=True)
            cell.fill = HEADER_FILL
            cell.border = BORDER
            cell.alignment = Alignment(horizontal="center", vertical="center")

        cells = grid.cell_map()
        for row_offset, block in enumerate(grid.blocks, start=1):
            row = header_row + row_offset
            label = ws.cell(row, 1, f"{block.label}\n{block.start_time}-{block.end_time}")
            label.font = Font(bold=True)
            label.border = BORDER
            label.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
            for column, day in enumerate(grid.days, start=2):
                entries = cells.get((day, block.id), [])
                target = ws.cell(row, column, "\n\n".join(_cell_text(entry, grid.view) for entry in entries))
                target.border = BORDER
                target.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
                if entries:
                    target.fill = CELL_FILL
            ws.row_dimensions[row].height = 60

        ws.column_dimensions["A"].width = 18
        for column in range(2, len(grid.days) + 2):
            ws.column_dimensions[get_column_letter(column)].width = 26

    buffer = BytesIO()
    wb.save(buffer)
    logger.info("SCHEDULE EXPORT | sheets=%s | cells=%s", len(views), sum(len(view.cells) for view in views))
    return buffer.getvalue()
