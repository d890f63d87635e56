from io import BytesIO

import pytest
from openpyxl import load_workbook

from horarios.core.exceptions import ResourceNotFoundError
from horarios.models import AssignmentOrigin, ScheduleAssignment
from horarios.schemas.report import ScheduleGrid
from horarios.services.reporting import build_schedule_grid, build_views, export_schedule_workbook


@pytest.fixture()
def timetable(db_session, factory):
    unit = factory.unit()
    career = factory.career(unit)
    other_career = factory.career(unit)
    room_type = factory.room_type()
    period = factory.period("2026-1")
    blocks = factory.morning_blocks(2)
    room = factory.classroom(unit=unit, room_type=room_type, name="A-101")
    subject = factory.subject(careers=[career, other_career], name="Algebra")
    teacher = factory.teacher()
    group = factory.group(career=career, period=period, subjects=[subject], code="ING-1A")
    other = factory.group(career=other_career, period=period, subjects=[subject], code="ADM-1A")
    for day, block, grp in ((1, blocks[0], group), (2, blocks[1], other)):
        db_session.add(
            ScheduleAssignment(
                group_id=grp.id,
                subject_id=subject.id,
                teacher_id=teacher.id,
                classroom_id=room.id,
                period_id=period.id,
                day=day,
                block_id=block.id,
                origin=AssignmentOrigin.auto,
            )
        )
    db_session.commit()

    class Timetable:
        pass

    t = Timetable()
    t.period, t.blocks, t.room, t.subject, t.teacher = period, blocks, room, subject, teacher
    t.group, t.other, t.career, t.other_career = group, other, career, other_career
    return t


def test_general_grid_lists_every_assignment(db_session, timetable):
    grid = build_schedule_grid(db_session, timetable.period.id)

    assert grid.view == "general"
    assert grid.days == [1, 2, 3, 4, 5, 6]
    assert [block.label for block in grid.blocks] == ["07:00-08:00", "08:00-09:00"]
    assert len(grid.cells) == 2
    cell = grid.cell_map()[(1, timetable.blocks[0].id)][0]
    assert cell.subject_name == "Algebra"
    assert cell.classroom_name == "A-101"
    assert cell.group_code == "ING-1A"
    assert cell.teacher_name == timetable.teacher.full_name


def test_filters_narrow_the_grid(db_session, timetable):
    by_group = build_schedule_grid(db_session, timetable.period.id, group_id=timetable.group.id)
    by_career = build_schedule_grid(db_session, timetable.period.id, career_id=timetable.other_career.id)
    by_teacher = build_schedule_grid(db_session, timetable.period.id, teacher_id=timetable.teacher.id)

    assert by_group.view == "group"
    assert by_group.entity_id == timetable.group.id
    assert [cell.group_code for cell in by_group.cells] == ["ING-1A"]
    assert [cell.group_code for cell in by_career.cells] == ["ADM-1A"]
    assert len(by_teacher.cells) == 2


def test_filter_without_matches_gives_empty_grid(db_session, factory, timetable):
    idle = factory.teacher()

    grid = build_schedule_grid(db_session, timetable.period.id, teacher_id=idle.id)

    assert grid.cells == []
    assert len(grid.blocks) == 2


def test_unknown_filter_entity_is_not_found(db_session, timetable):
    with pytest.raises(ResourceNotFoundError):
        build_schedule_grid(db_session, timetable.period.id, classroom_id=9999)
    with pytest.raises(ResourceNotFoundError):
        build_schedule_grid(db_session, 9999)


def test_build_views_one_grid_per_filter(db_session, timetable):
    views = build_views(db_session, timetable.period.id, group_id=timetable.group.id, classroom_id=timetable.room.id)
    assert [view.view for view in views] == ["group", "classroom"]
    assert [view.view for view in build_views(db_session, timetable.period.id)] == ["general"]


def test_export_workbook_has_one_sheet_per_view(db_session, timetable):
    views = build_views(db_session, timetable.period.id, group_id=timetable.group.id, teacher_id=timetable.teacher.id)

    wb = load_workbook(BytesIO(export_schedule_workbook(views)))

    assert wb.sheetnames == ["Group ING-1A", f"Teacher {timetable.teacher.full_name}"]
    sheet = wb["Group ING-1A"]
    assert sheet.cell(3, 2).value == "Lunes"
    assert "Algebra" in sheet.cell(4, 2).value
    assert "A-101" in sheet.cell(4, 2).value


def test_export_sanitizes_and_deduplicates_titles():
    grid = ScheduleGrid(view="group", title="Group A/B: evening", period_id=1)

    wb = load_workbook(BytesIO(export_schedule_workbook([grid, grid])))

    assert wb.sheetnames == ["Group A B  evening", "Group A B  evening (2)"]


def test_export_without_views_still_produces_a_sheet():
    wb = load_workbook(BytesIO(export_schedule_workbook([])))
    assert wb.sheetnames == ["Schedule"]


def test_report_endpoints(client, timetable):
    report = client.get("/api/reportes-horarios", params={"period_id": timetable.period.id, "group_id": timetable.group.id})
    assert report.status_code == 200
    assert report.json()[0]["cells"][0]["group_code"] == "ING-1A"

    export = client.get("/api/exportar-horarios-excel", params={"period_id": timetable.period.id})
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "attachment" in export.headers["content-disposition"]
    assert load_workbook(BytesIO(export.content)).sheetnames == ["General - 2026-1"]

    missing = client.get("/api/reportes-horarios", params={"period_id": 9999})
    assert missing.status_code == 404
