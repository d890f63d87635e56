from pydantic import BaseModel, Field


class BlockLabel(BaseModel):
    id: int
    label: str
    start_time: str
    end_time: str
    shift: str


class ScheduleCell(BaseModel):
    assignment_id: int
    day: int
    block_id: int
    subject_id: int
    subject_name: str
    teacher_id: int
    teacher_name: str
    classroom_id: int
    classroom_name: str
    group_id: int
    group_code: str


class ScheduleGrid(BaseModel):
    view: str
    title: str
    period_id: int
    entity_id: int | None = None
    days: list[int] = Field(default_factory=list)
    blocks: list[BlockLabel] = Field(default_factory=list)
    cells: list[ScheduleCell] = Field(default_factory=list)

    def cell_map(self) -> dict[tuple[int, int], list[ScheduleCell]]:
        mapped: dict[tuple[int, int], list[ScheduleCell]] = {}
        for cell in self.cells:
            mapped.setdefault((cell.day, cell.block_id), []).append(cell)
        return mapped
