from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from horarios.db.base import Base


class AssignmentOrigin(str, Enum):
    manual = "manual"
    auto = "auto"
    override = "override"


PRESERVED_ORIGINS = (AssignmentOrigin.manual, AssignmentOrigin.override)


class ScheduleAssignment(Base):
    __tablename__ = "schedule_assignments"
    __table_args__ = (
        UniqueConstraint("period_id", "day", "block_id", "teacher_id", name="uq_schedule_assignments_teacher_slot"),
        UniqueConstraint("period_id", "day", "block_id", "classroom_id", name="uq_schedule_assignments_room_slot"),
        UniqueConstraint("period_id", "day", "block_id", "group_id", name="uq_schedule_assignments_group_slot"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    teacher_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    classroom_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    block_id: Mapped[int] = mapped_column(Integer, nullable=False)
    origin: Mapped[AssignmentOrigin] = mapped_column(
        SAEnum(AssignmentOrigin, name="assignment_origin", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=AssignmentOrigin.manual,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
