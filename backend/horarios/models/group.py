from datetime import datetime

from sqlalchemy import DateTime, Enum as SAEnum, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from horarios.db.base import Base
from horarios.models.period import Shift


class Group(Base):
    __tablename__ = "groups"
    __table_args__ = (
        UniqueConstraint("period_id", "code", name="uq_groups_period_code"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    career_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    estimated_students: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    preferred_shift: Mapped[Shift] = mapped_column(
        SAEnum(Shift, name="preferred_shift", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        default=Shift.morning,
    )
    direct_teacher_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class GroupSubject(Base):
    __tablename__ = "group_subjects"
    __table_args__ = (
        UniqueConstraint("group_id", "subject_id", name="uq_group_subjects_group_subject"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    subject_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
