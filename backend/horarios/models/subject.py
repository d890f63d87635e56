from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from horarios.db.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    theory_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    practice_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lab_hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    required_room_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    required_specialty_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    cycle_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())

    @property
    def total_hours(self) -> int:
        return (self.theory_hours or 0) + (self.practice_hours or 0) + (self.lab_hours or 0)


class SubjectCareer(Base):
    __tablename__ = "subject_careers"
    __table_args__ = (
        UniqueConstraint("subject_id", "career_id", name="uq_subject_careers_subject_career"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    career_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
