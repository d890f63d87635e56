from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from horarios.db.base import Base


class AvailabilityOrigin(str, Enum):
    manual = "manual"
    imported = "import"


class TeacherAvailability(Base):
    __tablename__ = "teacher_availability"
    __table_args__ = (
        UniqueConstraint("teacher_id", "period_id", "day", "block_id", name="uq_teacher_availability_slot"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    teacher_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    period_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    day: Mapped[int] = mapped_column(Integer, nullable=False)
    block_id: Mapped[int] = mapped_column(Integer, nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    preference: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    origin: Mapped[AvailabilityOrigin] = mapped_column(
        SAEnum(
            AvailabilityOrigin,
            name="availability_origin",
            values_callable=lambda items: [item.value for item in items],
        ),
        nullable=False,
        default=AvailabilityOrigin.manual,
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
