from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from horarios.db.base import Base


class RestrictionKind(str, Enum):
    max_teacher_hours_per_day = "MAX_HORAS_DIA_DOCENTE"
    max_consecutive_hours = "MAX_HORAS_CONSECUTIVAS"
    rest_between_blocks = "DESCANSO_ENTRE_BLOQUES"
    group_shift_preference = "PREFERENCIA_TURNO_GRUPO"
    room_travel_time = "TIEMPO_TRASLADO_AULAS"
    teacher_day_blackout = "RESTRICCION_DIA_DOCENTE"
    teacher_block_blackout = "RESTRICCION_HORA_DOCENTE"
    subject_specific_room = "AULA_ESPECIFICA_MATERIA"
    consecutive_subjects = "MATERIAS_CONSECUTIVAS"
    max_teacher_days = "MAX_DIAS_DOCENTE"


class Restriction(Base):
    __tablename__ = "restrictions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    code: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[RestrictionKind] = mapped_column(
        SAEnum(RestrictionKind, name="restriction_kind", values_callable=lambda items: [item.value for item in items]),
        nullable=False,
        index=True,
    )
    entity_id_1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    entity_id_2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    parameter_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    period_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
