"""create scheduling schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None

RESTRICTION_KINDS = (
    "MAX_HORAS_DIA_DOCENTE",
    "MAX_HORAS_CONSECUTIVAS",
    "DESCANSO_ENTRE_BLOQUES",
    "PREFERENCIA_TURNO_GRUPO",
    "TIEMPO_TRASLADO_AULAS",
    "RESTRICCION_DIA_DOCENTE",
    "RESTRICCION_HORA_DOCENTE",
    "AULA_ESPECIFICA_MATERIA",
    "MATERIAS_CONSECUTIVAS",
    "MAX_DIAS_DOCENTE",
)


def _timestamps(*, updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:
    contract_type = sa.Enum("TC", "MT", "TP", name="contract_type")
    shift = sa.Enum("M", "T", "N", name="shift")
    preferred_shift = sa.Enum("M", "T", "N", name="preferred_shift")
    availability_origin = sa.Enum("manual", "import", name="availability_origin")
    restriction_kind = sa.Enum(*RESTRICTION_KINDS, name="restriction_kind")
    assignment_origin = sa.Enum("manual", "auto", "override", name="assignment_origin")

    op.create_table(
        "academic_units",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_academic_units_name", "academic_units", ["name"], unique=True)

    op.create_table(
        "careers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("total_curriculum_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_careers_code", "careers", ["code"], unique=True)
    op.create_index("ix_careers_unit_id", "careers", ["unit_id"])

    op.create_table(
        "cycles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("career_id", sa.Integer(), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("career_id", "order", name="uq_cycles_career_order"),
    )
    op.create_index("ix_cycles_career_id", "cycles", ["career_id"])

    op.create_table(
        "room_types",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
    )

    op.create_table(
        "classrooms",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("room_type_id", sa.Integer(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("location", sa.String(length=200), nullable=False),
        sa.Column("extra_resources", sa.Text(), nullable=True),
        sa.Column("unit_id", sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_classrooms_name", "classrooms", ["name"])
    op.create_index("ix_classrooms_room_type_id", "classrooms", ["room_type_id"])
    op.create_index("ix_classrooms_unit_id", "classrooms", ["unit_id"])

    op.create_table(
        "specialties",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=150), nullable=False, unique=True),
    )

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("theory_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("practice_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lab_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("required_room_type_id", sa.Integer(), nullable=True),
        sa.Column("required_specialty_ids", sa.JSON(), nullable=False),
        sa.Column("cycle_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_subjects_code", "subjects", ["code"], unique=True)
    op.create_index("ix_subjects_cycle_id", "subjects", ["cycle_id"])

    op.create_table(
        "subject_careers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("career_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("subject_id", "career_id", name="uq_subject_careers_subject_career"),
    )
    op.create_index("ix_subject_careers_subject_id", "subject_careers", ["subject_id"])
    op.create_index("ix_subject_careers_career_id", "subject_careers", ["career_id"])

    op.create_table(
        "teachers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("first_names", sa.String(length=150), nullable=False),
        sa.Column("last_names", sa.String(length=150), nullable=False),
        sa.Column("national_id", sa.String(length=30), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("contract_type", contract_type, nullable=False, server_default="TC"),
        sa.Column("max_weekly_hours", sa.Integer(), nullable=False, server_default="20"),
        sa.Column("unit_id", sa.Integer(), nullable=True),
        sa.Column("specialty_ids", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_teachers_code", "teachers", ["code"], unique=True)
    op.create_index("ix_teachers_email", "teachers", ["email"], unique=True)
    op.create_index("ix_teachers_unit_id", "teachers", ["unit_id"])

    op.create_table(
        "periods",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(updated=False),
    )

    op.create_table(
        "time_blocks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=True),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("shift", shift, nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("career_id", sa.Integer(), nullable=False),
        sa.Column("period_id", sa.Integer(), nullable=False),
        sa.Column("estimated_students", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("preferred_shift", preferred_shift, nullable=False, server_default="M"),
        sa.Column("direct_teacher_id", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("period_id", "code", name="uq_groups_period_code"),
    )
    op.create_index("ix_groups_career_id", "groups", ["career_id"])
    op.create_index("ix_groups_period_id", "groups", ["period_id"])

    op.create_table(
        "group_subjects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("group_id", "subject_id", name="uq_group_subjects_group_subject"),
    )
    op.create_index("ix_group_subjects_group_id", "group_subjects", ["group_id"])
    op.create_index("ix_group_subjects_subject_id", "group_subjects", ["subject_id"])

    op.create_table(
        "teacher_availability",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("teacher_id", sa.Integer(), nullable=False),
        sa.Column("period_id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("block_id", sa.Integer(), nullable=False),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("preference", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("origin", availability_origin, nullable=False, server_default="manual"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("teacher_id", "period_id", "day", "block_id", name="uq_teacher_availability_slot"),
    )
    op.create_index("ix_teacher_availability_teacher_id", "teacher_availability", ["teacher_id"])
    op.create_index("ix_teacher_availability_period_id", "teacher_availability", ["period_id"])

    op.create_table(
        "restrictions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("kind", restriction_kind, nullable=False),
        sa.Column("entity_id_1", sa.Integer(), nullable=True),
        sa.Column("entity_id_2", sa.Integer(), nullable=True),
        sa.Column("parameter_value", sa.Float(), nullable=True),
        sa.Column("period_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )
    op.create_index("ix_restrictions_code", "restrictions", ["code"], unique=True)
    op.create_index("ix_restrictions_kind", "restrictions", ["kind"])
    op.create_index("ix_restrictions_period_id", "restrictions", ["period_id"])

    op.create_table(
        "schedule_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("group_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("teacher_id", sa.Integer(), nullable=False),
        sa.Column("classroom_id", sa.Integer(), nullable=False),
        sa.Column("period_id", sa.Integer(), nullable=False),
        sa.Column("day", sa.Integer(), nullable=False),
        sa.Column("block_id", sa.Integer(), nullable=False),
        sa.Column("origin", assignment_origin, nullable=False, server_default="manual"),
        *_timestamps(updated=False),
        sa.UniqueConstraint("period_id", "day", "block_id", "teacher_id", name="uq_schedule_assignments_teacher_slot"),
        sa.UniqueConstraint("period_id", "day", "block_id", "classroom_id", name="uq_schedule_assignments_room_slot"),
        sa.UniqueConstraint("period_id", "day", "block_id", "group_id", name="uq_schedule_assignments_group_slot"),
    )
    for column in ("group_id", "subject_id", "teacher_id", "classroom_id", "period_id"):
        op.create_index(f"ix_schedule_assignments_{column}", "schedule_assignments", [column])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=True),
        sa.Column("entity_id", sa.String(length=100), nullable=True),
        sa.Column("details", sa.JSON(), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])


def downgrade() -> None:
    for table in (
        "activity_logs",
        "schedule_assignments",
        "restrictions",
        "teacher_availability",
        "group_subjects",
        "groups",
        "time_blocks",
        "periods",
        "teachers",
        "subject_careers",
        "subjects",
        "specialties",
        "classrooms",
        "room_types",
        "cycles",
        "careers",
        "academic_units",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ("assignment_origin", "restriction_kind", "availability_origin", "preferred_shift", "shift", "contract_type"):
        sa.Enum(name=name).drop(bind, checkfirst=True)
