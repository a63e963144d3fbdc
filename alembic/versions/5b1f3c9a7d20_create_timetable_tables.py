"""create timetable tables

Revision ID: 5b1f3c9a7d20
Revises:
Create Date: 2026-10-12 09:41:05.118342

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1f3c9a7d20'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "timetables",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_timetables_valid_from", "timetables", ["valid_from"])

    op.create_table(
        "periods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("period", sa.Integer(), nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
    )
    op.create_index("ix_periods_period", "periods", ["period"], unique=True)

    op.create_table(
        "day_definitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("short", sa.String(length=20), nullable=False),
        sa.Column("days", sa.JSON(), nullable=False),
    )
    op.create_index("ix_day_definitions_name", "day_definitions", ["name"], unique=True)

    op.create_table(
        "week_definitions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("short", sa.String(length=20), nullable=False),
        sa.Column("weeks", sa.JSON(), nullable=False),
    )
    op.create_index("ix_week_definitions_name", "week_definitions", ["name"], unique=True)

    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("short", sa.String(length=40), nullable=False),
    )
    op.create_index("ix_subjects_name", "subjects", ["name"], unique=True)

    op.create_table(
        "teachers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("first_name", sa.String(length=120), nullable=False),
        sa.Column("last_name", sa.String(length=120), nullable=False),
        sa.Column("short", sa.String(length=40), nullable=False),
        sa.UniqueConstraint("first_name", "last_name", name="uq_teachers_name"),
    )
    op.create_index("ix_teachers_first_name", "teachers", ["first_name"])
    op.create_index("ix_teachers_last_name", "teachers", ["last_name"])

    op.create_table(
        "buildings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
    )
    op.create_index("ix_buildings_name", "buildings", ["name"], unique=True)

    op.create_table(
        "classrooms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("short", sa.String(length=40), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("building_id", sa.Integer(), sa.ForeignKey("buildings.id"), nullable=False),
    )
    op.create_index("ix_classrooms_name", "classrooms", ["name"], unique=True)
    op.create_index("ix_classrooms_building_id", "classrooms", ["building_id"])

    op.create_table(
        "cohorts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("short", sa.String(length=40), nullable=False),
        sa.Column("teacher_id", sa.Integer(), sa.ForeignKey("teachers.id"), nullable=True),
        sa.Column(
            "timetable_id", sa.Integer(), sa.ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False
        ),
        sa.UniqueConstraint("name", "timetable_id", name="uq_cohorts_name_timetable"),
    )
    op.create_index("ix_cohorts_name", "cohorts", ["name"])
    op.create_index("ix_cohorts_timetable_id", "cohorts", ["timetable_id"])

    op.create_table(
        "lessons",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "timetable_id", sa.Integer(), sa.ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("subject_id", sa.Integer(), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("day_definition_id", sa.Integer(), sa.ForeignKey("day_definitions.id"), nullable=False),
        sa.Column("week_definition_id", sa.Integer(), sa.ForeignKey("week_definitions.id"), nullable=False),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("periods.id"), nullable=False),
        sa.Column("teacher_ids", sa.JSON(), nullable=False),
        sa.Column("classroom_ids", sa.JSON(), nullable=False),
        sa.Column("periods_per_week", sa.SmallInteger(), nullable=False),
    )
    op.create_index("ix_lessons_timetable_id", "lessons", ["timetable_id"])
    op.create_index("ix_lessons_subject_id", "lessons", ["subject_id"])

    op.create_table(
        "lesson_cohorts",
        sa.Column(
            "lesson_id", sa.Integer(), sa.ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column(
            "cohort_id", sa.Integer(), sa.ForeignKey("cohorts.id", ondelete="CASCADE"), primary_key=True
        ),
    )
    op.create_index("ix_lesson_cohorts_cohort_id", "lesson_cohorts", ["cohort_id"])


def downgrade() -> None:
    op.drop_index("ix_lesson_cohorts_cohort_id", table_name="lesson_cohorts")
    op.drop_table("lesson_cohorts")

    op.drop_index("ix_lessons_subject_id", table_name="lessons")
    op.drop_index("ix_lessons_timetable_id", table_name="lessons")
    op.drop_table("lessons")

    op.drop_index("ix_cohorts_timetable_id", table_name="cohorts")
    op.drop_index("ix_cohorts_name", table_name="cohorts")
    op.drop_table("cohorts")

    op.drop_index("ix_classrooms_building_id", table_name="classrooms")
    op.drop_index("ix_classrooms_name", table_name="classrooms")
    op.drop_table("classrooms")

    op.drop_index("ix_buildings_name", table_name="buildings")
    op.drop_table("buildings")

    op.drop_index("ix_teachers_last_name", table_name="teachers")
    op.drop_index("ix_teachers_first_name", table_name="teachers")
    op.drop_table("teachers")

    op.drop_index("ix_subjects_name", table_name="subjects")
    op.drop_table("subjects")

    op.drop_index("ix_week_definitions_name", table_name="week_definitions")
    op.drop_table("week_definitions")

    op.drop_index("ix_day_definitions_name", table_name="day_definitions")
    op.drop_table("day_definitions")

    op.drop_index("ix_periods_period", table_name="periods")
    op.drop_table("periods")

    op.drop_index("ix_timetables_valid_from", table_name="timetables")
    op.drop_table("timetables")
