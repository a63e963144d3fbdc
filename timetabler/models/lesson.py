from sqlalchemy import JSON, ForeignKey, Integer, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Lesson(Base):
    __tablename__ = "lessons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    timetable_id: Mapped[int] = mapped_column(
        ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True
    )

    subject_id: Mapped[int] = mapped_column(ForeignKey("subjects.id"), nullable=False, index=True)
    day_definition_id: Mapped[int] = mapped_column(ForeignKey("day_definitions.id"), nullable=False)
    week_definition_id: Mapped[int] = mapped_column(ForeignKey("week_definitions.id"), nullable=False)
    period_id: Mapped[int] = mapped_column(ForeignKey("periods.id"), nullable=False)

    # persisted ids, kept sorted
    teacher_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)
    classroom_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    periods_per_week: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=1)


class LessonCohort(Base):
    __tablename__ = "lesson_cohorts"

    lesson_id: Mapped[int] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"), primary_key=True
    )
    cohort_id: Mapped[int] = mapped_column(
        ForeignKey("cohorts.id", ondelete="CASCADE"), primary_key=True, index=True
    )
