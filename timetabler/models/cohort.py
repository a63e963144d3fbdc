from sqlalchemy import ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Cohort(Base):
    __tablename__ = "cohorts"
    __table_args__ = (UniqueConstraint("name", "timetable_id", name="uq_cohorts_name_timetable"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    short: Mapped[str] = mapped_column(String(40), nullable=False)

    # supervising (form) teacher
    teacher_id: Mapped[int | None] = mapped_column(ForeignKey("teachers.id"), nullable=True)

    timetable_id: Mapped[int] = mapped_column(
        ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True
    )
