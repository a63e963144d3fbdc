from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timetabler.db.base import Base
from timetabler.models.building import Building


class Classroom(Base):
    __tablename__ = "classrooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    short: Mapped[str] = mapped_column(String(40), nullable=False)

    # NULL = no limit ("*" in the export)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)

    building_id: Mapped[int] = mapped_column(ForeignKey("buildings.id"), nullable=False, index=True)

    building: Mapped[Building] = relationship()
