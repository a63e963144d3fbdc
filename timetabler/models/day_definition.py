from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class DayDefinition(Base):
    __tablename__ = "day_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)
    short: Mapped[str] = mapped_column(String(20), nullable=False)

    # export day ids this definition stands for, e.g. ["1"] or ["10000"]
    days: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
