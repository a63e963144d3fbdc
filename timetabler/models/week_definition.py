from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class WeekDefinition(Base):
    __tablename__ = "week_definitions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(60), nullable=False, unique=True, index=True)
    short: Mapped[str] = mapped_column(String(20), nullable=False)

    weeks: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
