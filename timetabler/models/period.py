from datetime import time

from sqlalchemy import Integer, Time
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Period(Base):
    __tablename__ = "periods"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # ordinal of the period within the school day (1, 2, ...)
    period: Mapped[int] = mapped_column(Integer, nullable=False, unique=True, index=True)

    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
