from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Teacher(Base):
    __tablename__ = "teachers"
    __table_args__ = (UniqueConstraint("first_name", "last_name", name="uq_teachers_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    first_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    short: Mapped[str] = mapped_column(String(40), nullable=False)
