from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Subject(Base):
    __tablename__ = "subjects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
    short: Mapped[str] = mapped_column(String(40), nullable=False)
