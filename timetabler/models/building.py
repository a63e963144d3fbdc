from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from timetabler.db.base import Base


class Building(Base):
    __tablename__ = "buildings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False, unique=True, index=True)
