from xml.etree import ElementTree as ET

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from timetabler.core.config import Settings
from timetabler.importer import parse_document
from timetabler.models import Base

# keyword -> (container element, child tag)
SECTIONS = {
    "periods": ("periods", "period"),
    "days": ("days", "day"),
    "subjects": ("subjects", "subject"),
    "teachers": ("teachers", "teacher"),
    "classrooms": ("classrooms", "classroom"),
    "classes": ("classes", "class"),
    "schedules": ("TimeTableSchedules", "TimeTableSchedule"),
}


def export_xml(**sections) -> str:
    """Build a minimal export; each keyword is a list of attribute dicts."""
    unknown = set(sections) - set(SECTIONS)
    assert not unknown, f"unknown sections: {unknown}"

    root = ET.Element("timetable", {"ascttversion": "2012"})
    for name, (container_tag, child_tag) in SECTIONS.items():
        container = ET.SubElement(root, container_tag)
        for attrs in sections.get(name, []):
            ET.SubElement(container, child_tag, {k: str(v) for k, v in attrs.items()})
    return ET.tostring(root, encoding="unicode")


def schedule(day="1", period="1", subject="*S1", cls="*C1", optional_cls="", teacher="*T1", room="*R1"):
    return {
        "DayID": day,
        "Period": period,
        "SubjectGradeID": subject,
        "ClassID": cls,
        "OptionalClassID": optional_cls,
        "TeacherID": teacher,
        "SchoolRoomID": room,
    }


BASE_SECTIONS = {
    "periods": [
        {"period": "1", "starttime": "8:00", "endtime": "8:45"},
        {"period": "2", "starttime": "8:55", "endtime": "9:40"},
    ],
    "days": [{"day": "1", "name": "Monday", "short": "Mo"}],
    "subjects": [{"id": "*S1", "name": "Mathematics", "short": "MA"}],
    "teachers": [{"id": "*T1", "name": "Babusa Tamás Gyula", "short": "BT", "gender": "M", "color": "#FF0000"}],
    "classrooms": [{"id": "*R1", "name": "Room 12", "short": "R12", "capacity": "*"}],
    "classes": [{"id": "*C1", "name": "9.A", "short": "9A", "teacherid": "*T1"}],
}


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, autoflush=False, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def settings():
    return Settings(DATABASE_URL="sqlite://", LESSON_BATCH_SIZE=100, LOOKUP_CHUNK_SIZE=500)


@pytest.fixture
def make_document():
    def _make(**sections):
        merged = {**BASE_SECTIONS, **sections}
        return parse_document(export_xml(**merged))

    return _make


@pytest.fixture
def worked_example(make_document):
    """Two periods, one of everything else and two identical schedule entries."""
    return make_document(schedules=[schedule(), schedule()])


@pytest.fixture
def descriptor():
    return {"name": "Autumn term", "validFrom": "2026-09-01"}
