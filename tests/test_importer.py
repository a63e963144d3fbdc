import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from conftest import schedule
from timetabler.core.config import Settings
from timetabler.importer import (
    ImportState,
    MalformedDocument,
    PersistenceFailure,
    TimetableImporter,
    import_timetable,
)
from timetabler.importer.persister import LessonPersister
from timetabler.models import (
    Base,
    Building,
    Classroom,
    Cohort,
    DayDefinition,
    Lesson,
    LessonCohort,
    Period,
    Subject,
    Teacher,
    Timetable,
    WeekDefinition,
)
from timetabler.schemas import TimetableIn

ALL_MODELS = [
    Timetable, Period, DayDefinition, WeekDefinition, Subject, Teacher,
    Building, Classroom, Cohort, Lesson, LessonCohort,
]


def count(session, model):
    return session.scalar(select(func.count()).select_from(model))


def assert_store_is_empty(session):
    assert {m.__tablename__: count(session, m) for m in ALL_MODELS} == {
        m.__tablename__: 0 for m in ALL_MODELS
    }


class TestImportTimetable:
    def test_worked_example(self, session, worked_example, descriptor, settings):
        """Two identical schedule entries end up as one lesson with one cohort link."""
        summary = import_timetable(session, worked_example, descriptor, settings=settings)

        assert summary.timetable_name == "Autumn term"
        assert summary.periods.created == 2
        assert summary.days.created == summary.subjects.created == 1
        assert summary.teachers.created == summary.classrooms.created == summary.cohorts.created == 1
        assert (summary.lessons.matched, summary.lessons.created, summary.lessons.total) == (0, 1, 1)
        assert summary.lessons.skipped_entries == 0
        assert summary.lesson_ids[0] == summary.lesson_ids[1]

        assert count(session, Lesson) == 1
        assert count(session, LessonCohort) == 1
        assert count(session, WeekDefinition) == 1
        assert count(session, Building) == 1

        lesson = session.get(Lesson, summary.lesson_ids[0])
        assert lesson.timetable_id == summary.timetable_id
        assert lesson.period_id == summary.id_maps["periods"]["1"]
        assert lesson.teacher_ids == [summary.id_maps["teachers"]["*T1"]]
        assert lesson.classroom_ids == [summary.id_maps["classrooms"]["*R1"]]

        link = session.execute(select(LessonCohort)).scalar_one()
        assert link.cohort_id == summary.id_maps["cohorts"]["*C1"]

    def test_state_history(self, session, worked_example, descriptor, settings):
        importer = TimetableImporter(session, settings)
        importer.run(worked_example, descriptor)

        assert importer.history == [
            ImportState.CREATED,
            ImportState.RECONCILING_REFERENCES,
            ImportState.ASSEMBLING_LESSONS,
            ImportState.PERSISTING_LESSONS,
            ImportState.COMMITTED,
        ]
        assert importer.state is ImportState.COMMITTED

    def test_every_run_creates_a_timetable(self, session, worked_example, descriptor, settings):
        first = import_timetable(session, worked_example, descriptor, settings=settings)
        second = import_timetable(session, worked_example, descriptor, settings=settings)

        assert first.timetable_id != second.timetable_id
        assert count(session, Timetable) == 2

        # shared reference data is matched, cohorts belong to their timetable
        assert (second.periods.matched, second.periods.created) == (2, 0)
        assert (second.teachers.matched, second.teachers.created) == (1, 0)
        assert second.id_maps["periods"] == first.id_maps["periods"]
        assert second.cohorts.created == 1
        assert count(session, Cohort) == 2

        assert second.lessons.created == 1
        assert count(session, Lesson) == 2

    def test_sparse_only_document(self, session, make_document, descriptor, settings):
        document = make_document(schedules=[schedule(day=""), schedule(period=""), schedule(subject="")])

        summary = import_timetable(session, document, descriptor, settings=settings)

        assert summary.lessons.total == 0
        assert summary.lessons.skipped_entries == 3
        assert count(session, Timetable) == 1
        assert count(session, Lesson) == 0

    def test_unresolved_entries_are_counted(self, session, make_document, descriptor, settings):
        document = make_document(schedules=[schedule(), schedule(period="7"), schedule(day="6")])

        summary = import_timetable(session, document, descriptor, settings=settings)

        assert summary.lessons.created == 1
        assert summary.lessons.skipped_entries == 2

    def test_descriptor_model(self, session, worked_example, settings):
        descriptor = TimetableIn(name="Spring", valid_from="2027-02-01")

        summary = import_timetable(session, worked_example, descriptor, settings=settings)

        timetable = session.get(Timetable, summary.timetable_id)
        assert timetable.name == "Spring"
        assert timetable.valid_from.isoformat() == "2027-02-01"

    @pytest.mark.parametrize("raw", [
        {"name": "", "validFrom": "2026-09-01"},
        {"name": "Autumn"},
        {"name": "Autumn", "validFrom": "first of september"},
    ])
    def test_invalid_descriptor(self, session, worked_example, settings, raw):
        with pytest.raises(ValidationError):
            import_timetable(session, worked_example, raw, settings=settings)
        assert count(session, Timetable) == 0

    def test_report(self, session, worked_example, descriptor, settings):
        summary = import_timetable(session, worked_example, descriptor, settings=settings)

        report = summary.format_report()
        assert "'Autumn term'" in report
        assert "periods: matched=0 created=2" in report
        assert "lessons: matched=0 created=1 total=1 skipped entries=0" in report


class TestRollback:
    def test_failure_during_lesson_insert(self, session, make_document, descriptor, monkeypatch):
        """Second lesson batch fails: nothing from the run survives."""
        document = make_document(schedules=[schedule(period="1"), schedule(period="2")])
        insert_batch = LessonPersister.insert_batch
        calls = []

        def failing_insert_batch(self, batch):
            calls.append(len(batch))
            if len(calls) == 2:
                raise OperationalError("INSERT INTO lessons", {}, Exception("disk I/O error"))
            return insert_batch(self, batch)

        monkeypatch.setattr(LessonPersister, "insert_batch", failing_insert_batch)
        importer = TimetableImporter(session, Settings(LESSON_BATCH_SIZE=1))

        with pytest.raises(PersistenceFailure) as exc_info:
            importer.run(document, descriptor)

        assert calls == [1, 1]
        assert isinstance(exc_info.value.__cause__, OperationalError)
        assert importer.state is ImportState.ABORTED
        assert importer.history[-2] is ImportState.PERSISTING_LESSONS
        assert_store_is_empty(session)

    def test_malformed_document_aborts(self, session, make_document, descriptor, settings):
        document = make_document(subjects=[{"id": "*S1", "short": "MA"}])
        importer = TimetableImporter(session, settings)

        with pytest.raises(MalformedDocument):
            importer.run(document, descriptor)

        assert importer.history[-2:] == [ImportState.RECONCILING_REFERENCES, ImportState.ABORTED]
        assert_store_is_empty(session)

    def test_earlier_runs_survive_a_failed_one(self, session, worked_example, make_document, descriptor, settings):
        import_timetable(session, worked_example, descriptor, settings=settings)
        broken = make_document(periods=[{"period": "1", "starttime": "8:00"}])

        with pytest.raises(MalformedDocument):
            import_timetable(session, broken, descriptor, settings=settings)

        assert count(session, Timetable) == 1
        assert count(session, Lesson) == 1

    def test_inside_callers_transaction(self, session, worked_example, make_document, descriptor, settings):
        """The caller owns the transaction: a failed run only undoes itself, a good one is not committed."""
        session.add(Subject(name="Added by caller", short="AC"))
        session.flush()
        broken = make_document(periods=[{"period": "1", "starttime": "8:00"}])

        with pytest.raises(MalformedDocument):
            import_timetable(session, broken, descriptor, settings=settings)

        assert session.in_transaction()
        assert session.scalar(select(Subject.name)) == "Added by caller"
        assert count(session, Timetable) == 0

        summary = import_timetable(session, worked_example, descriptor, settings=settings)
        assert summary.lessons.created == 1
        assert session.in_transaction()

        session.rollback()

        assert count(session, Lesson) == 0
        assert_store_is_empty(session)


def test_metadata_holds_every_table():
    assert set(Base.metadata.tables) == {m.__tablename__ for m in ALL_MODELS}
