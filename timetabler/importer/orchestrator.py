import logging
import time
from enum import Enum
from typing import List, Optional, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, SessionTransaction

from timetabler.core.config import Settings, get_settings
from timetabler.importer.assembler import AssemblyResult, LessonAssembler, ReferenceMaps
from timetabler.importer.document import ScheduleDocument
from timetabler.importer.errors import PersistenceFailure, StoreInvariantViolation
from timetabler.importer.persister import LessonPersister, PersistResult
from timetabler.importer.reconciler import (
    ClassroomReconciler,
    CohortReconciler,
    DayReconciler,
    PeriodReconciler,
    SubjectReconciler,
    TeacherReconciler,
    ensure_week_definition,
)
from timetabler.importer.types import PersistedId
from timetabler.models import Timetable
from timetabler.schemas import EntityCounts, ImportSummary, LessonCounts, TimetableIn

logger = logging.getLogger(__name__)


class ImportState(str, Enum):
    CREATED = "created"
    RECONCILING_REFERENCES = "reconciling_references"
    ASSEMBLING_LESSONS = "assembling_lessons"
    PERSISTING_LESSONS = "persisting_lessons"
    COMMITTED = "committed"
    ABORTED = "aborted"


class TimetableImporter:
    """
    Imports one timetable export as a single all-or-nothing unit.

    Every run creates a fresh Timetable row, reconciles reference data
    (periods, days, subjects, teachers, classrooms, then cohorts), assembles
    lesson drafts from the schedule entries and persists them. Any error rolls
    back everything the run wrote.

    If the session has no transaction in progress the importer opens and
    commits its own; otherwise it works inside a savepoint and the caller
    decides when to commit.
    """

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or get_settings()
        self.state: Optional[ImportState] = None
        self.history: List[ImportState] = []
        self.timetable_id: Optional[PersistedId] = None

    def run(self, document: ScheduleDocument, descriptor: Union[TimetableIn, dict]) -> ImportSummary:
        if not isinstance(descriptor, TimetableIn):
            descriptor = TimetableIn.model_validate(descriptor)

        started_at = time.monotonic()
        logger.info(f"Starting timetable import '{descriptor.name}' (valid from {descriptor.valid_from})")

        try:
            with self._transaction():
                summary = self._run_phases(document, descriptor)
        except Exception as exc:
            self._abort(exc)
            if isinstance(exc, SQLAlchemyError):
                raise PersistenceFailure(f"timetable import failed: {exc}") from exc
            raise

        self._transition(ImportState.COMMITTED)
        summary.duration_ms = int((time.monotonic() - started_at) * 1000)
        logger.info(
            f"Finished timetable import '{summary.timetable_name}' (id={summary.timetable_id}): "
            f"{summary.lessons.total} lesson(s) in {summary.duration_ms} ms"
        )
        return summary

    def _transaction(self) -> SessionTransaction:
        if self.session.in_transaction():
            return self.session.begin_nested()
        return self.session.begin()

    def _transition(self, state: ImportState) -> None:
        logger.debug(f"Import state: {self.state.value if self.state else '-'} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _abort(self, exc: BaseException) -> None:
        failed_in = self.state.value if self.state else "-"
        self._transition(ImportState.ABORTED)
        logger.error(f"Timetable import aborted during '{failed_in}', rolled back: {exc}", exc_info=True)

    def _run_phases(self, document: ScheduleDocument, descriptor: TimetableIn) -> ImportSummary:
        self._transition(ImportState.CREATED)
        timetable_id = self.create_timetable(descriptor)

        self._transition(ImportState.RECONCILING_REFERENCES)
        maps, week_definition_id = self.reconcile_references(document, timetable_id)

        self._transition(ImportState.ASSEMBLING_LESSONS)
        assembly = LessonAssembler(maps, week_definition_id, timetable_id).assemble(document)

        self._transition(ImportState.PERSISTING_LESSONS)
        persister = LessonPersister(self.session, timetable_id, batch_size=self.settings.LESSON_BATCH_SIZE)
        persisted = persister.persist(assembly.drafts)

        return self._summarize(descriptor, timetable_id, maps, assembly, persisted)

    def create_timetable(self, descriptor: TimetableIn) -> PersistedId:
        timetable = Timetable(name=descriptor.name, valid_from=descriptor.valid_from)
        self.session.add(timetable)
        self.session.flush()
        if timetable.id is None:
            raise StoreInvariantViolation("failed to insert the new timetable")
        self.timetable_id = PersistedId(timetable.id)
        return self.timetable_id

    def reconcile_references(
        self, document: ScheduleDocument, timetable_id: PersistedId
    ) -> Tuple[ReferenceMaps, PersistedId]:
        chunk_size = self.settings.LOOKUP_CHUNK_SIZE

        # independent of each other; they share one session and therefore run in turn
        independent = [
            PeriodReconciler(self.session, chunk_size),
            DayReconciler(self.session, chunk_size),
            SubjectReconciler(self.session, chunk_size),
            TeacherReconciler(self.session, chunk_size),
            ClassroomReconciler(self.session, self.settings.DEFAULT_BUILDING_NAME, chunk_size),
        ]
        results = {reconciler.entity: reconciler.reconcile(document) for reconciler in independent}

        # classes point at their form teacher, so they wait for the teacher map
        cohorts = CohortReconciler(self.session, results["teachers"], timetable_id, chunk_size).reconcile(document)

        week_definition_id = ensure_week_definition(self.session, self.settings.DEFAULT_WEEK_NAME)

        maps = ReferenceMaps(
            periods=results["periods"],
            days=results["days"],
            subjects=results["subjects"],
            teachers=results["teachers"],
            classrooms=results["classrooms"],
            cohorts=cohorts,
        )
        return maps, week_definition_id

    def _summarize(
        self,
        descriptor: TimetableIn,
        timetable_id: PersistedId,
        maps: ReferenceMaps,
        assembly: AssemblyResult,
        persisted: PersistResult,
    ) -> ImportSummary:
        counts = {
            name: EntityCounts(matched=result.matched, created=result.created)
            for name, result in maps.as_dict().items()
        }
        return ImportSummary(
            timetable_id=timetable_id,
            timetable_name=descriptor.name,
            lessons=LessonCounts(
                matched=persisted.matched,
                created=persisted.created,
                skipped_entries=assembly.skipped,
            ),
            id_maps={
                name: {str(source_id): int(persisted_id) for source_id, persisted_id in result.id_map.items()}
                for name, result in maps.as_dict().items()
            },
            lesson_ids=dict(persisted.lesson_ids),
            **counts,
        )


def import_timetable(
    session: Session,
    document: ScheduleDocument,
    descriptor: Union[TimetableIn, dict],
    *,
    settings: Optional[Settings] = None,
) -> ImportSummary:
    return TimetableImporter(session, settings).run(document, descriptor)
