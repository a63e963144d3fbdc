import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from timetabler.importer.assembler import LessonDraft, make_lesson_key
from timetabler.importer.reconciler import insert_returning_ids
from timetabler.importer.types import PersistedId
from timetabler.importer.utils import chunks
from timetabler.models import Lesson, LessonCohort

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass
class PersistResult:
    # schedule entry index -> lesson id
    lesson_ids: Dict[int, PersistedId] = field(default_factory=dict)
    matched: int = 0
    created: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.created


class LessonPersister:
    """Writes lesson drafts into a timetable, reusing lessons it already holds."""

    def __init__(self, session: Session, timetable_id: PersistedId, batch_size: int = DEFAULT_BATCH_SIZE):
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.session = session
        self.timetable_id = timetable_id
        self.batch_size = batch_size

    def persist(self, drafts: Sequence[LessonDraft]) -> PersistResult:
        result = PersistResult()
        if not drafts:
            return result

        existing = self.hydrate()
        logger.debug(f"Timetable {self.timetable_id} already holds {len(existing)} lesson(s)")

        matched_keys = set()
        # key of a lesson still to be inserted -> schedule entries that resolve to it
        waiting: Dict[str, List[int]] = {}
        to_insert: List[LessonDraft] = []

        for draft in drafts:
            key = draft.key
            if key in existing:
                result.lesson_ids[draft.schedule_index] = existing[key]
                matched_keys.add(key)
            elif key in waiting:
                waiting[key].append(draft.schedule_index)
            else:
                waiting[key] = [draft.schedule_index]
                to_insert.append(draft)

        result.matched = len(matched_keys)
        logger.info(
            f"Lessons: {len(drafts)} draft(s), {result.matched} already present, {len(to_insert)} to insert"
        )

        for number, batch in enumerate(chunks(to_insert, self.batch_size), start=1):
            ids = self.insert_batch(batch)
            for draft, lesson_id in zip(batch, ids):
                for schedule_index in waiting[draft.key]:
                    result.lesson_ids[schedule_index] = lesson_id
            result.created += len(ids)
            logger.debug(f"Inserted lesson batch {number} ({len(ids)} row(s))")

        return result

    def hydrate(self) -> Dict[str, PersistedId]:
        """Composite key -> id for every lesson already in the timetable."""
        lessons = self.session.execute(
            select(
                Lesson.id,
                Lesson.subject_id,
                Lesson.day_definition_id,
                Lesson.week_definition_id,
                Lesson.period_id,
                Lesson.teacher_ids,
                Lesson.classroom_ids,
            )
            .where(Lesson.timetable_id == self.timetable_id)
            .order_by(Lesson.id)
        ).all()
        if not lessons:
            return {}

        cohorts_by_lesson: Dict[int, List[int]] = defaultdict(list)
        links = self.session.execute(
            select(LessonCohort.lesson_id, LessonCohort.cohort_id)
            .join(Lesson, Lesson.id == LessonCohort.lesson_id)
            .where(Lesson.timetable_id == self.timetable_id)
        )
        for lesson_id, cohort_id in links:
            cohorts_by_lesson[lesson_id].append(cohort_id)

        existing: Dict[str, PersistedId] = {}
        for row in lessons:
            key = make_lesson_key(
                row.subject_id,
                row.day_definition_id,
                row.week_definition_id,
                row.period_id,
                cohorts_by_lesson.get(row.id, ()),
                row.teacher_ids or (),
                row.classroom_ids or (),
            )
            existing.setdefault(key, PersistedId(row.id))
        return existing

    def insert_batch(self, batch: Sequence[LessonDraft]) -> List[PersistedId]:
        ids = insert_returning_ids(self.session, Lesson, [draft.to_row() for draft in batch])

        links = [
            {"lesson_id": lesson_id, "cohort_id": cohort_id}
            for draft, lesson_id in zip(batch, ids)
            for cohort_id in draft.cohort_ids
        ]
        if links:
            self.session.execute(insert(LessonCohort), links)
        return ids
