import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from timetabler.importer.document import Element, ScheduleDocument
from timetabler.importer.errors import UnresolvedReference
from timetabler.importer.reconciler import ReconcileResult
from timetabler.importer.types import PersistedId

logger = logging.getLogger(__name__)

SCHEDULE_TAG = "TimeTableSchedule"

KEY_SEPARATOR = "|"
ID_SEPARATOR = ","


class LessonKeyParts(NamedTuple):
    subject_id: int
    day_definition_id: int
    week_definition_id: int
    period_id: int
    cohort_ids: Tuple[int, ...]
    teacher_ids: Tuple[int, ...]
    classroom_ids: Tuple[int, ...]


def normalize_ids(ids: Iterable[int]) -> Tuple[int, ...]:
    return tuple(sorted(set(ids)))


def _join_ids(ids: Iterable[int]) -> str:
    return ID_SEPARATOR.join(str(i) for i in normalize_ids(ids))


def _split_ids(raw: str) -> Tuple[int, ...]:
    return tuple(int(i) for i in raw.split(ID_SEPARATOR)) if raw else ()


def make_lesson_key(
    subject_id: int,
    day_definition_id: int,
    week_definition_id: int,
    period_id: int,
    cohort_ids: Iterable[int],
    teacher_ids: Iterable[int],
    classroom_ids: Iterable[int],
) -> str:
    """
    Identity of a lesson inside a timetable.

    Ids are integers, so neither separator can appear inside a field and the
    key splits back unambiguously. Multi-valued parts are de-duplicated and
    sorted, which makes the key independent of the order they were read in.
    """
    return KEY_SEPARATOR.join([
        str(subject_id),
        str(day_definition_id),
        str(week_definition_id),
        str(period_id),
        _join_ids(cohort_ids),
        _join_ids(teacher_ids),
        _join_ids(classroom_ids),
    ])


def split_lesson_key(key: str) -> LessonKeyParts:
    parts = key.split(KEY_SEPARATOR)
    if len(parts) != len(LessonKeyParts._fields):
        raise ValueError(f"not a lesson key: {key!r}")
    subject, day, week, period, cohorts, teachers, classrooms = parts
    return LessonKeyParts(
        int(subject), int(day), int(week), int(period),
        _split_ids(cohorts), _split_ids(teachers), _split_ids(classrooms),
    )


@dataclass(frozen=True)
class ReferenceMaps:
    periods: ReconcileResult
    days: ReconcileResult
    subjects: ReconcileResult
    teachers: ReconcileResult
    classrooms: ReconcileResult
    cohorts: ReconcileResult

    def as_dict(self) -> Dict[str, ReconcileResult]:
        return {
            "periods": self.periods,
            "days": self.days,
            "subjects": self.subjects,
            "teachers": self.teachers,
            "classrooms": self.classrooms,
            "cohorts": self.cohorts,
        }


@dataclass(frozen=True)
class LessonDraft:
    schedule_index: int
    timetable_id: PersistedId
    subject_id: PersistedId
    day_definition_id: PersistedId
    week_definition_id: PersistedId
    period_id: PersistedId
    cohort_ids: Tuple[PersistedId, ...] = ()
    teacher_ids: Tuple[PersistedId, ...] = ()
    classroom_ids: Tuple[PersistedId, ...] = ()
    periods_per_week: int = 1

    @property
    def key(self) -> str:
        return make_lesson_key(
            self.subject_id,
            self.day_definition_id,
            self.week_definition_id,
            self.period_id,
            self.cohort_ids,
            self.teacher_ids,
            self.classroom_ids,
        )

    def to_row(self) -> dict:
        return {
            "timetable_id": self.timetable_id,
            "subject_id": self.subject_id,
            "day_definition_id": self.day_definition_id,
            "week_definition_id": self.week_definition_id,
            "period_id": self.period_id,
            "teacher_ids": list(self.teacher_ids),
            "classroom_ids": list(self.classroom_ids),
            "periods_per_week": self.periods_per_week,
        }


@dataclass
class AssemblyResult:
    drafts: List[LessonDraft] = field(default_factory=list)
    unresolved: List[UnresolvedReference] = field(default_factory=list)
    sparse: int = 0

    @property
    def skipped(self) -> int:
        return len(self.unresolved) + self.sparse


class LessonAssembler:
    """Turns schedule entries into lesson drafts. Touches no database."""

    def __init__(self, maps: ReferenceMaps, week_definition_id: PersistedId, timetable_id: PersistedId):
        self.maps = maps
        self.week_definition_id = week_definition_id
        self.timetable_id = timetable_id

    def assemble(self, document: ScheduleDocument) -> AssemblyResult:
        result = AssemblyResult()
        for element in document.elements(SCHEDULE_TAG):
            try:
                draft = self.build_draft(element)
            except UnresolvedReference as exc:
                logger.warning(f"Dropping schedule entry: {exc}")
                result.unresolved.append(exc)
                continue
            if draft is None:
                result.sparse += 1
                continue
            result.drafts.append(draft)

        logger.info(
            f"Assembled {len(result.drafts)} lesson draft(s); "
            f"dropped: sparse={result.sparse} unresolved={len(result.unresolved)}"
        )
        return result

    def build_draft(self, element: Element) -> Optional[LessonDraft]:
        day = element.get("DayID")
        subject = element.get("SubjectGradeID")
        period = element.get("Period")
        if not (day and subject and period):
            logger.debug(f"Schedule entry #{element.index} lacks day/subject/period, skipped")
            return None

        period_id = self._require(self.maps.periods, "Period", period, element.index)
        subject_id = self._require(self.maps.subjects, "SubjectGradeID", subject, element.index)
        day_id = self._require(self.maps.days, "DayID", day, element.index)

        return LessonDraft(
            schedule_index=element.index,
            timetable_id=self.timetable_id,
            subject_id=subject_id,
            day_definition_id=day_id,
            week_definition_id=self.week_definition_id,
            period_id=period_id,
            cohort_ids=self._optional(self.maps.cohorts, element.get("ClassID"), element.get("OptionalClassID")),
            teacher_ids=self._optional(self.maps.teachers, element.get("TeacherID")),
            classroom_ids=self._optional(self.maps.classrooms, element.get("SchoolRoomID")),
        )

    @staticmethod
    def _require(refs: ReconcileResult, field_name: str, source_id: str, index: int) -> PersistedId:
        persisted = refs.get(source_id)
        if persisted is None:
            raise UnresolvedReference(field_name, source_id, index)
        return persisted

    @staticmethod
    def _optional(refs: ReconcileResult, *source_ids: Optional[str]) -> Tuple[PersistedId, ...]:
        # unassigned or unknown references simply do not show up in the id set
        return normalize_ids(p for p in (refs.get(s) for s in source_ids) if p is not None)
