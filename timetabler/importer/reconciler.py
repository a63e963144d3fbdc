import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from typing import Any, Dict, List, Optional, Tuple, Type

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from timetabler.db.base import Base
from timetabler.importer.document import Element, ScheduleDocument
from timetabler.importer.errors import MalformedDocument, StoreInvariantViolation
from timetabler.importer.types import IdMap, NaturalKey, PersistedId, SourceId
from timetabler.importer.utils import chunks
from timetabler.models import (
    Building,
    Classroom,
    Cohort,
    DayDefinition,
    Period,
    Subject,
    Teacher,
    WeekDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_LOOKUP_CHUNK_SIZE = 500
UNBOUNDED_CAPACITY = "*"
DEFAULT_TEACHER_SHORT = "-"


@dataclass
class ReconcileResult:
    entity: str
    id_map: IdMap = field(default_factory=dict)
    matched: int = 0
    created: int = 0

    def get(self, source_id: Optional[str]) -> Optional[PersistedId]:
        if source_id is None:
            return None
        return self.id_map.get(SourceId(source_id))

    def __len__(self):
        return len(self.id_map)


@dataclass
class _Pending:
    """Values for one natural key plus every source id that carried it."""
    values: Dict[str, Any]
    source_ids: List[SourceId] = field(default_factory=list)


def split_name(full_name: str) -> Tuple[str, str]:
    """'Babusa Tamás Gyula' -> ('Babusa', 'Tamás Gyula'). Splits on the first space only."""
    trimmed = (full_name or "").strip()
    first, _, rest = trimmed.partition(" ")
    return first, rest.strip()


def parse_time(element: Element, name: str) -> time:
    raw = element.require(name)
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(raw, fmt).time()
        except ValueError:
            pass
    raise MalformedDocument(element.tag, name, element.index, detail=f"has unreadable time {raw!r}")


def parse_int(element: Element, name: str) -> int:
    raw = element.require(name)
    try:
        return int(raw)
    except ValueError:
        raise MalformedDocument(element.tag, name, element.index, detail=f"is not an integer: {raw!r}") from None


def insert_returning_ids(session: Session, model: Type[Base], rows: List[Dict[str, Any]]) -> List[PersistedId]:
    """
    Insert `rows` and return their generated ids in the same order.

    Uses a single executemany INSERT ... RETURNING where the dialect can keep
    parameter order, otherwise falls back to flushing one ORM object at a time.
    """
    if not rows:
        return []

    dialect = session.get_bind().dialect
    if getattr(dialect, "insert_executemany_returning_sort_by_parameter_order", False):
        stmt = insert(model).returning(model.id, sort_by_parameter_order=True)
        ids = list(session.scalars(stmt, rows).all())
    else:
        ids = []
        for row in rows:
            obj = model(**row)
            session.add(obj)
            session.flush()
            ids.append(obj.id)

    if len(ids) != len(rows) or any(i is None for i in ids):
        raise StoreInvariantViolation(
            f"insert into '{model.__tablename__}' returned {len(ids)} id(s) for {len(rows)} row(s)"
        )
    return [PersistedId(i) for i in ids]


def get_or_create_id(session: Session, model: Type[Base], name: str, **defaults) -> PersistedId:
    existing = session.execute(select(model.id).where(model.name == name)).scalar_one_or_none()
    if existing is not None:
        return PersistedId(existing)

    obj = model(name=name, **defaults)
    session.add(obj)
    session.flush()
    if obj.id is None:
        raise StoreInvariantViolation(f"failed to insert {model.__name__} '{name}'")
    logger.info(f"Created {model.__name__} '{name}' (id={obj.id})")
    return PersistedId(obj.id)


def ensure_building(session: Session, name: str) -> PersistedId:
    return get_or_create_id(session, Building, name)


def ensure_week_definition(session: Session, name: str) -> PersistedId:
    return get_or_create_id(session, WeekDefinition, name, short=name, weeks=[])


class ReferenceReconciler:
    """
    Maps source ids of one reference entity onto persisted rows.

    Elements are grouped by natural key (`key_fields`), the keys are looked up
    in bulk, and rows are inserted only for keys the database does not know.
    Every source id sharing a key ends up mapped to the same row.
    """

    model: Type[Base]
    tag: str
    entity: str
    key_fields: Tuple[str, ...]

    def __init__(self, session: Session, lookup_chunk_size: int = DEFAULT_LOOKUP_CHUNK_SIZE):
        self.session = session
        self.lookup_chunk_size = lookup_chunk_size

    # -- to be provided by subclasses --------------------------------------

    def parse_element(self, element: Element) -> Optional[Tuple[SourceId, Dict[str, Any]]]:
        """Return (source id, column values) or None to skip the element."""
        raise NotImplementedError()

    def build_row(self, pending: _Pending) -> Dict[str, Any]:
        return dict(pending.values)

    def merge(self, pending: _Pending, values: Dict[str, Any]) -> None:
        """Called when another element carries an already collected key. The first values are kept."""

    def insertable(self, missing: Dict[NaturalKey, _Pending]) -> Dict[NaturalKey, _Pending]:
        return missing

    # -- pipeline -----------------------------------------------------------

    def reconcile(self, document: ScheduleDocument) -> ReconcileResult:
        pending, source_keys = self.collect(document)
        logger.debug(f"{self.entity}: {len(source_keys)} source id(s), {len(pending)} unique key(s)")

        resolved = self.fetch_existing(pending.keys())
        matched = len(resolved)

        missing = {key: item for key, item in pending.items() if key not in resolved}
        to_insert = self.insertable(missing)
        resolved.update(self.insert_missing(to_insert))

        id_map: IdMap = {
            source_id: resolved[key] for source_id, key in source_keys.items() if key in resolved
        }
        result = ReconcileResult(self.entity, id_map, matched=matched, created=len(to_insert))
        logger.info(f"{self.entity}: matched={result.matched} created={result.created} mapped={len(id_map)}")
        return result

    def collect(self, document: ScheduleDocument) -> Tuple[Dict[NaturalKey, _Pending], Dict[SourceId, NaturalKey]]:
        pending: Dict[NaturalKey, _Pending] = {}
        source_keys: Dict[SourceId, NaturalKey] = {}

        for element in document.elements(self.tag):
            parsed = self.parse_element(element)
            if parsed is None:
                continue
            source_id, values = parsed
            key = tuple(values[f] for f in self.key_fields)

            previous = source_keys.get(source_id)
            if previous is not None and previous != key:
                # same source id seen again with other values: the last one wins
                stale = pending[previous]
                stale.source_ids.remove(source_id)
                if not stale.source_ids:
                    del pending[previous]

            item = pending.get(key)
            if item is None:
                item = pending[key] = _Pending(values)
            else:
                self.merge(item, values)
            if source_id not in item.source_ids:
                item.source_ids.append(source_id)
            source_keys[source_id] = key

        return pending, source_keys

    def fetch_existing(self, keys) -> Dict[NaturalKey, PersistedId]:
        wanted = list(keys)
        if not wanted:
            return {}

        columns = [getattr(self.model, f) for f in self.key_fields]
        found: Dict[NaturalKey, PersistedId] = {}
        for chunk in chunks(wanted, self.lookup_chunk_size):
            chunk_keys = set(chunk)
            stmt = select(self.model.id, *columns)
            for position, column in enumerate(columns):
                stmt = stmt.where(column.in_({key[position] for key in chunk}))
            for row in self.session.execute(stmt):
                key = tuple(row[1:])
                if key in chunk_keys:
                    found[key] = PersistedId(row[0])
        return found

    def insert_missing(self, missing: Dict[NaturalKey, _Pending]) -> Dict[NaturalKey, PersistedId]:
        if not missing:
            return {}
        keys = list(missing.keys())
        rows = [self.build_row(missing[key]) for key in keys]
        ids = insert_returning_ids(self.session, self.model, rows)
        return dict(zip(keys, ids))


class PeriodReconciler(ReferenceReconciler):
    model = Period
    tag = "period"
    entity = "periods"
    key_fields = ("period",)

    def parse_element(self, element):
        # the ordinal doubles as the source id: schedule entries refer to Period="3"
        source_id = SourceId(element.require("period"))
        values = {
            "period": parse_int(element, "period"),
            "start_time": parse_time(element, "starttime"),
            "end_time": parse_time(element, "endtime"),
        }
        return source_id, values


class DayReconciler(ReferenceReconciler):
    model = DayDefinition
    tag = "day"
    entity = "days"
    key_fields = ("name",)

    def parse_element(self, element):
        source_id = SourceId(element.require("day"))
        return source_id, {"name": element.require("name"), "short": element.require("short")}

    def build_row(self, pending):
        row = dict(pending.values)
        row["days"] = list(pending.source_ids)
        return row


class SubjectReconciler(ReferenceReconciler):
    model = Subject
    tag = "subject"
    entity = "subjects"
    key_fields = ("name",)

    def parse_element(self, element):
        source_id = SourceId(element.require("id"))
        return source_id, {"name": element.require("name"), "short": element.require("short")}


class TeacherReconciler(ReferenceReconciler):
    model = Teacher
    tag = "teacher"
    entity = "teachers"
    key_fields = ("first_name", "last_name")

    def parse_element(self, element):
        source_id = SourceId(element.require("id"))
        first_name, last_name = split_name(element.require("name"))
        # gender is mandatory in the export but, like color, not stored
        element.require("gender")
        return source_id, {
            "first_name": first_name,
            "last_name": last_name,
            "short": element.get("short") or DEFAULT_TEACHER_SHORT,
        }


class ClassroomReconciler(ReferenceReconciler):
    model = Classroom
    tag = "classroom"
    entity = "classrooms"
    key_fields = ("name",)

    def __init__(self, session, building_name: str, lookup_chunk_size: int = DEFAULT_LOOKUP_CHUNK_SIZE):
        super().__init__(session, lookup_chunk_size)
        self.building_name = building_name
        self.building_id: Optional[PersistedId] = None

    def reconcile(self, document):
        self.building_id = ensure_building(self.session, self.building_name)
        return super().reconcile(document)

    def parse_element(self, element):
        source_id = SourceId(element.require("id"))
        capacity_raw = element.require("capacity")
        capacity = None if capacity_raw == UNBOUNDED_CAPACITY else parse_int(element, "capacity")
        return source_id, {
            "name": element.require("name"),
            "short": element.require("short"),
            "capacity": capacity,
            "building_id": self.building_id,
        }


class CohortReconciler(ReferenceReconciler):
    """Classes are scoped to one timetable and need a resolved form teacher to be created."""

    model = Cohort
    tag = "class"
    entity = "cohorts"
    key_fields = ("name", "timetable_id")

    def __init__(self, session, teachers: ReconcileResult, timetable_id: PersistedId,
                 lookup_chunk_size: int = DEFAULT_LOOKUP_CHUNK_SIZE):
        super().__init__(session, lookup_chunk_size)
        self.teachers = teachers
        self.timetable_id = timetable_id

    def parse_element(self, element):
        source_id = element.get("id")
        name = element.get("name")
        short = element.get("short")
        if not (source_id and name and short):
            logger.warning(f"Skipping <class> #{element.index}: incomplete attributes")
            return None
        return SourceId(source_id), {
            "name": name,
            "short": short,
            "teacher_id": self.teachers.get(element.get("teacherid")),
            "timetable_id": self.timetable_id,
        }

    def merge(self, pending, values):
        # a later class of the same name may name a teacher the earlier one could not
        if pending.values["teacher_id"] is None and values["teacher_id"] is not None:
            pending.values = values

    def insertable(self, missing):
        kept = {key: item for key, item in missing.items() if item.values["teacher_id"] is not None}
        for key in missing.keys() - kept.keys():
            logger.warning(f"Skipping class '{key[0]}': no resolvable teacher")
        return kept
