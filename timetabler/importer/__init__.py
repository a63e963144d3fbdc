from .document import Element, ScheduleDocument, load_document, parse_document
from .errors import (
    MalformedDocument,
    PersistenceFailure,
    StoreInvariantViolation,
    TimetableImportError,
    UnresolvedReference,
)
from .orchestrator import ImportState, TimetableImporter, import_timetable
