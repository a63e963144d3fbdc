class TimetableImportError(Exception):
    """Base class for every error raised by the timetable import."""


class MalformedDocument(TimetableImportError):
    """A required attribute is missing or unreadable on an element the import must understand."""

    def __init__(self, tag: str, attribute: str | None = None, index: int | None = None, detail: str | None = None):
        self.tag = tag
        self.attribute = attribute
        self.index = index
        self.detail = detail

        message = f"malformed <{tag}>"
        if index is not None:
            message += f" element #{index}"
        if attribute:
            message += f": attribute '{attribute}'"
        message += f" {detail}" if detail else " is missing"
        super().__init__(message)


class UnresolvedReference(TimetableImportError):
    """A schedule entry points at something the reference maps do not know. Row-level, never fatal."""

    def __init__(self, field: str, source_id: str, index: int):
        self.field = field
        self.source_id = source_id
        self.index = index
        super().__init__(f"schedule entry #{index}: {field}={source_id!r} cannot be resolved")


class PersistenceFailure(TimetableImportError):
    """The store rejected a read or write; the run has been rolled back."""


class StoreInvariantViolation(TimetableImportError):
    """An insert that must return a generated id did not."""
