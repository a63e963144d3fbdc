from .timetable import TimetableIn
from .import_summary import EntityCounts, ImportSummary, LessonCounts
