from sqlalchemy.orm import DeclarativeBase

class Base(DeclarativeBase):
    pass

from timetabler.models.timetable import Timetable
from timetabler.models.period import Period
from timetabler.models.day_definition import DayDefinition
from timetabler.models.week_definition import WeekDefinition
from timetabler.models.subject import Subject
from timetabler.models.teacher import Teacher
from timetabler.models.building import Building
from timetabler.models.classroom import Classroom
from timetabler.models.cohort import Cohort
from timetabler.models.lesson import Lesson, LessonCohort
