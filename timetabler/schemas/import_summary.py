from pydantic import BaseModel, Field


class EntityCounts(BaseModel):
    matched: int = 0
    created: int = 0

    @property
    def total(self) -> int:
        return self.matched + self.created


class LessonCounts(EntityCounts):
    skipped_entries: int = 0


class ImportSummary(BaseModel):
    """Outcome of one committed timetable import."""

    timetable_id: int
    timetable_name: str

    periods: EntityCounts = Field(default_factory=EntityCounts)
    days: EntityCounts = Field(default_factory=EntityCounts)
    subjects: EntityCounts = Field(default_factory=EntityCounts)
    teachers: EntityCounts = Field(default_factory=EntityCounts)
    classrooms: EntityCounts = Field(default_factory=EntityCounts)
    cohorts: EntityCounts = Field(default_factory=EntityCounts)
    lessons: LessonCounts = Field(default_factory=LessonCounts)

    # entity class -> {source id: persisted id}
    id_maps: dict[str, dict[str, int]] = Field(default_factory=dict)
    # schedule entry index -> lesson id
    lesson_ids: dict[int, int] = Field(default_factory=dict)

    duration_ms: int = 0

    @property
    def parts(self) -> dict[str, EntityCounts]:
        return {
            "periods": self.periods,
            "days": self.days,
            "subjects": self.subjects,
            "teachers": self.teachers,
            "classrooms": self.classrooms,
            "cohorts": self.cohorts,
        }

    def format_report(self, title: str = "Timetable import") -> str:
        lines = [f"{title}: '{self.timetable_name}' (id={self.timetable_id})"]
        for name, counts in self.parts.items():
            lines.append(f"{name}: matched={counts.matched} created={counts.created}")
        lines.append(
            f"lessons: matched={self.lessons.matched} created={self.lessons.created} "
            f"total={self.lessons.total} skipped entries={self.lessons.skipped_entries}"
        )
        lines.append(f"took {self.duration_ms} ms")
        return "\n".join(lines)

    def __str__(self):
        return self.format_report()
