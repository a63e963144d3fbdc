from datetime import date

from pydantic import BaseModel, ConfigDict, Field


class TimetableIn(BaseModel):
    """Descriptor of the timetable an import run creates."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=120)
    valid_from: date = Field(..., alias="validFrom")
