"""
Read access to a timetable export.

The export is an XML dump whose interesting content lives in attributes:

    <timetable>
      <periods><period period="1" starttime="8:00" endtime="8:45"/></periods>
      <days><day day="1" name="Monday" short="Mo"/></days>
      <subjects><subject id="*3" name="Mathematics" short="MA"/></subjects>
      ...
      <TimeTableSchedules>
        <TimeTableSchedule DayID="1" Period="1" SubjectGradeID="*3" ClassID="*7"
                           OptionalClassID="" TeacherID="*1" SchoolRoomID="*12"/>
      </TimeTableSchedules>
    </timetable>

The import only ever asks for "all elements with tag X" and reads attributes,
so that is all this module offers.
"""
from __future__ import annotations

import os
from typing import Dict, List, Optional, Union
from xml.etree import ElementTree as ET

from timetabler.importer.errors import MalformedDocument


class Element:
    """One element of the export, addressed by its tag and position."""

    __slots__ = ("tag", "index", "_attrib")

    def __init__(self, tag: str, index: int, attrib: Dict[str, str]):
        self.tag = tag
        self.index = index
        self._attrib = attrib

    def get(self, name: str) -> Optional[str]:
        """Attribute value; empty or blank values count as absent."""
        value = self._attrib.get(name)
        if value is None:
            return None
        value = value.strip()
        return value or None

    def require(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise MalformedDocument(self.tag, name, self.index)
        return value

    def __repr__(self):
        return f"<Element {self.tag}#{self.index} {self._attrib!r}>"


class ScheduleDocument:
    def __init__(self, root: ET.Element):
        self._root = root

    def elements(self, tag: str) -> List[Element]:
        """Every element with `tag`, anywhere in the tree, in document order."""
        return [Element(tag, i, dict(el.attrib)) for i, el in enumerate(self._root.iter(tag))]

    @classmethod
    def from_string(cls, text: Union[str, bytes]) -> "ScheduleDocument":
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise MalformedDocument("document", detail=f"is not well-formed XML ({exc})") from exc
        return cls(root)


def parse_document(source: Union[str, bytes, os.PathLike]) -> ScheduleDocument:
    """Document from XML text or bytes, or from a file when given a path object."""
    if isinstance(source, os.PathLike):
        return load_document(source)
    return ScheduleDocument.from_string(source)


def load_document(path: Union[str, os.PathLike]) -> ScheduleDocument:
    with open(path, "rb") as f:
        return ScheduleDocument.from_string(f.read())
