import pytest

from timetabler.importer import MalformedDocument, load_document, parse_document
from timetabler.importer.utils import chunks


XML = """<?xml version="1.0" encoding="UTF-8"?>
<timetable>
  <periods>
    <period period="1" starttime="8:00" endtime="8:45"/>
    <period period="2" starttime="8:55" endtime="9:40"/>
  </periods>
  <subjects>
    <subject id="*1" name="  Mathematics " short="MA"/>
    <subject id="*2" name="" short="PH"/>
  </subjects>
  <TimeTableSchedules>
    <TimeTableSchedule DayID="1" Period="2" SubjectGradeID="*1" OptionalClassID=""/>
  </TimeTableSchedules>
</timetable>
"""


class TestScheduleDocument:
    def test_elements_in_document_order(self):
        document = parse_document(XML)
        periods = document.elements("period")

        assert [p.index for p in periods] == [0, 1]
        assert [p.get("period") for p in periods] == ["1", "2"]
        assert periods[1].get("endtime") == "9:40"

    def test_unknown_tag_is_empty(self):
        assert parse_document(XML).elements("teacher") == []

    def test_values_are_stripped_and_blank_is_absent(self):
        subjects = parse_document(XML).elements("subject")

        assert subjects[0].get("name") == "Mathematics"
        assert subjects[1].get("name") is None
        assert subjects[1].get("missing") is None

        entry = parse_document(XML).elements("TimeTableSchedule")[0]
        assert entry.get("OptionalClassID") is None

    def test_require_missing_attribute(self):
        subject = parse_document(XML).elements("subject")[1]

        with pytest.raises(MalformedDocument) as exc_info:
            subject.require("name")

        exc = exc_info.value
        assert (exc.tag, exc.attribute, exc.index) == ("subject", "name", 1)
        assert "attribute 'name'" in str(exc)

    @pytest.mark.parametrize("text", ["", "<timetable>", "<timetable><period></timetable>", "not xml at all"])
    def test_not_well_formed(self, text):
        with pytest.raises(MalformedDocument):
            parse_document(text)

    def test_load_document_from_file(self, tmp_path):
        path = tmp_path / "export.xml"
        path.write_text(XML, encoding="utf-8")

        document = load_document(path)
        assert len(document.elements("period")) == 2
        assert len(parse_document(path).elements("subject")) == 2


@pytest.mark.parametrize("items, size, expected", [
    ([1, 2, 3, 4, 5], 2, [[1, 2], [3, 4], [5]]),
    ([1, 2, 3], 3, [[1, 2, 3]]),
    ([], 100, []),
])
def test_chunks(items, size, expected):
    assert [list(c) for c in chunks(items, size)] == expected


def test_chunks_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(chunks([1], 0))
