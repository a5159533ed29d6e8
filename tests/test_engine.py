"""Integration tests for the extraction engine."""

import json
from datetime import date
from openpyxl import Workbook
from syllabus_sync.engine import ScheduleExtractor
from syllabus_sync.models import AssignmentRecord, ExtractionSettings

TODAY = date(2025, 3, 5)


def make_extractor(**kwargs):
    return ScheduleExtractor(ExtractionSettings(today=TODAY, **kwargs))


def timeline_workbook(path, extra_sheets=None):
    """Write a small timeline workbook and return its content."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Spring 2025"
    ws.append(["Week", "Date", "Lecture Topic", "Homework"])
    ws.append([1, date(2025, 3, 3), "Intro", "HW 1"])
    ws.append([2, date(2025, 3, 10), "Loops", "HW 2 due by 3/20/2025"])
    ws.append([3, date(2025, 3, 17), "Midterm Exam", None])
    for name, rows in (extra_sheets or {}).items():
        extra = wb.create_sheet(name)
        for row in rows:
            extra.append(row)
    wb.save(path)
    return path.read_bytes()


def test_timeline_workbook(tmp_path):
    """Test a timeline workbook end to end."""
    content = timeline_workbook(tmp_path / "CMP168_Timeline.xlsx")
    result = make_extractor().extract_files([("CMP168_Timeline.xlsx", content)])

    assert result.outcome == "success"
    assert result.files_processed == 1
    assert [(r.title, r.due_date, r.type) for r in result.records] == [
        ("Midterm Exam", "3/17/2025", "Midterm Exam"),
        ("Homework 2", "3/20/2025", "Homework"),
    ]
    assert all(r.course == "CMP 168" for r in result.records)
    assert all(r.source_file == "CMP168_Timeline.xlsx" for r in result.records)
    assert result.records[1].description == "Loops - HW 2 due by 3/20/2025"


def test_info_sheets_skipped(tmp_path):
    """Test that info sheets are ignored."""
    content = timeline_workbook(tmp_path / "CMP168.xlsx", {
        "Course Info": [["Title", "Due Date"], ["Syllabus quiz", "4/1/2025"]],
    })
    result = make_extractor().extract_files([("CMP168.xlsx", content)])
    assert "Syllabus quiz" not in [r.title for r in result.records]
    assert len(result.records) == 2


def test_flat_csv():
    """Test a flat-table CSV."""
    content = b"Title,Due Date,Type\nEssay 1,4/1/2025,Homework\nOld quiz,1/15/2025,Quiz\n"
    result = make_extractor().extract_files([("assignments.csv", content)])

    assert [(r.title, r.due_date, r.type, r.course) for r in result.records] == [
        ("Essay 1", "4/1/2025", "Homework", "assignments"),
    ]


def test_strategy_fallback():
    """Test that a sheet mistaken for a timeline is retried as a flat table."""
    lines = ["Item,When"] + [f"Reading {n},4/{n}/2025" for n in range(1, 6)]
    content = "\n".join(lines).encode("utf-8")

    result = make_extractor().extract_files([("list.csv", content)])
    assert [r.title for r in result.records] == [f"Reading {n}" for n in range(1, 6)]

    result = make_extractor(strategy_fallback=False).extract_files([("list.csv", content)])
    assert result.records == []


def test_file_errors_do_not_stop_batch():
    """Test that a bad file becomes an error entry."""
    good = b"Title,Due Date\nEssay,4/1/2025\n"
    result = make_extractor().extract_files([
        ("old.xls", b"\xd0\xcf\x11\xe0"),
        ("broken.xlsx", b"not a zip"),
        ("good.csv", good),
    ])

    assert result.outcome == "partial"
    assert result.files_processed == 3
    assert [e.file_name for e in result.errors] == ["old.xls", "broken.xlsx"]
    assert [r.title for r in result.records] == ["Essay"]


def test_empty_file():
    """Test that an empty file gives an empty outcome without errors."""
    result = make_extractor().extract_files([("empty.csv", b"")])
    assert result.outcome == "empty"
    assert result.errors == []
    assert result.message == "0 assignments found, check your file"


def test_duplicates_across_files():
    """Test deduplication across files."""
    content = b"Title,Due Date,Course\nEssay,4/1/2025,ENG 101\n"
    result = make_extractor().extract_files([("a.csv", content), ("b.csv", content)])

    assert len(result.records) == 1
    assert result.records[0].source_file == "a.csv"


def test_extract_paths(tmp_path):
    """Test reading files from disk, including a missing one."""
    path = tmp_path / "ENG101.csv"
    path.write_bytes(b"Title,Due Date\nEssay,4/1/2025\n")

    result = make_extractor().extract_paths([path, tmp_path / "missing.csv"])
    assert [r.course for r in result.records] == ["ENG 101"]
    assert [e.file_name for e in result.errors] == ["missing.csv"]
    assert result.files_processed == 2


def test_output_holds_only_records(tmp_path):
    """Test that results never carry workbook data."""
    content = timeline_workbook(tmp_path / "CMP168.xlsx")
    result = make_extractor().extract_files([("CMP168.xlsx", content)])

    assert all(isinstance(r, AssignmentRecord) for r in result.records)
    data = result.to_dict()
    assert set(data) == {"assignments", "errors", "filesProcessed", "outcome", "message"}
    for item in data["assignments"]:
        assert set(item) <= {"title", "dueDate", "course", "description", "type", "sourceFile"}
    json.dumps(data)
