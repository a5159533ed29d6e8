"""Unit tests for sheet layout detection."""

from datetime import date
from syllabus_sync.format_detector import is_timeline_format, looks_like_flat_table
from syllabus_sync.models import ExtractionSettings


def test_flat_table_header():
    """Test that flat-table headers win over other signals."""
    header = ["Title", "Due Date", "Type"]
    rows = [["Essay", "4/1/2025", "Homework"], ["Quiz", "4/8/2025 due", "Quiz"]]
    assert looks_like_flat_table(header)
    assert not is_timeline_format("CMP168 Schedule", header, rows)


def test_flat_header_with_timeline_words():
    """Test that week/topic headers rule out a flat table."""
    assert not looks_like_flat_table(["Week", "Title", "Due Date"])


def test_timeline_by_name():
    """Test sheet and workbook name signals."""
    assert is_timeline_format("Spring 2025", ["A", "B"], [])
    assert is_timeline_format("Course Calendar", ["A", "B"], [])
    assert is_timeline_format("Sheet1", ["A", "B"], [], workbook_name="CMP168.xlsx")


def test_timeline_by_header():
    """Test the date + week + lecture header signal."""
    assert is_timeline_format("Sheet1", ["Date", "Week", "Lecture"], [], sheet_count=3)


def test_timeline_by_rows():
    """Test data row signals."""
    header = ["Col A", "Col B"]
    assert is_timeline_format("Sheet1", header, [["3/10/2025", "HW 1 due"]], sheet_count=3)
    assert is_timeline_format("Sheet1", header, [["Mon", "3/10"]], sheet_count=3)
    assert is_timeline_format("Sheet1", header, [[date(2025, 3, 10), "3/12"]], sheet_count=3)
    assert not is_timeline_format("Sheet1", header, [["Reading", "3/10"]], sheet_count=3)


def test_single_sheet_fallback():
    """Test the single-sheet timeline assumption."""
    header = ["Foo", "Bar"]
    rows = [["x", "y"]] * 5
    assert is_timeline_format("Sheet1", header, rows, sheet_count=1)
    assert not is_timeline_format("Sheet1", header, rows, sheet_count=2)
    assert not is_timeline_format("Sheet1", header, rows[:4], sheet_count=1)

    settings = ExtractionSettings(assume_timeline_for_single_sheet=False)
    assert not is_timeline_format("Sheet1", header, rows, sheet_count=1, settings=settings)
