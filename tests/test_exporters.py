"""Unit tests for CSV exporters."""

import csv
import io
from syllabus_sync.exporters import (
    map_assignment_type, format_planner_title, to_planner_rows, planner_csv, generic_csv,
    PLANNER_COLUMNS, GENERIC_COLUMNS
)
from syllabus_sync.models import AssignmentRecord


def make_records():
    return [
        AssignmentRecord(title="HW3", due_date="3/17/2025", course="CMP 168",
                         description="Loops, arrays", type="Homework", source_file="cmp168.xlsx"),
        AssignmentRecord(title="Midterm Exam", due_date="3/20/2025", course="CMP 168", type="Midterm Exam"),
    ]


def test_map_assignment_type():
    """Test the planner type lookup."""
    assert map_assignment_type("P&C Activity") == "Activity"
    assert map_assignment_type("Midterm Exam") == "Exam"
    assert map_assignment_type("HW") == "Homework"
    assert map_assignment_type("Lab") == "Lab"
    assert map_assignment_type("") == "Assignment"


def test_format_planner_title():
    """Test numbered title normalization."""
    assert format_planner_title(AssignmentRecord(title="HW3", due_date="3/17/2025", type="Homework")) == "Homework 3"
    assert format_planner_title(AssignmentRecord(title="Homework 3", due_date="3/17/2025", type="Homework")) == "Homework 3"
    assert format_planner_title(
        AssignmentRecord(title="Activity 2", due_date="3/17/2025", type="P&C Activity")
    ) == "P&C Activity 2"
    assert format_planner_title(AssignmentRecord(title="Essay", due_date="3/17/2025", type="Homework")) == "Essay"


def test_to_planner_rows():
    """Test planner rows with and without overrides."""
    rows = to_planner_rows(make_records())
    assert rows[0] == {
        "Name": "Homework 3",
        "Class": "CMP 168",
        "DueDate": "3/17/2025",
        "Details": "Loops, arrays\nSource: cmp168.xlsx",
        "Type": "Homework",
    }
    assert rows[1]["Details"] == ""
    assert rows[1]["Type"] == "Exam"

    rows = to_planner_rows(make_records(), course_override="  Programming II ", include_descriptions=False)
    assert {row["Class"] for row in rows} == {"Programming II"}
    assert {row["Details"] for row in rows} == {""}


def test_planner_csv():
    """Test the planner CSV layout."""
    content = planner_csv(make_records())
    assert content.splitlines()[0] == ",".join(PLANNER_COLUMNS)

    rows = list(csv.DictReader(io.StringIO(content)))
    assert len(rows) == 2
    assert rows[0]["Details"] == "Loops, arrays\nSource: cmp168.xlsx"


def test_generic_csv():
    """Test the generic CSV layout."""
    content = generic_csv(make_records())
    rows = list(csv.DictReader(io.StringIO(content)))

    assert list(rows[0]) == GENERIC_COLUMNS
    assert rows[0]["Title"] == "HW3"
    assert rows[0]["SourceFile"] == "cmp168.xlsx"
    assert rows[1]["SourceFile"] == ""


def test_empty_export():
    """Test exporting no records."""
    assert generic_csv([]) == ",".join(GENERIC_COLUMNS) + "\n"
