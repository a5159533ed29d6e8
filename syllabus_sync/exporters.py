"""
CSV exporters.

Two layouts are supported: a planner import file (Name, Class, DueDate,
Details, Type) and a plain table with every record field.
"""

import csv
import io
import re
from typing import Dict, Iterable, List

from .models import AssignmentRecord, DEFAULT_COURSE, DEFAULT_TITLE, DEFAULT_TYPE

PLANNER_COLUMNS = ["Name", "Class", "DueDate", "Details", "Type"]
GENERIC_COLUMNS = ["Title", "DueDate", "Course", "Type", "Description", "SourceFile"]

# Assignment types the planner understands; anything else passes through
TYPE_MAP = {
    "Homework": "Homework",
    "HW": "Homework",
    "P&C Activity": "Activity",
    "PC Activity": "Activity",
    "Project": "Project",
    "Exam": "Exam",
    "Midterm": "Exam",
    "Midterm Exam": "Exam",
    "Final": "Exam",
    "Final Exam": "Exam",
    "Quiz": "Quiz",
    "Test": "Test",
}

# Types whose titles should read "<label> <number>"
NUMBERED_LABELS = {
    "Homework": "Homework",
    "P&C Activity": "P&C Activity",
}


def map_assignment_type(assignment_type: str) -> str:
    """Map an assignment type to the planner's vocabulary."""
    if not assignment_type:
        return DEFAULT_TYPE
    return TYPE_MAP.get(assignment_type, assignment_type)


def format_planner_title(record: AssignmentRecord) -> str:
    """Normalize numbered titles, e.g. a Homework titled "HW3" -> "Homework 3"."""
    if not record.title:
        return DEFAULT_TITLE
    label = NUMBERED_LABELS.get(record.type)
    if label and label not in record.title:
        number = re.search(r'\d+', record.title)
        if number:
            return f"{label} {number.group(0)}"
    return record.title


def _details(record: AssignmentRecord) -> str:
    parts = []
    if record.description:
        parts.append(record.description)
    if record.source_file:
        parts.append(f"Source: {record.source_file}")
    return "\n".join(parts)


def to_planner_rows(records: Iterable[AssignmentRecord],
                    course_override: str = "",
                    include_descriptions: bool = True) -> List[Dict[str, str]]:
    """Convert records to planner import rows.

    Args:
        records: Assignment records
        course_override: Course name used for every row when non-empty
        include_descriptions: Fill the Details column

    Returns:
        List of dicts keyed by PLANNER_COLUMNS
    """
    course_override = (course_override or "").strip()
    rows = []
    for record in records:
        rows.append({
            "Name": format_planner_title(record),
            "Class": course_override or record.course or DEFAULT_COURSE,
            "DueDate": record.due_date,
            "Details": _details(record) if include_descriptions else "",
            "Type": map_assignment_type(record.type),
        })
    return rows


def _write_csv(columns: List[str], rows: Iterable[Dict[str, str]]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


def planner_csv(records: Iterable[AssignmentRecord],
                course_override: str = "",
                include_descriptions: bool = True) -> str:
    """Render records as a planner import CSV."""
    return _write_csv(PLANNER_COLUMNS, to_planner_rows(records, course_override, include_descriptions))


def generic_csv(records: Iterable[AssignmentRecord]) -> str:
    """Render records as a CSV table with every field."""
    rows = (
        {
            "Title": record.title,
            "DueDate": record.due_date,
            "Course": record.course,
            "Type": record.type,
            "Description": record.description,
            "SourceFile": record.source_file or "",
        }
        for record in records
    )
    return _write_csv(GENERIC_COLUMNS, rows)
