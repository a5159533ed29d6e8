"""
Flat-table extraction.

A flat table has one row per assignment with explicit columns for the
title, due date and so on. Column names vary between files, so every field
is looked up through an ordered list of header variants (case-insensitive).
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .column_classifier import MIN_SERIAL_DATE, MAX_SERIAL_DATE
from .dates import parse_flexible_date, is_past_due
from .models import AssignmentRecord, ExtractionSettings, DEFAULT_TITLE, DEFAULT_TYPE

logger = logging.getLogger(__name__)

DUE_DATE_VARIANTS = [
    "Due Date", "Due", "Deadline", "Date", "Due date", "Due By",
    "Submission Date", "Due On", "Date Due", "When",
]
TITLE_VARIANTS = [
    "Title", "Assignment", "Task", "Name", "Assignment Name",
    "Homework", "Project", "Activity", "Assignment Title", "Item",
]
DESCRIPTION_VARIANTS = ["Description", "Details", "Notes", "Comments", "Instructions"]
TYPE_VARIANTS = ["Type", "Category", "Kind", "Assignment Type"]
COURSE_VARIANTS = ["Course", "Class", "Course Name", "Course Code", "Subject"]


def find_value_from_variants(row: Mapping[str, Any], variants: Sequence[str]) -> Any:
    """Return the first non-empty value whose header matches a variant.

    Args:
        row: Row keyed by header text
        variants: Header names to try, in order

    Returns:
        Raw cell value, or None if no variant has a value
    """
    lowered = {}
    for key, value in row.items():
        if key is None:
            continue
        lowered.setdefault(" ".join(str(key).split()).lower(), value)

    for variant in variants:
        value = lowered.get(variant.lower())
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def rows_to_dicts(header_row: Sequence[Any], rows: Sequence[Sequence[Any]]) -> List[Dict[str, Any]]:
    """Key each data row by its header text.

    Blank or repeated headers get positional names ("Column 3").
    """
    keys = []
    for index, cell in enumerate(header_row):
        key = str(cell).strip() if cell is not None else ""
        if not key or key in keys:
            key = f"Column {index + 1}"
        keys.append(key)

    records = []
    for row in rows:
        item = {}
        for index, value in enumerate(row):
            key = keys[index] if index < len(keys) else f"Column {index + 1}"
            item[key] = value
        records.append(item)
    return records


def extract_flat_row(row: Mapping[str, Any],
                     course_name_fallback: str,
                     context_year: Optional[int] = None,
                     settings: Optional[ExtractionSettings] = None,
                     source_file: Optional[str] = None) -> Optional[AssignmentRecord]:
    """Extract one assignment from a flat-table row.

    Args:
        row: Row keyed by header text
        course_name_fallback: Course used when the row has no course column
        context_year: Year the schedule is for (for year sanity correction)
        settings: Extraction settings (for "today")
        source_file: Name of the originating file

    Returns:
        AssignmentRecord, or None if the row has no valid, current due date
    """
    settings = settings or ExtractionSettings()

    due_value = find_value_from_variants(row, DUE_DATE_VARIANTS)
    if due_value is None:
        return None
    if isinstance(due_value, (int, float)) and not isinstance(due_value, bool):
        if not MIN_SERIAL_DATE <= due_value <= MAX_SERIAL_DATE:
            return None

    due = parse_flexible_date(due_value, context_year, settings.year_sanity_window)
    if due is None:
        logger.debug("Unparseable due date %r", due_value)
        return None
    if is_past_due(due, settings.reference_date()):
        logger.debug("Skipping past due row dated %s", due)
        return None

    return AssignmentRecord.create(
        title=find_value_from_variants(row, TITLE_VARIANTS) or DEFAULT_TITLE,
        due=due,
        course=find_value_from_variants(row, COURSE_VARIANTS) or course_name_fallback,
        description=find_value_from_variants(row, DESCRIPTION_VARIANTS) or "",
        type=find_value_from_variants(row, TYPE_VARIANTS) or DEFAULT_TYPE,
        source_file=source_file,
    )


def extract_flat_rows(rows: Sequence[Mapping[str, Any]],
                      course_name_fallback: str,
                      context_year: Optional[int] = None,
                      settings: Optional[ExtractionSettings] = None,
                      source_file: Optional[str] = None) -> List[AssignmentRecord]:
    """Extract every valid row of a flat table."""
    records = []
    for row in rows:
        if not row:
            continue
        record = extract_flat_row(row, course_name_fallback, context_year, settings, source_file)
        if record is not None:
            records.append(record)
    logger.debug("Extracted %d assignments from flat table", len(records))
    return records
