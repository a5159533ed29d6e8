"""
Sheet layout detection.

Decides whether a sheet is a timeline (date-indexed rows with assignments
mentioned inside topic/activity cells) or a flat table (one row per
assignment with explicit title and due date columns).

The detector favours recall: calling a flat table a timeline is tolerable
because the engine retries with the flat-table strategy when the timeline
pass finds nothing, while skipping a real timeline loses its assignments.
"""

import logging
import re
from datetime import date
from typing import Any, Optional, Sequence

from .column_classifier import header_text, looks_like_date_cell
from .dates import count_date_tokens, has_weekday
from .models import ExtractionSettings

logger = logging.getLogger(__name__)

NAME_KEYWORDS_RE = re.compile(r'schedule|timeline|syllabus|course|semester|calendar', re.IGNORECASE)
COURSE_CODE_RE = re.compile(r'(?<![A-Za-z])[A-Za-z]{2,4}[\s_\-]*\d{3,4}(?!\d)')
SEMESTER_YEAR_RE = re.compile(r'(fall|spring|summer|winter)[\s_\-]*\d{2,4}|(?<!\d)20\d{2}(?!\d)', re.IGNORECASE)
ASSIGNMENT_KEYWORDS_RE = re.compile(
    r'\bhw|\bhomework|\bassignment|\bproject|\bexam|\bquiz|\bmidterm|\bdue\b|p&c|\bactivity',
    re.IGNORECASE,
)

FLAT_TITLE_HEADERS = {"title", "assignment", "assignment name", "task", "name", "assignment title"}
FLAT_DUE_HEADERS = {"due date", "due", "deadline", "date", "due by", "submission date", "due on"}
TIMELINE_HEADER_WORDS = ("week", "lecture", "topic", "lab")


def looks_like_flat_table(header_row: Sequence[Any]) -> bool:
    """True if the header names a title column and a due date column and
    nothing that belongs to a timeline."""
    headers = [header_text(cell) for cell in header_row or []]
    if any(word in text for text in headers for word in TIMELINE_HEADER_WORDS):
        return False
    has_title = any(text in FLAT_TITLE_HEADERS for text in headers)
    has_due = any(text in FLAT_DUE_HEADERS for text in headers)
    return has_title and has_due


def _name_signals(name: str) -> bool:
    """Sheet or workbook name looks like a course schedule."""
    if not name:
        return False
    return bool(
        NAME_KEYWORDS_RE.search(name)
        or COURSE_CODE_RE.search(name)
        or SEMESTER_YEAR_RE.search(name)
    )


def _header_signals(header_row: Sequence[Any]) -> bool:
    """Header has date + week + (lecture or lab)."""
    text = " ".join(header_text(cell) for cell in header_row or [])
    return (
        "date" in text
        and ("week" in text or re.search(r'\bwk\b', text) is not None)
        and ("lecture" in text or "lab" in text)
    )


def _row_signals(row: Sequence[Any]) -> bool:
    """A data row holds two dates, a date plus an assignment keyword, or a
    weekday plus a date."""
    date_count = 0
    has_keyword = False
    mentions_weekday = False
    for value in row:
        if isinstance(value, date) or (not isinstance(value, str) and looks_like_date_cell(value)):
            date_count += 1
        elif isinstance(value, str):
            date_count += count_date_tokens(value)
            has_keyword = has_keyword or ASSIGNMENT_KEYWORDS_RE.search(value) is not None
            mentions_weekday = mentions_weekday or has_weekday(value)

    if date_count >= 2:
        return True
    return date_count >= 1 and (has_keyword or mentions_weekday)


def is_timeline_format(sheet_name: str,
                       header_row: Sequence[Any],
                       sample_rows: Sequence[Sequence[Any]],
                       sheet_count: int = 1,
                       settings: Optional[ExtractionSettings] = None,
                       workbook_name: str = "") -> bool:
    """Decide whether a sheet should be parsed with the timeline strategy.

    Args:
        sheet_name: Name of the sheet
        header_row: First row of the sheet
        sample_rows: Data rows after the header
        sheet_count: Number of sheets in the workbook
        settings: Extraction settings
        workbook_name: File name of the workbook

    Returns:
        True for timeline layout, False for flat-table layout
    """
    settings = settings or ExtractionSettings()

    if looks_like_flat_table(header_row):
        logger.debug("Sheet %r has flat-table headers", sheet_name)
        return False

    if _name_signals(sheet_name) or _name_signals(workbook_name):
        logger.debug("Sheet %r looks like a timeline by name", sheet_name)
        return True

    if _header_signals(header_row):
        logger.debug("Sheet %r looks like a timeline by header", sheet_name)
        return True

    for row in list(sample_rows)[:settings.detector_sample_rows]:
        if _row_signals(row):
            logger.debug("Sheet %r looks like a timeline by content", sheet_name)
            return True

    if (settings.assume_timeline_for_single_sheet
            and sheet_count == 1
            and len(sample_rows) >= settings.single_sheet_min_rows):
        logger.debug("Single-sheet workbook %r assumed to be a timeline", sheet_name)
        return True

    return False
