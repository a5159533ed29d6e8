"""
Column classification for schedule sheets.

Assigns a semantic role (date, due date, week, topic, lab, homework, P&C
activity, project, exam, generic assignment, description) to each column of
a sheet, using its header text and, when the headers are not enough, the
content of the first few data rows.

Precedence (the first matching rule claims a column):
  1. due/deadline phrases       -> due_date
  2. date/day/when              -> date
  3. week/wk                    -> week
  4. P&C/activity/act           -> pc
  5. hw/homework/assignment     -> hw
  6. exam/midterm/final/test/quiz -> exam
  7. lecture/topic/subject/content -> topic
  8. lab/practical/exercise     -> lab
  9. project                    -> project
 10. assign/task/work/deliverable/submission -> assignment
 11. description/details/notes  -> description

Two reclassifications run after the first match:
  - a due/date header that also names an assignment type ("HW Due By
    11:59 PM On Specified Date") becomes that type's column and is marked
    due-qualified, meaning the row date is the due date;
  - a topic header that names a lab ("Lab Session Topic") becomes a lab column.
"""

import logging
import re
from collections import Counter
from datetime import date
from typing import Any, Optional, Sequence

from .dates import DATE_TOKEN_RE
from .models import ColumnMap, ExtractionSettings

logger = logging.getLogger(__name__)

HEADER_RULES = [
    ("due_date", re.compile(r'\bdue\b|\bdeadlines?\b|submission\s+date')),
    ("date", re.compile(r'\bdates?\b|\bdays?\b|\bwhen\b')),
    ("week", re.compile(r'\bweeks?\b|\bwk\b')),
    ("pc", re.compile(r'p\s*&\s*c|\bactivit(?:y|ies)\b|\bact\b')),
    ("hw", re.compile(r'\bhw|\bhomework|\bassignments?\b')),
    ("exam", re.compile(r'\bexams?\b|\bmidterms?\b|\bfinals?\b|\btests?\b|\bquiz(?:zes)?\b')),
    ("topic", re.compile(r'lecture|topic|subject|content')),
    ("lab", re.compile(r'\blabs?\b|practical|exercise')),
    ("project", re.compile(r'\bprojects?\b')),
    ("assignment", re.compile(r'\bassign|\btasks?\b|\bwork\b|deliverable|submission')),
    ("description", re.compile(r'description|details|notes|comments')),
]

# Assignment types a due/date header may name
TYPED_ROLES = ("pc", "hw", "exam", "project")

# Cell content that hints at a column's role when headers don't
CONTENT_HINTS = [
    ("hw", re.compile(r'\bhw\s*#?\s*\d|\bhomework\b', re.IGNORECASE)),
    ("pc", re.compile(r'p&c|\bactivity\b', re.IGNORECASE)),
    ("project", re.compile(r'\bproject\b', re.IGNORECASE)),
    ("exam", re.compile(r'\bexam\b|\bmidterm\b|\bfinal\b', re.IGNORECASE)),
]

# Serial day counts in this range are treated as dates (1954 to 2119)
MIN_SERIAL_DATE = 20000
MAX_SERIAL_DATE = 80000


def header_text(cell: Any) -> str:
    """Normalize a header cell to lower-case text."""
    if cell is None:
        return ""
    return " ".join(str(cell).split()).lower()


def _rule_for(text: str) -> Optional[str]:
    """Return the first role whose keywords match the header text."""
    for role, pattern in HEADER_RULES:
        if pattern.search(text):
            return role
    return None


def _matches(role: str, text: str) -> bool:
    """True if the header text matches the keywords of a given role."""
    for rule_role, pattern in HEADER_RULES:
        if rule_role == role:
            return bool(pattern.search(text))
    return False


def looks_like_date_cell(value: Any) -> bool:
    """True if a raw cell value looks like a date."""
    if isinstance(value, bool):
        return False
    if isinstance(value, date):
        return True
    if isinstance(value, (int, float)):
        return MIN_SERIAL_DATE <= value <= MAX_SERIAL_DATE
    if isinstance(value, str):
        return DATE_TOKEN_RE.search(value) is not None
    return False


def classify_columns(header_row: Sequence[Any],
                     data_rows: Optional[Sequence[Sequence[Any]]] = None,
                     settings: Optional[ExtractionSettings] = None) -> ColumnMap:
    """Build the column map for one sheet.

    Never fails: missing or useless headers fall back to scanning the first
    data rows, and finally to a conventional date column index.

    Args:
        header_row: Header cells (any type, may contain None)
        data_rows: Data rows following the header (optional)
        settings: Extraction settings (for fallback scan depth and index)

    Returns:
        ColumnMap with roles as column indices
    """
    settings = settings or ExtractionSettings()
    data_rows = data_rows or []
    headers = [header_text(cell) for cell in (header_row or [])]
    column_map = ColumnMap(headers=[str(cell).strip() if cell is not None else "" for cell in (header_row or [])])

    for index, text in enumerate(headers):
        if not text:
            continue
        role = _rule_for(text)
        if role is None:
            continue

        if role in ("due_date", "date"):
            typed = next((r for r in TYPED_ROLES if _matches(r, text)), None)
            if typed is not None:
                column_map.add(typed, index)
                column_map.due_qualified.add(index)
                continue
        elif role == "topic" and _matches("lab", text):
            role = "lab"

        column_map.add(role, index)

    if not column_map.date and column_map.due_date:
        column_map.date = list(column_map.due_date)

    width = max([len(headers)] + [len(row) for row in data_rows[:settings.header_scan_rows]])

    if not column_map.date:
        _guess_date_column(column_map, data_rows[:settings.header_scan_rows], width, settings)

    if not column_map.assignment_bearing():
        _guess_content_columns(column_map, data_rows[:settings.header_scan_rows])

    logger.debug("Column map: %s", column_map)
    return column_map


def _guess_date_column(column_map: ColumnMap,
                       rows: Sequence[Sequence[Any]],
                       width: int,
                       settings: ExtractionSettings):
    """Second pass: pick the column that most often holds date-like cells."""
    hits = Counter()
    for row in rows:
        for index, value in enumerate(row):
            if index in column_map.week:
                continue
            if looks_like_date_cell(value):
                hits[index] += 1

    if hits:
        best = max(hits.items(), key=lambda item: (item[1], -item[0]))[0]
        column_map.add("date", best)
        logger.debug("Date column guessed from content: %d", best)
        return

    if width == 0:
        return
    fallback = settings.fallback_date_column if settings.fallback_date_column < width else 0
    column_map.add("date", fallback)
    logger.debug("No date column found, assuming column %d", fallback)


def _guess_content_columns(column_map: ColumnMap, rows: Sequence[Sequence[Any]]):
    """Assign assignment roles from cell content when no header named one."""
    taken = set(column_map.date) | set(column_map.due_date) | set(column_map.week)
    for row in rows:
        for index, value in enumerate(row):
            if index in taken or not isinstance(value, str):
                continue
            for role, pattern in CONTENT_HINTS:
                if pattern.search(value):
                    column_map.add(role, index)
