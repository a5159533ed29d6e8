"""
Timeline extraction.

A timeline sheet lists one class session (or day) per row. Assignments are
not rows of their own; they are mentioned inside topic, activity or
homework cells ("HW 3 due by 3/17", "Midterm Exam", "PROJECT 1 DUE").

For every row the extractor:
1. Resolves a row date (date columns, then week column text, then any
   cell, then the previous row's date).
2. Runs one extractor per assignment type (P&C activity, homework,
   project, exam) over the assignment-bearing columns in priority order.
   Each type stops at the first column that yields a match, but several
   types can match in the same row.
3. Falls back to a generic "Assignment" when no typed match was found but
   a cell talks about submitting or a deadline.
4. Drops anything past due. A row dated in the past only keeps entries
   with an explicit future due date written in the cell.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .column_classifier import MIN_SERIAL_DATE, MAX_SERIAL_DATE
from .dates import (
    NUMERIC_DATE_RE, WEEKDAY_DATE_RE, DATE_TOKEN_RE,
    parse_flexible_date, find_due_by_date, find_date_in_text,
    is_past_due, format_canonical,
)
from .models import AssignmentRecord, ColumnMap, ExtractionSettings, DEFAULT_TYPE

logger = logging.getLogger(__name__)

PLACEHOLDERS = {"", "-", "--", "n/a", "na", "none", "no class", "holiday", "tbd", "tba", "x"}

HW_TRIGGER = re.compile(r'\b(?:hw|homework)', re.IGNORECASE)
HW_NUMBER = re.compile(r'(?:hw|homework)\s*#?\s*(\d+)', re.IGNORECASE)

PC_TRIGGER = re.compile(r'p\s*&\s*c|\bactivity\b', re.IGNORECASE)
PC_NUMBER = re.compile(r'(?:p&c|activity)\s*#?\s*(\d+)', re.IGNORECASE)

PROJECT_TRIGGER = re.compile(r'\bproject', re.IGNORECASE)
PROJECT_NUMBER = re.compile(r'project\s*#?\s*(\d+)', re.IGNORECASE)

EXAM_TRIGGER = re.compile(r'\b(?:exams?|midterms?|finals?|tests?|quiz(?:zes)?)\b', re.IGNORECASE)
EXAM_NUMBER = re.compile(r'(?:exam|test|midterm)\s*#?\s*(\d+)', re.IGNORECASE)
QUIZ_NUMBER = re.compile(r'quiz\s*#?\s*(\d+)', re.IGNORECASE)
# "final" only means an exam when it doesn't qualify another deliverable
NOT_AN_EXAM = re.compile(r'\bfinal\s+(?:project|report|paper|presentation|essay)s?\b', re.IGNORECASE)
PREP_ONLY = re.compile(r'\breview\b|\bbuffer\b|\bopens?\b', re.IGNORECASE)
DEADLINE_WORDS = re.compile(r'\bdue\b|\bcloses?\b', re.IGNORECASE)

GENERIC_TRIGGER = re.compile(r'\b(?:submit|submission|task|due|deliverable|assignment)s?\b', re.IGNORECASE)
GENERIC_PREFIX = re.compile(r'^\s*(?:due|submit)\s*[:\-]\s*', re.IGNORECASE)
GENERIC_TITLE_MAX = 50

# "due 3/17", "Due: 03/17/2025", "due on 3/17"
DUE_DATE_RE = re.compile(r'\bdue\b[^0-9]{0,12}?(\d{1,2}[/\-]\d{1,2}(?:[/\-]\d{2,4})?)', re.IGNORECASE)

TRIGGERS = {
    "pc": PC_TRIGGER,
    "hw": HW_TRIGGER,
    "project": PROJECT_TRIGGER,
    "exam": EXAM_TRIGGER,
}


@dataclass
class CellContext:
    """One non-empty cell of a timeline row."""
    index: int
    role: Optional[str]         # column role, None for unclassified columns
    raw: Any                    # raw cell value
    text: str                   # cell rendered as text
    due_qualified: bool = False  # header says the row date is the due date


@dataclass
class Candidate:
    """A typed match before it becomes a record."""
    title: str
    type: str
    due: date
    explicit: bool              # due date written in the cell itself
    cell: CellContext


@dataclass
class RowContext:
    """Everything the type extractors need to know about the row."""
    row_date: date
    context_year: int
    settings: ExtractionSettings
    topic_text: str


def cell_text(value: Any) -> str:
    """Render a raw cell value as text."""
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, datetime):
        return format_canonical(value.date())
    if isinstance(value, date):
        return format_canonical(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_placeholder(text: str) -> bool:
    """Cells like "-", "N/A" or "No class" carry nothing."""
    return " ".join(text.split()).lower() in PLACEHOLDERS


def _number(pattern: re.Pattern, *texts: str) -> Optional[str]:
    """First number captured by the pattern in any of the texts."""
    for text in texts:
        if not text:
            continue
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def _numbered(label: str, number: Optional[str]) -> str:
    return f"{label} {number}" if number else label


def _cell_as_date(cell: CellContext, context_year: int, settings: ExtractionSettings) -> Optional[date]:
    """The cell itself is a date (native value or a short date string)."""
    if isinstance(cell.raw, date):
        return parse_flexible_date(cell.raw)
    if isinstance(cell.raw, str) and len(cell.text) <= 30 and not re.search(r'[a-z]{5,}', cell.text, re.IGNORECASE):
        if DATE_TOKEN_RE.search(cell.text) or NUMERIC_DATE_RE.search(cell.text):
            return (parse_flexible_date(cell.text, context_year, settings.year_sanity_window)
                    or find_date_in_text(cell.text, context_year))
    return None


def _explicit_due(cell: CellContext, context_year: int, settings: ExtractionSettings) -> Optional[date]:
    """A due date written in the cell: "due by 3/17", "due 3/17" or a bare date."""
    found = find_due_by_date(cell.text, context_year)
    if found is not None:
        return found
    match = DUE_DATE_RE.search(cell.text)
    if match:
        found = find_date_in_text(match.group(1), context_year)
        if found is not None:
            return found
    return _cell_as_date(cell, context_year, settings)


def _triggered(type_role: str, cell: CellContext) -> bool:
    """True if the cell should be read as the given assignment type.

    The keyword in the text always counts. A column classified as that type
    counts too, unless its text clearly names a different type.
    """
    if TRIGGERS[type_role].search(cell.text):
        return True
    if cell.role != type_role:
        return False
    for other, pattern in TRIGGERS.items():
        if other != type_role and pattern.search(cell.text):
            return False
    return True


def _lead_due(cell: CellContext, row: RowContext, lead_days: int) -> Tuple[date, bool]:
    """Explicit due date if present, else the row date (due-qualified
    columns) or the row date plus a lead."""
    explicit = _explicit_due(cell, row.context_year, row.settings)
    if explicit is not None:
        return explicit, True
    if cell.due_qualified:
        return row.row_date, False
    return row.row_date + timedelta(days=lead_days), False


def extract_homework(cell: CellContext, row: RowContext) -> Optional[Candidate]:
    """Homework: "HW 3", "Homework #2 due by 3/17"."""
    if not _triggered("hw", cell):
        return None
    number = _number(HW_NUMBER, cell.text, row.topic_text if cell.role == "hw" else "")
    due, explicit = _lead_due(cell, row, row.settings.default_lead_days)
    return Candidate(_numbered("Homework", number), "Homework", due, explicit, cell)


def extract_activity(cell: CellContext, row: RowContext) -> Optional[Candidate]:
    """P&C activity: "P&C Activity 4", "Activity #2"."""
    if not _triggered("pc", cell):
        return None
    number = _number(PC_NUMBER, cell.text, row.topic_text if cell.role == "pc" else "")
    due, explicit = _lead_due(cell, row, row.settings.default_lead_days)
    return Candidate(_numbered("P&C Activity", number), "P&C Activity", due, explicit, cell)


def extract_project(cell: CellContext, row: RowContext) -> Optional[Candidate]:
    """Project: "PROJECT 1 DUE", "Project 2 due by 4/2/2025"."""
    if not _triggered("project", cell):
        return None
    number = _number(PROJECT_NUMBER, cell.text)
    title = _numbered("Project", number)

    found = find_due_by_date(cell.text, row.context_year)
    if found is None:
        match = NUMERIC_DATE_RE.search(cell.text)
        if match:
            found = parse_flexible_date(match.group(0))
    if found is None:
        match = WEEKDAY_DATE_RE.search(cell.text)
        if match:
            found = parse_flexible_date(match.group(0))
    if found is None and isinstance(cell.raw, date):
        found = parse_flexible_date(cell.raw)
    if found is not None:
        return Candidate(title, "Project", found, True, cell)

    if cell.due_qualified:
        return Candidate(title, "Project", row.row_date, False, cell)
    if re.search(r'\bdue\b', cell.text, re.IGNORECASE):
        due = row.row_date + timedelta(days=row.settings.project_lead_days)
        return Candidate(title, "Project", due, False, cell)
    return Candidate(title, "Project", row.row_date, False, cell)


def extract_exam(cell: CellContext, row: RowContext) -> Optional[Candidate]:
    """Exams: midterm, final, quiz, or a generic exam/test."""
    text = NOT_AN_EXAM.sub(" ", cell.text)
    scrubbed = CellContext(cell.index, cell.role, cell.raw, text, cell.due_qualified)
    if not _triggered("exam", scrubbed):
        return None
    if PREP_ONLY.search(text) and not DEADLINE_WORDS.search(text):
        logger.debug("Skipping exam prep cell: %r", cell.text)
        return None

    lower = text.lower()
    if "midterm" in lower:
        title = _numbered("Midterm Exam", _number(EXAM_NUMBER, text))
        exam_type = "Midterm Exam"
    elif re.search(r'\bfinals?\b', lower):
        title, exam_type = "Final Exam", "Final Exam"
    elif "quiz" in lower:
        title = _numbered("Quiz", _number(QUIZ_NUMBER, text))
        exam_type = "Quiz"
    else:
        title = _numbered("Exam", _number(EXAM_NUMBER, text))
        exam_type = "Exam"

    explicit = _explicit_due(cell, row.context_year, row.settings)
    if explicit is None:
        match = NUMERIC_DATE_RE.search(cell.text)
        if match:
            explicit = parse_flexible_date(match.group(0))
    if explicit is not None:
        return Candidate(title, exam_type, explicit, True, cell)
    return Candidate(title, exam_type, row.row_date, False, cell)


TYPE_EXTRACTORS: List[Tuple[str, Callable[[CellContext, RowContext], Optional[Candidate]]]] = [
    ("pc", extract_activity),
    ("hw", extract_homework),
    ("project", extract_project),
    ("exam", extract_exam),
]


def extract_generic(cells: Sequence[CellContext], row: RowContext) -> Optional[Candidate]:
    """Fallback for rows where no typed assignment was found.

    Cells in an assignment column count as assignments on their own; other
    cells need a word like "submit", "due" or "deliverable".
    """
    ordered = [c for c in cells if c.role == "assignment"] + [c for c in cells if c.role != "assignment"]
    for cell in ordered:
        if isinstance(cell.raw, date) or not cell.text:
            continue
        if cell.role != "assignment" and not GENERIC_TRIGGER.search(cell.text):
            continue

        cleaned = GENERIC_PREFIX.sub("", cell.text).strip()
        title = cleaned if cleaned and len(cleaned) <= GENERIC_TITLE_MAX else DEFAULT_TYPE

        explicit = _explicit_due(cell, row.context_year, row.settings)
        if explicit is None:
            explicit = find_date_in_text(cell.text, row.context_year)
        if explicit is not None:
            return Candidate(title, DEFAULT_TYPE, explicit, True, cell)
        return Candidate(title, DEFAULT_TYPE, row.row_date, False, cell)
    return None


class TimelineExtractor:
    """Extracts assignments from timeline-formatted rows."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        """Initialize the extractor.

        Args:
            settings: Extraction settings (defaults if omitted)
        """
        self.settings = settings or ExtractionSettings()

    def extract_sheet(self,
                      rows: Sequence[Sequence[Any]],
                      column_map: ColumnMap,
                      course_name: str,
                      context_year: int,
                      source_file: Optional[str] = None) -> List[AssignmentRecord]:
        """Extract assignments from every data row of a sheet, top to bottom.

        Args:
            rows: Data rows (header excluded)
            column_map: Column roles for the sheet
            course_name: Course the assignments belong to
            context_year: Year the schedule is for
            source_file: Name of the originating file

        Returns:
            List of AssignmentRecord objects
        """
        records = []
        previous_date = None
        for row_index, row in enumerate(rows):
            if not row or all(cell_text(value) == "" and value is not True for value in row):
                continue
            try:
                row_date = self.resolve_row_date(row, column_map, context_year, previous_date)
                if row_date is None:
                    logger.debug("No date for row %d, skipping", row_index)
                    continue
                if self.settings.carry_forward_dates:
                    previous_date = row_date
                records.extend(self._extract_with_date(
                    row, row_date, column_map, course_name, context_year, source_file
                ))
            except (ValueError, TypeError, IndexError) as e:
                logger.debug("Row %d could not be extracted: %s", row_index, e)
        logger.debug("Extracted %d assignments from timeline rows", len(records))
        return records

    def extract_row(self,
                    row: Sequence[Any],
                    column_map: ColumnMap,
                    course_name: str,
                    context_year: int,
                    previous_date: Optional[date] = None,
                    source_file: Optional[str] = None) -> List[AssignmentRecord]:
        """Extract the assignments mentioned in one row.

        Args:
            row: Raw cell values, as a list or keyed by header
            column_map: Column roles for the sheet
            course_name: Course the assignments belong to
            context_year: Year the schedule is for
            previous_date: Date of the last row that had one (carried forward)
            source_file: Name of the originating file

        Returns:
            Zero or more AssignmentRecord objects
        """
        if isinstance(row, Mapping):
            row = [row.get(header) for header in column_map.headers]
        row_date = self.resolve_row_date(row, column_map, context_year, previous_date)
        if row_date is None:
            return []
        return self._extract_with_date(row, row_date, column_map, course_name, context_year, source_file)

    def resolve_row_date(self,
                         row: Sequence[Any],
                         column_map: ColumnMap,
                         context_year: int,
                         previous_date: Optional[date] = None) -> Optional[date]:
        """Find the date a timeline row belongs to.

        Order: date/due-date columns, a date inside the week column text, any
        date-valued cell, any date token in a text cell, the previous row's date.
        """
        window = self.settings.year_sanity_window

        for index in column_map.date_columns():
            value = _get(row, index)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                if not MIN_SERIAL_DATE <= value <= MAX_SERIAL_DATE:
                    continue
            found = parse_flexible_date(value, context_year, window)
            if found is None and isinstance(value, str):
                found = find_date_in_text(value, context_year)
            if found is not None:
                return found

        for index in column_map.week:
            found = find_date_in_text(cell_text(_get(row, index)), context_year)
            if found is not None:
                return found

        for value in row:
            if isinstance(value, date):
                return parse_flexible_date(value, context_year, window)

        for value in row:
            if isinstance(value, str):
                found = find_date_in_text(value, context_year)
                if found is not None:
                    return found

        if self.settings.carry_forward_dates and previous_date is not None:
            return previous_date
        return None

    def _extract_with_date(self,
                           row: Sequence[Any],
                           row_date: date,
                           column_map: ColumnMap,
                           course_name: str,
                           context_year: int,
                           source_file: Optional[str]) -> List[AssignmentRecord]:
        today = self.settings.reference_date()
        row_is_past = is_past_due(row_date, today)

        cells = self._cells(row, column_map)
        topic_text = self._topic_text(row, column_map)
        context = RowContext(row_date, context_year, self.settings, topic_text)

        candidates = []
        for _, extractor in TYPE_EXTRACTORS:
            for cell in cells:
                candidate = extractor(cell, context)
                if candidate is not None:
                    candidates.append(candidate)
                    break

        if not candidates:
            generic = extract_generic(cells, context)
            if generic is not None:
                candidates.append(generic)

        records = []
        for candidate in candidates:
            if is_past_due(candidate.due, today):
                logger.debug("Skipping past due %s (%s)", candidate.title, candidate.due)
                continue
            if row_is_past and not candidate.explicit:
                logger.debug("Skipping %s from past row %s", candidate.title, row_date)
                continue
            record = AssignmentRecord.create(
                title=candidate.title,
                due=candidate.due,
                course=course_name,
                description=self._description(topic_text, candidate.cell.text),
                type=candidate.type,
                source_file=source_file,
            )
            if record is not None:
                records.append(record)
        return records

    def _cells(self, row: Sequence[Any], column_map: ColumnMap) -> List[CellContext]:
        """Non-empty cells in scan order: classified assignment-bearing
        columns by priority, then unclassified columns."""
        ordered = list(column_map.assignment_bearing())
        claimed = {index for index, _ in ordered}
        skipped = set(column_map.date_columns()) | set(column_map.week)
        for index in range(len(row)):
            if index not in claimed and index not in skipped:
                ordered.append((index, None))

        cells = []
        for index, role in ordered:
            raw = _get(row, index)
            text = cell_text(raw)
            if raw is True:
                cells.append(CellContext(index, role, raw, "", index in column_map.due_qualified))
                continue
            if is_placeholder(text):
                continue
            cells.append(CellContext(index, role, raw, text, index in column_map.due_qualified))
        return cells

    def _topic_text(self, row: Sequence[Any], column_map: ColumnMap) -> str:
        """Topic and lab column text joined with " - "."""
        parts = []
        for index in column_map.topic + column_map.lab:
            text = cell_text(_get(row, index))
            if text and not is_placeholder(text) and text not in parts:
                parts.append(text)
        return " - ".join(parts)

    @staticmethod
    def _description(topic_text: str, trigger_text: str) -> str:
        if not trigger_text or trigger_text in topic_text:
            return topic_text
        if not topic_text:
            return trigger_text
        return f"{topic_text} - {trigger_text}"


def _get(row: Sequence[Any], index: int) -> Any:
    """Cell at index, None when the row is shorter."""
    if 0 <= index < len(row):
        return row[index]
    return None


def extract_timeline_row(row: Sequence[Any],
                         column_map: ColumnMap,
                         course_name: str,
                         context_year: int,
                         settings: Optional[ExtractionSettings] = None,
                         previous_date: Optional[date] = None) -> List[AssignmentRecord]:
    """Extract the assignments from a single timeline row."""
    return TimelineExtractor(settings).extract_row(
        row, column_map, course_name, context_year, previous_date
    )
