"""
Data models for the syllabus schedule extractor.

This module defines all the data structures used throughout the application.
All models use Python dataclasses, which provide a simple way to define
classes that mainly store data.

These models represent:
- Assignment records (the only thing the extraction engine ever returns)
- Column maps (per-sheet column roles, discarded after extraction)
- Extraction settings (the tunable heuristics)
- Extraction results and per-file errors
"""

from dataclasses import dataclass, field, asdict, replace
from datetime import date, datetime
from typing import List, Optional, Set, Tuple, Dict, Any, Union

from .dates import format_canonical, parse_canonical


DEFAULT_TITLE = "Unnamed Assignment"
DEFAULT_COURSE = "Unknown Course"
DEFAULT_TYPE = "Assignment"


@dataclass(frozen=True)
class AssignmentRecord:
    """A single normalized assignment.

    Records are immutable value objects. They only hold plain strings, so
    nothing from the source workbook can travel along with them. Two records
    with the same (title, due_date, course) are the same assignment.
    """
    title: str                  # e.g. "Homework 3", "Midterm Exam"
    due_date: str               # canonical M/D/YYYY, e.g. "3/17/2025"
    course: str = DEFAULT_COURSE  # e.g. "CMP 168"
    description: str = ""       # free text from the schedule cell(s)
    type: str = DEFAULT_TYPE    # "Homework", "P&C Activity", "Project", ... or a custom string
    source_file: Optional[str] = None  # provenance only

    def __post_init__(self):
        for name in ("title", "due_date", "course", "description", "type"):
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"{name} must be a string")
        if self.source_file is not None and not isinstance(self.source_file, str):
            raise ValueError("source_file must be a string")
        if not self.title.strip():
            raise ValueError("title must not be empty")
        parsed = parse_canonical(self.due_date)
        if parsed is None or format_canonical(parsed) != self.due_date:
            raise ValueError(f"invalid due date: {self.due_date!r}")

    @classmethod
    def create(cls,
               title: Any,
               due: Union[date, str, None],
               course: Any = None,
               description: Any = None,
               type: Any = None,
               source_file: Optional[str] = None) -> Optional["AssignmentRecord"]:
        """Build a record from loosely-typed values, applying defaults.

        Args:
            title: Title text (falls back to "Unnamed Assignment")
            due: Due date as a date or a canonical M/D/YYYY string
            course: Course name (falls back to "Unknown Course")
            description: Free text description
            type: Assignment type (falls back to "Assignment")
            source_file: Name of the originating file

        Returns:
            AssignmentRecord, or None if the values do not make a valid record
        """
        if isinstance(due, datetime):
            due = due.date()
        if isinstance(due, str):
            due = parse_canonical(due.strip())
        if isinstance(due, date):
            due = format_canonical(due)
        try:
            return cls(
                title=_clean(title) or DEFAULT_TITLE,
                due_date=due if isinstance(due, str) else "",
                course=_clean(course) or DEFAULT_COURSE,
                description=_clean(description),
                type=_clean(type) or DEFAULT_TYPE,
                source_file=_clean(source_file) or None,
            )
        except ValueError:
            return None

    @property
    def identity(self) -> Tuple[str, str, str]:
        """Deduplication key."""
        return (self.title, self.due_date, self.course)

    @property
    def due(self) -> date:
        """Due date as a date object."""
        return parse_canonical(self.due_date)

    def with_source(self, source_file: str) -> "AssignmentRecord":
        """Return a copy tagged with the originating file name."""
        return replace(self, source_file=source_file)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the external data contract (camelCase keys)."""
        data = {
            "title": self.title,
            "dueDate": self.due_date,
            "course": self.course,
            "description": self.description,
            "type": self.type,
        }
        if self.source_file:
            data["sourceFile"] = self.source_file
        return data


def _clean(value: Any) -> str:
    """Convert a loosely-typed value to stripped text."""
    if value is None:
        return ""
    return str(value).strip()


# Column roles, in the order assignment-bearing columns are scanned
ASSIGNMENT_BEARING_ROLES = (
    "pc", "hw", "project", "exam", "assignment", "description", "topic", "lab",
)


@dataclass
class ColumnMap:
    """Semantic roles of the physical columns in one sheet.

    Every role holds zero or more column indices. Built once per sheet by the
    column classifier, consumed by the timeline extractor, then discarded.
    """
    headers: List[str] = field(default_factory=list)
    date: List[int] = field(default_factory=list)
    due_date: List[int] = field(default_factory=list)
    week: List[int] = field(default_factory=list)
    topic: List[int] = field(default_factory=list)
    lab: List[int] = field(default_factory=list)
    hw: List[int] = field(default_factory=list)
    pc: List[int] = field(default_factory=list)
    project: List[int] = field(default_factory=list)
    exam: List[int] = field(default_factory=list)
    assignment: List[int] = field(default_factory=list)
    description: List[int] = field(default_factory=list)
    # Columns whose header says the row date is the due date ("HW Due By 11:59 PM")
    due_qualified: Set[int] = field(default_factory=set)

    def add(self, role: str, index: int):
        """Assign a role to a column index (no duplicates)."""
        columns = getattr(self, role)
        if index not in columns:
            columns.append(index)

    def date_columns(self) -> List[int]:
        """Date columns first, then due-date columns."""
        columns = list(self.date)
        for index in self.due_date:
            if index not in columns:
                columns.append(index)
        return columns

    def assignment_bearing(self) -> List[Tuple[int, str]]:
        """Assignment-bearing columns in scan priority order.

        Returns:
            List of (column index, role) pairs, each column listed once
        """
        seen = set()
        ordered = []
        for role in ASSIGNMENT_BEARING_ROLES:
            for index in getattr(self, role):
                if index not in seen:
                    seen.add(index)
                    ordered.append((index, role))
        return ordered


@dataclass
class ExtractionSettings:
    """Tunable heuristics for the extraction engine.

    Several of these encode guesses about how real-world course schedules
    are laid out, so they are settings rather than constants.
    """
    today: Optional[date] = None        # Reference "today" for past-due checks; None = system date
    default_lead_days: int = 7          # Homework / P&C activity lead when no due date is stated
    project_lead_days: int = 21         # Project lead when the text says "due" without a date
    year_sanity_window: int = 5         # Force the context year when a parsed year is further off
    assume_timeline_for_single_sheet: bool = True
    single_sheet_min_rows: int = 5
    carry_forward_dates: bool = True    # Reuse the previous row's date for rows without one
    fallback_date_column: int = 1       # Last-resort date column index
    header_scan_rows: int = 5           # Data rows scanned when headers don't reveal a date column
    detector_sample_rows: int = 10
    strategy_fallback: bool = True      # Retry a sheet with the other strategy when the first finds nothing
    skip_sheet_pattern: str = r"info|metadata|readme|about"

    def reference_date(self) -> date:
        """The date treated as "today"."""
        return self.today if self.today is not None else date.today()


@dataclass
class FileError:
    """A file that could not be read or processed."""
    file_name: str
    message: str

    def __str__(self) -> str:
        return f"{self.file_name}: {self.message}"


@dataclass
class ExtractionResult:
    """Outcome of extracting one or more files.

    `records` only ever holds AssignmentRecord instances.
    """
    records: List[AssignmentRecord] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)
    files_processed: int = 0

    @property
    def outcome(self) -> str:
        """One of success, partial (records plus file errors) or empty."""
        if not self.records:
            return "empty"
        if self.errors:
            return "partial"
        return "success"

    @property
    def message(self) -> str:
        """Short user-facing summary."""
        count = len(self.records)
        if count == 0:
            return "0 assignments found, check your file"
        if count == 1:
            return "1 assignment found"
        return f"{count} assignments found"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "assignments": [record.to_dict() for record in self.records],
            "errors": [asdict(error) for error in self.errors],
            "filesProcessed": self.files_processed,
            "outcome": self.outcome,
            "message": self.message,
        }
