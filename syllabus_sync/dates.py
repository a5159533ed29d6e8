"""
Date normalization for schedule spreadsheets.

Spreadsheet cells hold dates in many shapes: native date values, serial
day counts, "3/10/2025", "3/10/25", "Monday 03/10/2025", or prose such as
"HW 3 due by 3/17". Everything is normalized to a plain `date`, and
rendered back out as canonical M/D/YYYY.
"""

import logging
import math
import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

import dateparser

logger = logging.getLogger(__name__)

# Spreadsheet serial dates count days from this epoch
EXCEL_EPOCH = datetime(1899, 12, 30)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# MM/DD/YY or MM/DD/YYYY with "/" or "-" separators
NUMERIC_DATE_RE = re.compile(r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})')

# "Saturday 03/29/2025"
WEEKDAY_DATE_RE = re.compile(
    r'(Monday|Tuesday|Wednesday|Thursday|Friday|Saturday|Sunday)\s+(\d{1,2})/(\d{1,2})/(\d{4})',
    re.IGNORECASE,
)

# "due by 3/17", "Due by 3/17/25", "due by 03/17/2025"
DUE_BY_RE = re.compile(r'due\s+by\s+(\d{1,2})/(\d{1,2})(?:/(\d{2,4}))?', re.IGNORECASE)

# MM/DD with optional year, or MM-DD-YY[YY]. Dashes need a year so that
# ranges like "Chapters 1-3" are not read as dates.
DATE_TOKEN_RE = re.compile(
    r'(?<![\d/\-])'
    r'(?:(?P<month>\d{1,2})/(?P<day>\d{1,2})(?:/(?P<year>\d{2,4}))?'
    r'|(?P<dmonth>\d{1,2})-(?P<dday>\d{1,2})-(?P<dyear>\d{2,4}))'
    r'(?![\d/\-])'
)

WEEKDAY_RE = re.compile(
    r'\b(mon|tue|tues|wed|thu|thur|thurs|fri|sat|sun)(day)?\b',
    re.IGNORECASE,
)

CANONICAL_RE = re.compile(r'^(\d{1,2})/(\d{1,2})/(\d{4})$')

# Words allowed in a string handed to the generic parser
_DATE_WORDS_RE = re.compile(
    r'\b(jan(uary)?|feb(ruary)?|mar(ch)?|apr(il)?|may|june?|july?|aug(ust)?|'
    r'sep(t(ember)?)?|oct(ober)?|nov(ember)?|dec(ember)?|'
    r'mon(day)?|tue(s(day)?)?|wed(nesday)?|thu(r(s(day)?)?)?|fri(day)?|sat(urday)?|sun(day)?|'
    r'am|pm)\b\.?',
    re.IGNORECASE,
)
_ORDINAL_RE = re.compile(r'(?<=\d)(st|nd|rd|th)\b', re.IGNORECASE)
_DATE_PUNCT_RE = re.compile(r'^[\d\s,./:\-T]*$')

_DATEPARSER_SETTINGS = {
    'DATE_ORDER': 'MDY',
    'STRICT_PARSING': True,
    'PREFER_DAY_OF_MONTH': 'first',
    'RETURN_AS_TIMEZONE_AWARE': False,
}


def parse_flexible_date(value: Any,
                        context_year: Optional[int] = None,
                        sanity_window: int = 5) -> Optional[date]:
    """Parse a cell value into a calendar date.

    Tries, in order: native date values, spreadsheet serial numbers, a
    generic parse of date-only strings, MM/DD/YY[YY], "<Weekday> MM/DD/YYYY"
    and an embedded "due by MM/DD[/YY[YY]]" phrase.

    Args:
        value: Raw cell value (date, datetime, int, float or str)
        context_year: Year the schedule is for. When given, any result more
            than `sanity_window` years away from it gets this year instead.
        sanity_window: Allowed distance between parsed year and context year

    Returns:
        date, or None if nothing date-like was found
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)):
        parsed = _from_serial(value)
    else:
        parsed = _parse_string(str(value).strip(), context_year)

    if parsed is None:
        return None
    return _correct_year(parsed, context_year, sanity_window)


def _from_serial(value: float) -> Optional[date]:
    """Convert a spreadsheet serial day count to a date."""
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return None
    try:
        return (EXCEL_EPOCH + timedelta(days=value)).date()
    except OverflowError:
        return None


def _parse_string(text: str, context_year: Optional[int]) -> Optional[date]:
    """Run the string parsing steps in order, first match wins."""
    if not text:
        return None

    # 1. Generic parse, only for strings made of date words and digits.
    # Bare numeric dates skip it so two-digit years keep the 50 boundary.
    if _looks_like_plain_date(text) and not NUMERIC_DATE_RE.fullmatch(text):
        parsed = dateparser.parse(text, languages=['en'], settings=_DATEPARSER_SETTINGS)
        if parsed is not None:
            return parsed.date()

    # 2. MM/DD/YY or MM/DD/YYYY
    match = NUMERIC_DATE_RE.search(text)
    if match:
        parsed = _build_date(match.group(3), match.group(1), match.group(2))
        if parsed is not None:
            return parsed

    # 3. "Saturday 03/29/2025"
    match = WEEKDAY_DATE_RE.search(text)
    if match:
        parsed = _build_date(match.group(4), match.group(2), match.group(3))
        if parsed is not None:
            return parsed

    # 4. "due by 3/17"
    return find_due_by_date(text, context_year)


def _looks_like_plain_date(text: str) -> bool:
    """True if the text contains nothing but date words, digits and separators."""
    if len(text) > 40 or not any(ch.isdigit() for ch in text):
        return False
    stripped = _ORDINAL_RE.sub('', text)
    stripped = _DATE_WORDS_RE.sub('', stripped)
    return bool(_DATE_PUNCT_RE.match(stripped))


def _expand_year(year: str) -> int:
    """Two-digit years: below 50 is 20xx, otherwise 19xx."""
    value = int(year)
    if len(year) == 2:
        return value + (2000 if value < 50 else 1900)
    return value


def _build_date(year: Optional[str], month: str, day: str,
                default_year: Optional[int] = None) -> Optional[date]:
    """Build a date from regex groups, None if the values are out of range.

    A missing year takes `default_year`; without one there is no date.
    """
    if year:
        full_year = _expand_year(year)
    elif default_year is not None:
        full_year = default_year
    else:
        return None
    try:
        return date(full_year, int(month), int(day))
    except ValueError:
        return None


def _correct_year(parsed: date, context_year: Optional[int], window: int) -> date:
    """Force the context year onto dates that are implausibly far from it."""
    if context_year is None or abs(parsed.year - context_year) <= window:
        return parsed
    logger.debug("Correcting year of %s to %d", parsed.isoformat(), context_year)
    try:
        return parsed.replace(year=context_year)
    except ValueError:
        # Feb 29 in a non-leap context year
        return parsed.replace(year=context_year, day=28)


def find_due_by_date(text: Any, context_year: Optional[int] = None) -> Optional[date]:
    """Find an embedded "due by MM/DD[/YY[YY]]" phrase in prose.

    A phrase without a year needs `context_year`.
    """
    if not isinstance(text, str):
        return None
    match = DUE_BY_RE.search(text)
    if not match:
        return None
    return _build_date(match.group(3), match.group(1), match.group(2), context_year)


def find_date_in_text(text: Any, context_year: Optional[int] = None) -> Optional[date]:
    """Find the first MM/DD or MM/DD/YY[YY] token in free text.

    Year-less tokens take the context year.
    """
    if not isinstance(text, str):
        return None
    for match in DATE_TOKEN_RE.finditer(text):
        year, month, day = _token_parts(match)
        parsed = _build_date(year, month, day, context_year)
        if parsed is not None:
            return parsed
    return None


def _token_parts(match: re.Match):
    """(year, month, day) strings from a DATE_TOKEN_RE match."""
    if match.group('month'):
        return match.group('year'), match.group('month'), match.group('day')
    return match.group('dyear'), match.group('dmonth'), match.group('dday')


def count_date_tokens(text: Any) -> int:
    """Number of valid-looking MM/DD tokens in a piece of text."""
    if not isinstance(text, str):
        return 0
    count = 0
    for match in DATE_TOKEN_RE.finditer(text):
        _, month, day = _token_parts(match)
        if 1 <= int(month) <= 12 and 1 <= int(day) <= 31:
            count += 1
    return count


def has_weekday(text: Any) -> bool:
    """True if the text mentions a weekday name."""
    return isinstance(text, str) and WEEKDAY_RE.search(text) is not None


def format_canonical(value: date) -> str:
    """Format a date as M/D/YYYY without zero padding."""
    return f"{value.month}/{value.day}/{value.year:04d}"


def parse_canonical(text: Any) -> Optional[date]:
    """Parse a canonical M/D/YYYY string, None if it is not one."""
    if not isinstance(text, str):
        return None
    match = CANONICAL_RE.match(text)
    if not match:
        return None
    try:
        return date(int(match.group(3)), int(match.group(1)), int(match.group(2)))
    except ValueError:
        return None


def is_past_due(value: Optional[date], today: Optional[date] = None) -> bool:
    """True if the date is before today. A date equal to today is not past.

    Args:
        value: Date to check
        today: Reference date (defaults to the system date)
    """
    if value is None:
        return False
    if isinstance(value, datetime):
        value = value.date()
    if today is None:
        today = date.today()
    return value < today


def extract_year_from_sheet_name(sheet_name: str, default: int) -> int:
    """Pull a 20xx year out of a sheet name, e.g. "Spring_2025", else `default`."""
    match = re.search(r'(?<!\d)(20\d{2})(?!\d)', sheet_name or "")
    if match:
        return int(match.group(1))
    return default


def days_remaining(due: date, today: Optional[date] = None) -> int:
    """Whole days from today until the due date (negative if overdue)."""
    if today is None:
        today = date.today()
    return (due - today).days


def days_remaining_text(due: date, today: Optional[date] = None) -> str:
    """Human readable countdown, e.g. "Due in 3 days"."""
    days = days_remaining(due, today)
    if days == 0:
        return "Due today"
    if days == 1:
        return "Due tomorrow"
    if days < 0:
        return f"Overdue by {abs(days)} days"
    return f"Due in {days} days"
