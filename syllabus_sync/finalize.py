"""
Merging, validation and deduplication of extracted assignments.
"""

import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from .dates import is_past_due, parse_canonical
from .models import AssignmentRecord

logger = logging.getLogger(__name__)


def is_valid_record(item: Any) -> bool:
    """True if the item is a well-formed AssignmentRecord.

    Anything else, including raw workbook or sheet objects, is rejected.
    """
    if not isinstance(item, AssignmentRecord):
        return False
    return bool(item.title.strip()) and parse_canonical(item.due_date) is not None


def finalize(records: Iterable[Any], today: Optional[date] = None) -> List[AssignmentRecord]:
    """Validate, deduplicate and sort extracted assignments.

    Invalid items are dropped (and logged) rather than failing the batch.
    Duplicates share (title, due_date, course); the first one wins.

    Args:
        records: Extracted records, possibly from several sheets and files
        today: When given, records due before this date are dropped too

    Returns:
        Records sorted by due date, insertion order kept for equal dates
    """
    unique = []
    seen = set()
    for item in records:
        if not is_valid_record(item):
            logger.warning("Dropping invalid assignment: %r", type(item).__name__)
            continue
        if today is not None and is_past_due(item.due, today):
            logger.debug("Dropping past due assignment %s (%s)", item.title, item.due_date)
            continue
        if item.identity in seen:
            continue
        seen.add(item.identity)
        unique.append(item)

    unique.sort(key=lambda record: record.due)
    return unique
