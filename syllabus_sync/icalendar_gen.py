"""
iCalendar generation module.

Generates standards-compliant .ics files for calendar import. Every
assignment becomes an all-day event on its due date.
"""

import uuid
from datetime import datetime
from typing import Iterable, Optional
from icalendar import Calendar, Event
from pytz import timezone, utc

from .models import AssignmentRecord


class ICalendarGenerator:
    """Generates iCalendar (.ics) files from assignment records."""

    def __init__(self, timezone_str: str = "America/New_York"):
        """Initialize calendar generator.

        Args:
            timezone_str: Timezone string (default: America/New_York)
        """
        self.tz = timezone(timezone_str)

    def generate_calendar(self,
                          records: Iterable[AssignmentRecord],
                          now: Optional[datetime] = None) -> Calendar:
        """Generate a calendar with one due event per assignment.

        Args:
            records: Assignment records
            now: Timestamp for DTSTAMP (default: current time)

        Returns:
            Calendar object ready for export
        """
        if now is None:
            now = datetime.now(utc)
        elif now.tzinfo is None:
            now = self.tz.localize(now)

        cal = Calendar()
        cal.add('prodid', '-//Syllabus Sync//EN')
        cal.add('version', '2.0')
        cal.add('calscale', 'GREGORIAN')
        cal.add('method', 'PUBLISH')
        cal.add('x-wr-timezone', self.tz.zone)

        for record in records:
            cal.add_component(self._create_due_event(record, now.astimezone(utc)))

        return cal

    def _create_due_event(self, record: AssignmentRecord, stamp: datetime) -> Event:
        """Create an all-day event for an assignment due date.

        Args:
            record: Assignment record
            stamp: DTSTAMP value in UTC

        Returns:
            Event object
        """
        event = Event()
        event.add('uid', f"{uuid.uuid4()}@syllabus-sync")
        event.add('dtstamp', stamp)
        # All-day event; DTEND equals DTSTART
        event.add('dtstart', record.due)
        event.add('dtend', record.due)
        event.add('summary', record.title)
        event.add('description', record.description)
        event.add('location', record.course)
        event.add('categories', [record.type])

        return event

    def to_ics(self, records: Iterable[AssignmentRecord], now: Optional[datetime] = None) -> bytes:
        """Render records straight to .ics bytes."""
        return self.generate_calendar(records, now).to_ical()

    def export_to_file(self, calendar: Calendar, filepath: str):
        """Export calendar to .ics file.

        Args:
            calendar: Calendar object
            filepath: Path to output file
        """
        with open(filepath, 'wb') as f:
            f.write(calendar.to_ical())
