"""Extract assignment due dates from course schedule spreadsheets."""

__version__ = "0.1.0"
