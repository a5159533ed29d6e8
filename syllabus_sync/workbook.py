"""
Reading uploaded schedule files into plain rows.

Workbooks are opened with openpyxl (xlrd for legacy .xls files) and CSV
files with the csv module. All of them end up as SheetData objects holding
plain Python values, so nothing from the parsing library outlives
`read_workbook`.
"""

import csv
import io
import logging
import re
import struct
import zipfile
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, List, Optional

import xlrd
from xlrd.compdoc import CompDocError
from xlrd.sheet import Cell
from xlrd.xldate import XLDateError
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

logger = logging.getLogger(__name__)

WORKBOOK_EXTENSIONS = {".xlsx", ".xlsm"}
LEGACY_EXTENSIONS = {".xls"}
TEXT_EXTENSIONS = {".csv", ".tsv", ".txt"}
SUPPORTED_EXTENSIONS = WORKBOOK_EXTENSIONS | LEGACY_EXTENSIONS | TEXT_EXTENSIONS

COURSE_CODE_RE = re.compile(r'(?<![A-Za-z])([A-Za-z]{2,4})[\s_\-]*(\d{3,4})(?!\d)')

# Term words that look like course prefixes ("Fall 2025", "Term 2")
NOT_A_COURSE_PREFIX = {"fall", "term", "sem", "week", "wk", "year", "yr", "unit", "day"}

# Rows inspected when looking for the header row
HEADER_SEARCH_ROWS = 10


class SyllabusSyncError(Exception):
    """Base class for errors raised while reading schedule files."""


class UnsupportedFileError(SyllabusSyncError):
    """The file type cannot be read."""


class FileParseError(SyllabusSyncError):
    """The file is corrupt or cannot be decoded."""


@dataclass
class SheetData:
    """One sheet (or CSV file) as a list of rows of plain cell values."""
    name: str
    rows: List[List[Any]] = field(default_factory=list)

    @property
    def header_index(self) -> int:
        """Index of the header row: the first row with two or more
        non-empty cells, skipping title rows above the table."""
        for index, row in enumerate(self.rows[:HEADER_SEARCH_ROWS]):
            if sum(1 for value in row if not _is_blank(value)) >= 2:
                return index
        return 0

    @property
    def header(self) -> List[Any]:
        if not self.rows:
            return []
        return self.rows[self.header_index]

    @property
    def data_rows(self) -> List[List[Any]]:
        if not self.rows:
            return []
        return self.rows[self.header_index + 1:]

    @property
    def title_text(self) -> str:
        """Text of any title rows above the header."""
        parts = []
        for row in self.rows[:self.header_index]:
            parts.extend(str(value).strip() for value in row if not _is_blank(value))
        return " ".join(parts)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _plain_value(value: Any) -> Any:
    """Reduce a cell value to str, int, float, bool, date/datetime or None."""
    if value is None or isinstance(value, (str, int, float, bool, date)):
        return value
    return str(value)


def _trim(rows: List[List[Any]]) -> List[List[Any]]:
    """Drop trailing blank cells and trailing blank rows."""
    trimmed = []
    for row in rows:
        row = list(row)
        while row and _is_blank(row[-1]):
            row.pop()
        trimmed.append(row)
    while trimmed and not trimmed[-1]:
        trimmed.pop()
    return trimmed


def extract_course_code(filename: str) -> str:
    """Derive a course name from a file name.

    "CMP168_Timeline.xlsx" -> "CMP 168"; files without a course code give
    their stem ("schedule.csv" -> "schedule").
    """
    stem = Path(filename or "").stem
    return find_course_code(stem) or stem


def find_course_code(text: str) -> Optional[str]:
    """Course code in arbitrary text (e.g. a sheet name), or None."""
    for match in COURSE_CODE_RE.finditer(text or ""):
        if match.group(1).lower() in NOT_A_COURSE_PREFIX:
            continue
        return f"{match.group(1).upper()} {match.group(2)}"
    return None


def read_workbook(filename: str, content: bytes) -> List[SheetData]:
    """Read a schedule file into sheets of plain rows.

    Args:
        filename: Original file name (the extension picks the reader)
        content: Entire file content

    Returns:
        List of SheetData, one per worksheet (one for CSV files)

    Raises:
        UnsupportedFileError: Unknown extension
        FileParseError: Corrupt or unreadable content
    """
    extension = Path(filename).suffix.lower()
    if extension in WORKBOOK_EXTENSIONS:
        return _read_excel(content)
    if extension in LEGACY_EXTENSIONS:
        return _read_xls(content)
    if extension in TEXT_EXTENSIONS:
        return [_read_delimited(Path(filename).stem, content)]
    raise UnsupportedFileError(f"Unsupported file type: {extension or 'unknown'}")


def _read_excel(content: bytes) -> List[SheetData]:
    """Read every worksheet of an .xlsx/.xlsm workbook."""
    try:
        wb = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as e:
        raise FileParseError(f"Could not open workbook: {e}") from e

    sheets = []
    try:
        for ws in wb.worksheets:
            rows = [
                [_plain_value(value) for value in row]
                for row in ws.iter_rows(values_only=True)
            ]
            sheets.append(SheetData(name=ws.title, rows=_trim(rows)))
    except (KeyError, ValueError, TypeError, zipfile.BadZipFile) as e:
        raise FileParseError(f"Could not read workbook: {e}") from e
    finally:
        wb.close()

    logger.debug("Read %d sheets", len(sheets))
    return sheets


def _read_xls(content: bytes) -> List[SheetData]:
    """Read every worksheet of a legacy .xls workbook."""
    try:
        wb = xlrd.open_workbook(file_contents=content, on_demand=True)
    except (xlrd.XLRDError, CompDocError, zipfile.BadZipFile, ValueError, IndexError, struct.error) as e:
        raise FileParseError(f"Could not open workbook: {e}") from e

    sheets = []
    try:
        for index in range(wb.nsheets):
            ws = wb.sheet_by_index(index)
            rows = [
                [_xls_value(cell, wb.datemode) for cell in ws.row(row_index)]
                for row_index in range(ws.nrows)
            ]
            sheets.append(SheetData(name=ws.name, rows=_trim(rows)))
    except (xlrd.XLRDError, ValueError, IndexError, struct.error) as e:
        raise FileParseError(f"Could not read workbook: {e}") from e
    finally:
        wb.release_resources()

    logger.debug("Read %d sheets from .xls workbook", len(sheets))
    return sheets


def _xls_value(cell: Cell, datemode: int) -> Any:
    """Plain value of an xlrd cell; date cells become datetimes."""
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return None
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        except XLDateError:
            logger.debug("Unreadable date cell: %r", cell.value)
            return cell.value
    return _plain_value(cell.value)


def _decode(content: bytes) -> str:
    try:
        return content.decode("utf-8-sig")
    except UnicodeDecodeError:
        logger.debug("File is not UTF-8, falling back to latin-1")
        return content.decode("latin-1")


def _read_delimited(name: str, content: bytes) -> SheetData:
    """Read a CSV/TSV file, sniffing the delimiter."""
    text = _decode(content)
    if "\x00" in text:
        raise FileParseError("File looks binary, not delimited text")

    sample = text[:4096]
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=",;\t|")
    except csv.Error:
        dialect = csv.excel

    try:
        rows = [list(row) for row in csv.reader(io.StringIO(text), dialect)]
    except csv.Error as e:
        raise FileParseError(f"Could not parse delimited file: {e}") from e

    return SheetData(name=name, rows=_trim(rows))
