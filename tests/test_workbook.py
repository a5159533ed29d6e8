"""Unit tests for reading schedule files."""

import pytest
import xlrd
from datetime import date, datetime
from openpyxl import Workbook
from xlrd.sheet import Cell
from syllabus_sync.workbook import (
    SheetData, read_workbook, extract_course_code, find_course_code,
    UnsupportedFileError, FileParseError, SyllabusSyncError, SUPPORTED_EXTENSIONS, _xls_value
)


def workbook_bytes(tmp_path, sheets):
    """Build an .xlsx file from {sheet name: rows} and return its content."""
    wb = Workbook()
    wb.remove(wb.active)
    for name, rows in sheets.items():
        ws = wb.create_sheet(name)
        for row in rows:
            ws.append(row)
    path = tmp_path / "schedule.xlsx"
    wb.save(path)
    return path.read_bytes()


def test_read_xlsx(tmp_path):
    """Test reading every worksheet as plain rows."""
    content = workbook_bytes(tmp_path, {
        "Spring 2025": [
            ["Week", "Date", "Topic"],
            [1, date(2025, 3, 10), "Intro"],
        ],
        "Info": [["Instructor", "Dr. Smith"]],
    })
    sheets = read_workbook("CMP168.xlsx", content)

    assert [s.name for s in sheets] == ["Spring 2025", "Info"]
    assert sheets[0].header == ["Week", "Date", "Topic"]
    row = sheets[0].data_rows[0]
    assert row[0] == 1
    assert isinstance(row[1], datetime)
    assert row[1].date() == date(2025, 3, 10)
    assert row[2] == "Intro"


def test_read_csv():
    """Test reading a CSV file as one sheet."""
    sheets = read_workbook("list.csv", b"Title,Due Date\nEssay,4/1/2025\n")
    assert len(sheets) == 1
    assert sheets[0].name == "list"
    assert sheets[0].rows == [["Title", "Due Date"], ["Essay", "4/1/2025"]]


def test_read_csv_semicolons_and_bom():
    """Test delimiter sniffing and BOM handling."""
    content = "\ufeffTitle;Due Date\nEssay;4/1/2025\nQuiz;4/8/2025\n".encode("utf-8")
    sheets = read_workbook("list.csv", content)
    assert sheets[0].header == ["Title", "Due Date"]
    assert sheets[0].data_rows[1] == ["Quiz", "4/8/2025"]


def test_read_csv_latin1():
    """Test the latin-1 fallback."""
    sheets = read_workbook("list.csv", "Title,Due\nCaf\xe9 essay,4/1/2025\n".encode("latin-1"))
    assert sheets[0].data_rows[0][0] == "Caf\xe9 essay"


def test_trailing_blanks_trimmed():
    """Test that trailing empty cells and rows are dropped."""
    sheets = read_workbook("list.csv", b"a,b,,\nc,d,,\n,,,\n")
    assert sheets[0].rows == [["a", "b"], ["c", "d"]]


def test_unsupported_files():
    """Test that unknown formats are rejected."""
    with pytest.raises(UnsupportedFileError):
        read_workbook("outline.pdf", b"%PDF-1.4")
    with pytest.raises(SyllabusSyncError):
        read_workbook("noextension", b"data")


class FakeXlsSheet:
    def __init__(self, name, rows):
        self.name = name
        self._rows = rows
        self.nrows = len(rows)

    def row(self, index):
        return self._rows[index]


class FakeXlsBook:
    datemode = 0

    def __init__(self, sheets):
        self._sheets = sheets
        self.nsheets = len(sheets)
        self.released = False

    def sheet_by_index(self, index):
        return self._sheets[index]

    def release_resources(self):
        self.released = True


def test_read_xls(monkeypatch):
    """Test reading a legacy .xls workbook into plain rows."""
    book = FakeXlsBook([FakeXlsSheet("Spring 2025", [
        [Cell(xlrd.XL_CELL_TEXT, "Week"), Cell(xlrd.XL_CELL_TEXT, "Date"), Cell(xlrd.XL_CELL_TEXT, "Homework")],
        [Cell(xlrd.XL_CELL_NUMBER, 1.0), Cell(xlrd.XL_CELL_DATE, 45726.0), Cell(xlrd.XL_CELL_TEXT, "HW 1")],
        [Cell(xlrd.XL_CELL_EMPTY, ""), Cell(xlrd.XL_CELL_BLANK, ""), Cell(xlrd.XL_CELL_EMPTY, "")],
    ])])
    opened = {}

    def fake_open_workbook(**kwargs):
        opened.update(kwargs)
        return book

    monkeypatch.setattr(xlrd, "open_workbook", fake_open_workbook)
    sheets = read_workbook("CMP168.xls", b"\xd0\xcf\x11\xe0")

    assert opened["file_contents"] == b"\xd0\xcf\x11\xe0"
    assert book.released
    assert [s.name for s in sheets] == ["Spring 2025"]
    assert sheets[0].header == ["Week", "Date", "Homework"]
    assert sheets[0].data_rows == [[1.0, datetime(2025, 3, 10), "HW 1"]]


def test_xls_cell_values():
    """Test conversion of xlrd cells to plain values."""
    assert _xls_value(Cell(xlrd.XL_CELL_DATE, 45658.5), 0) == datetime(2025, 1, 1, 12, 0)
    assert _xls_value(Cell(xlrd.XL_CELL_BOOLEAN, 1), 0) is True
    assert _xls_value(Cell(xlrd.XL_CELL_ERROR, 42), 0) is None
    assert _xls_value(Cell(xlrd.XL_CELL_TEXT, "Quiz 1"), 0) == "Quiz 1"
    assert _xls_value(Cell(xlrd.XL_CELL_NUMBER, 3.0), 0) == 3.0
    assert ".xls" in SUPPORTED_EXTENSIONS


def test_corrupt_workbook():
    """Test that a corrupt workbook raises FileParseError."""
    with pytest.raises(FileParseError):
        read_workbook("broken.xlsx", b"this is not a zip file")
    with pytest.raises(FileParseError):
        read_workbook("old.xls", b"\xd0\xcf\x11\xe0")
    with pytest.raises(FileParseError):
        read_workbook("renamed.xls", b"PK\x03\x04 not really a workbook")


def test_binary_csv():
    """Test that binary content posing as CSV is rejected."""
    with pytest.raises(FileParseError):
        read_workbook("data.csv", b"\x00\x01\x02")


def test_sheet_title_rows():
    """Test that title rows above the header are skipped."""
    sheet = SheetData(name="Sheet1", rows=[
        ["CMP 168 Schedule"],
        [],
        ["Date", "Topic"],
        ["3/10/2025", "Intro"],
    ])
    assert sheet.header_index == 2
    assert sheet.header == ["Date", "Topic"]
    assert sheet.data_rows == [["3/10/2025", "Intro"]]
    assert sheet.title_text == "CMP 168 Schedule"


def test_empty_sheet():
    """Test an empty sheet."""
    sheet = SheetData(name="Sheet1")
    assert sheet.header == []
    assert sheet.data_rows == []


def test_extract_course_code():
    """Test course names from file names."""
    assert extract_course_code("CMP168_Timeline.xlsx") == "CMP 168"
    assert extract_course_code("cs-101 schedule.csv") == "CS 101"
    assert extract_course_code("schedule.csv") == "schedule"
    assert extract_course_code("Fall 2025 schedule.csv") == "Fall 2025 schedule"


def test_find_course_code():
    """Test course codes in sheet names."""
    assert find_course_code("BIO 201 Spring") == "BIO 201"
    assert find_course_code("Fall 2025") is None
    assert find_course_code("Fall 2025 BIO 201") == "BIO 201"
    assert find_course_code("") is None
