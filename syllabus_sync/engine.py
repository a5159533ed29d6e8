"""
Extraction engine.

Runs the whole pipeline for a batch of files: read each file, detect the
layout of every sheet, run the matching extraction strategy, and merge the
results into one deduplicated list.

Files are processed one after another. A file that cannot be read becomes
a FileError, a sheet that fails is logged and skipped, and no exception
leaves `extract_files`.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .column_classifier import classify_columns
from .dates import extract_year_from_sheet_name
from .finalize import finalize
from .format_detector import is_timeline_format
from .models import AssignmentRecord, ExtractionResult, ExtractionSettings, FileError, DEFAULT_COURSE
from .table_extractor import extract_flat_rows, rows_to_dicts
from .timeline_extractor import TimelineExtractor
from .workbook import (
    SheetData, SyllabusSyncError, read_workbook, extract_course_code, find_course_code,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ScheduleExtractor:
    """Extracts assignments from schedule spreadsheets and CSV files."""

    def __init__(self, settings: Optional[ExtractionSettings] = None):
        """Initialize the engine.

        Args:
            settings: Extraction settings (defaults if omitted)
        """
        self.settings = settings or ExtractionSettings()
        self.timeline = TimelineExtractor(self.settings)
        self._skip_sheet_re = re.compile(self.settings.skip_sheet_pattern, re.IGNORECASE)

    def extract_paths(self, paths: Iterable[PathLike]) -> ExtractionResult:
        """Extract assignments from files on disk.

        Args:
            paths: File paths, processed in order

        Returns:
            ExtractionResult with merged records and per-file errors
        """
        files = []
        errors = []
        for path in paths:
            path = Path(path)
            try:
                files.append((path.name, path.read_bytes()))
            except OSError as e:
                logger.error("Could not read %s: %s", path, e)
                errors.append(FileError(path.name, f"Could not read file: {e.strerror or e}"))

        result = self.extract_files(files)
        result.errors = errors + result.errors
        result.files_processed += len(errors)
        return result

    def extract_files(self, files: Iterable[Tuple[str, bytes]]) -> ExtractionResult:
        """Extract assignments from in-memory files.

        Args:
            files: (file name, content) pairs, processed in order

        Returns:
            ExtractionResult with merged records and per-file errors
        """
        collected: List[AssignmentRecord] = []
        errors: List[FileError] = []
        processed = 0

        for filename, content in files:
            processed += 1
            try:
                records = self.extract_file(filename, content)
            except SyllabusSyncError as e:
                logger.error("Could not process %s: %s", filename, e)
                errors.append(FileError(filename, str(e)))
                continue
            except Exception as e:
                logger.error("Unexpected error processing %s", filename, exc_info=True)
                errors.append(FileError(filename, f"Failed to process file: {e}"))
                continue
            logger.info("%s: %d assignments", filename, len(records))
            collected.extend(records)

        records = finalize(collected, today=self.settings.reference_date())
        result = ExtractionResult(records=records, errors=errors, files_processed=processed)
        logger.info("%s (%d files)", result.message, processed)
        return result

    def extract_file(self, filename: str, content: bytes) -> List[AssignmentRecord]:
        """Extract assignments from one file.

        Raises:
            SyllabusSyncError: The file could not be read
        """
        sheets = read_workbook(filename, content)
        file_course = find_course_code(Path(filename).stem)

        records = []
        for sheet in sheets:
            if self._skip_sheet_re.search(sheet.name):
                logger.debug("Skipping sheet %r", sheet.name)
                continue
            course = file_course or find_course_code(sheet.name) or extract_course_code(filename) or DEFAULT_COURSE
            try:
                records.extend(self.extract_sheet(sheet, course, len(sheets), filename))
            except Exception:
                logger.warning("Skipping sheet %r of %s", sheet.name, filename, exc_info=True)
        return records

    def extract_sheet(self,
                      sheet: SheetData,
                      course_name: str,
                      sheet_count: int = 1,
                      source_file: Optional[str] = None) -> List[AssignmentRecord]:
        """Extract assignments from one sheet using the detected strategy.

        When the chosen strategy finds nothing and `strategy_fallback` is
        set, the other strategy gets a try.
        """
        header = sheet.header
        data_rows = sheet.data_rows
        if not data_rows:
            return []

        context_year = extract_year_from_sheet_name(sheet.name, default=self.settings.reference_date().year)
        timeline = is_timeline_format(
            sheet.name, header, data_rows,
            sheet_count=sheet_count,
            settings=self.settings,
            workbook_name=" ".join(filter(None, [source_file, sheet.title_text])),
        )
        logger.debug("Sheet %r: %s layout", sheet.name, "timeline" if timeline else "flat")

        strategies = [self._timeline_records, self._flat_records]
        if not timeline:
            strategies.reverse()
        if not self.settings.strategy_fallback:
            strategies = strategies[:1]

        for strategy in strategies:
            records = strategy(header, data_rows, course_name, context_year, source_file)
            if records:
                return records
        return []

    def _timeline_records(self, header, data_rows, course_name, context_year, source_file):
        column_map = classify_columns(header, data_rows, self.settings)
        return self.timeline.extract_sheet(data_rows, column_map, course_name, context_year, source_file)

    def _flat_records(self, header, data_rows, course_name, context_year, source_file):
        rows = rows_to_dicts(header, data_rows)
        return extract_flat_rows(rows, course_name, context_year, self.settings, source_file)
