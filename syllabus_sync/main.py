"""
Main CLI entry point for the syllabus schedule extractor.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from datetime import date
from typing import List, Optional

from .dates import days_remaining_text
from .engine import ScheduleExtractor
from .exporters import planner_csv, generic_csv
from .icalendar_gen import ICalendarGenerator
from .models import AssignmentRecord, ExtractionResult, ExtractionSettings

OUTPUT_FORMATS = ("planner", "ics", "csv", "json")


def parse_today(value: str) -> date:
    """argparse type for --today (YYYY-MM-DD)."""
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date {value!r}, expected YYYY-MM-DD")


def build_settings(args: argparse.Namespace) -> ExtractionSettings:
    """Build extraction settings from parsed arguments."""
    return ExtractionSettings(
        today=args.today,
        default_lead_days=args.lead_days,
        project_lead_days=args.project_lead_days,
        carry_forward_dates=not args.no_carry_forward,
        assume_timeline_for_single_sheet=not args.no_single_sheet_timeline,
    )


def print_summary(records: List[AssignmentRecord], today: date):
    """Print extracted assignments as a table.

    Args:
        records: Assignment records, sorted by due date
        today: Reference date for the countdown column
    """
    if not records:
        return

    title_width = min(max(len(r.title) for r in records), 40)
    course_width = min(max(len(r.course) for r in records), 20)

    print(f"\n{'Due':<11} {'Title':<{title_width}}  {'Course':<{course_width}}  {'Type':<14} Status")
    print("-" * (11 + title_width + course_width + 36))
    for record in records:
        print(f"{record.due_date:<11} {record.title[:title_width]:<{title_width}}  "
              f"{record.course[:course_width]:<{course_width}}  {record.type[:14]:<14} "
              f"{days_remaining_text(record.due, today)}")


def write_output(result: ExtractionResult,
                 output_format: str,
                 output_path: Path,
                 course_override: str = "",
                 include_descriptions: bool = True):
    """Write extracted records in the requested format.

    Args:
        result: Extraction result
        output_format: One of OUTPUT_FORMATS
        output_path: Destination file
        course_override: Course name forced onto every planner row
        include_descriptions: Fill the planner Details column
    """
    if output_format == "ics":
        cal_gen = ICalendarGenerator()
        cal_gen.export_to_file(cal_gen.generate_calendar(result.records), str(output_path))
        return

    if output_format == "json":
        content = json.dumps(result.to_dict(), indent=2)
    elif output_format == "csv":
        content = generic_csv(result.records)
    else:
        content = planner_csv(result.records, course_override, include_descriptions)

    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        f.write(content)


def default_output_name(paths: List[Path], output_format: str) -> str:
    """Output file name: first input's stem for a single file, else "assignments"."""
    base_name = paths[0].stem if len(paths) == 1 else "assignments"
    suffix = {
        "planner": "_planner.csv",
        "csv": ".csv",
        "ics": ".ics",
        "json": ".json",
    }[output_format]
    return f"{base_name}{suffix}"


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Extract assignment due dates from course schedule spreadsheets"
    )
    parser.add_argument(
        "files",
        nargs="+",
        help="Schedule files (.xlsx, .xlsm, .xls, .csv)"
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="planner",
        help="Output format (default: planner)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=".",
        help="Output directory (default: current directory)"
    )
    parser.add_argument(
        "--today",
        type=parse_today,
        default=None,
        help="Treat this date (YYYY-MM-DD) as today for past-due filtering"
    )
    parser.add_argument(
        "--lead-days",
        type=int,
        default=7,
        help="Days after the class date that homework and activities are due (default: 7)"
    )
    parser.add_argument(
        "--project-lead-days",
        type=int,
        default=21,
        help="Days after the class date that undated projects are due (default: 21)"
    )
    parser.add_argument(
        "--no-carry-forward",
        action="store_true",
        help="Do not reuse the previous row's date for rows without one"
    )
    parser.add_argument(
        "--no-single-sheet-timeline",
        action="store_true",
        help="Do not assume single-sheet workbooks are timelines"
    )
    parser.add_argument(
        "--course",
        type=str,
        default="",
        help="Course name for every planner row"
    )
    parser.add_argument(
        "--no-descriptions",
        action="store_true",
        help="Leave the planner Details column empty"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Show progress (-v) or debug output (-vv)"
    )

    args = parser.parse_args(argv)

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    paths = [Path(p) for p in args.files]
    missing = [p for p in paths if not p.exists()]
    for path in missing:
        print(f"Error: file not found: {path}")
    if missing:
        return 1

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    settings = build_settings(args)
    extractor = ScheduleExtractor(settings)

    print(f"Extracting assignments from {len(paths)} file(s)...")
    result = extractor.extract_paths(paths)

    for error in result.errors:
        print(f"Error: {error}")

    print(result.message)
    print_summary(result.records, settings.reference_date())

    if not result.records:
        return 1 if result.errors else 0

    output_path = output_dir / default_output_name(paths, args.format)
    write_output(result, args.format, output_path, args.course, not args.no_descriptions)
    print(f"\nSaved {args.format} output to: {output_path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
