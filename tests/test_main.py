"""Tests for the command line interface."""

import argparse
import json
import pytest
from datetime import date
from pathlib import Path
from syllabus_sync.main import main, build_settings, parse_today, default_output_name

CSV_CONTENT = b"Title,Due Date,Type\nEssay 1,4/1/2025,Homework\nQuiz 2,4/8/2025,Quiz\n"


@pytest.fixture
def schedule(tmp_path):
    path = tmp_path / "ENG101.csv"
    path.write_bytes(CSV_CONTENT)
    return path


def test_json_output(schedule, tmp_path, capsys):
    """Test writing JSON output."""
    out_dir = tmp_path / "out"
    code = main([str(schedule), "--today", "2025-03-01", "--format", "json", "--output-dir", str(out_dir)])

    assert code == 0
    data = json.loads((out_dir / "ENG101.json").read_text())
    assert [a["title"] for a in data["assignments"]] == ["Essay 1", "Quiz 2"]

    captured = capsys.readouterr().out
    assert "2 assignments found" in captured
    assert "Due in 31 days" in captured


def test_planner_output(schedule, tmp_path):
    """Test the default planner CSV output."""
    code = main([str(schedule), "--today", "2025-03-01", "--output-dir", str(tmp_path), "--course", "English"])

    assert code == 0
    lines = (tmp_path / "ENG101_planner.csv").read_text().splitlines()
    assert lines[0] == "Name,Class,DueDate,Details,Type"
    assert lines[1].startswith("Essay 1,English,4/1/2025,")


def test_ics_output(schedule, tmp_path):
    """Test .ics output."""
    code = main([str(schedule), "--today", "2025-03-01", "--format", "ics", "--output-dir", str(tmp_path)])
    assert code == 0
    assert (tmp_path / "ENG101.ics").read_bytes().startswith(b"BEGIN:VCALENDAR")


def test_nothing_found(schedule, tmp_path, capsys):
    """Test a run where everything is past due."""
    code = main([str(schedule), "--today", "2025-12-01", "--output-dir", str(tmp_path)])
    assert code == 0
    assert "0 assignments found" in capsys.readouterr().out
    assert not (tmp_path / "ENG101_planner.csv").exists()


def test_missing_file(tmp_path, capsys):
    """Test a missing input file."""
    assert main([str(tmp_path / "missing.csv")]) == 1
    assert "file not found" in capsys.readouterr().out


def test_bad_today():
    """Test an invalid --today value."""
    with pytest.raises(SystemExit):
        main(["schedule.csv", "--today", "03/01/2025"])


def test_build_settings():
    """Test settings from command line flags."""
    args = argparse.Namespace(
        today=date(2025, 3, 1), lead_days=14, project_lead_days=28,
        no_carry_forward=True, no_single_sheet_timeline=True
    )
    settings = build_settings(args)
    assert settings.today == date(2025, 3, 1)
    assert settings.default_lead_days == 14
    assert settings.project_lead_days == 28
    assert not settings.carry_forward_dates
    assert not settings.assume_timeline_for_single_sheet


def test_parse_today():
    """Test the --today argument type."""
    assert parse_today("2025-03-01") == date(2025, 3, 1)


def test_default_output_name():
    """Test output file naming."""
    assert default_output_name([Path("a/CMP168.xlsx")], "planner") == "CMP168_planner.csv"
    assert default_output_name([Path("a.csv"), Path("b.csv")], "ics") == "assignments.ics"
