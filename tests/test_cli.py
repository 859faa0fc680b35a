from __future__ import annotations

import json

import pytest

from main import main


def _write_input(tmp_path, text: str):
    path = tmp_path / "data.csv"
    path.write_text(text, encoding="utf-8")
    return path


def test_schedule_command_prints_json(tmp_path, capsys):
    path = _write_input(
        tmp_path,
        "# Customer, Duration, StartTimeUTC, EndTimeUTC, Calls, Priority\n"
        "HighPriority, 3600, 10AM, 11AM, 10, 1\n"
        "LowPriority, 3600, 10AM, 11AM, 10, 2\n",
    )

    exit_code = main(
        ["schedule", "--input", str(path), "--format", "json", "--capacity", "15", "--date", "2024-06-14"]
    )

    assert exit_code == 0
    hours = json.loads(capsys.readouterr().out)
    assert hours[10]["total"] == 15
    assert hours[10]["unmet_demand"]["impacted_clients"][0]["name"] == "LowPriority"


def test_schedule_command_prints_text_by_default(tmp_path, capsys):
    path = _write_input(tmp_path, "Solo, 3600, 9AM, 10AM, 2, 1\n")

    exit_code = main(
        ["schedule", "-i", str(path), "--time-zone", "UTC", "--date", "2024-06-14"]
    )

    lines = capsys.readouterr().out.splitlines()
    assert exit_code == 0
    assert lines[9] == "09:00 : total=2 ; [UTC: total=2, Solo=2]"
    assert len(lines) == 24


@pytest.mark.parametrize(
    ("extra_args", "message"),
    [
        (["--utilization", "0"], "utilization must be between 0"),
        (["--utilization", "1.2"], "utilization must be between 0"),
        (["--capacity", "-1"], "capacity must be >= 0"),
        (["--time-zone", "Mars/Olympus"], "unknown time zone"),
    ],
)
def test_schedule_command_rejects_bad_arguments(tmp_path, capsys, extra_args, message):
    path = _write_input(tmp_path, "Solo, 3600, 9AM, 10AM, 2, 1\n")

    exit_code = main(["schedule", "--input", str(path), *extra_args])

    assert exit_code == 1
    assert message in capsys.readouterr().err


def test_schedule_command_reports_missing_file(tmp_path, capsys):
    exit_code = main(["schedule", "--input", str(tmp_path / "missing.csv")])

    assert exit_code == 1
    assert "Error: opening file" in capsys.readouterr().err


def test_schedule_command_reports_parse_errors(tmp_path, capsys):
    path = _write_input(tmp_path, "Solo, 3600, 9AM, 10AM, 2\n")

    exit_code = main(["schedule", "--input", str(path)])

    assert exit_code == 1
    assert "invalid field count" in capsys.readouterr().err


def test_unknown_format_is_rejected_by_argparse(tmp_path):
    path = _write_input(tmp_path, "Solo, 3600, 9AM, 10AM, 2, 1\n")

    with pytest.raises(SystemExit):
        main(["schedule", "--input", str(path), "--format", "xml"])


def test_schedule_command_reports_non_utf8_input(tmp_path, capsys):
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"Caf\xe9, 3600, 9AM, 11AM, 10, 1\n")

    exit_code = main(["schedule", "--input", str(path)])

    assert exit_code == 1
    err = capsys.readouterr().err
    assert "Error: parsing file" in err
    assert "invalid text encoding" in err


def test_schedule_command_accepts_zone_shorthand(tmp_path, capsys):
    path = _write_input(tmp_path, "Solo, 3600, 9AM, 10AM, 2, 1\n")

    exit_code = main(["schedule", "-i", str(path), "--time-zone", "ET", "--date", "2024-06-14"])

    assert exit_code == 0
    assert capsys.readouterr().out.splitlines()[9].startswith("09:00 : total=2 ; [America/New_York:")
