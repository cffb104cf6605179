"""Tests for the command line runners."""

import json
import sys
from pathlib import Path

# Add repo root and both service directories to path for imports
ROOT = Path(__file__).parent.parent
for path in (ROOT, ROOT / "task-generation", ROOT / "discharge-readiness"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from readiness_src import runner as readiness_runner
from task_src import runner as task_runner


def test_task_runner_json(capsys):
    exit_code = task_runner.main(["--shift", "day", "--date", "2026-01-15", "--patient", "daisy", "--json"])
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert output["shift"]["shift_id"] == "shift-day-2026-01-15"
    assert output["role"] == "nurse"
    assert {t["patient_id"] for t in output["tasks"]} == {"daisy"}


def test_task_runner_clusters_and_screening(capsys):
    exit_code = task_runner.main(["--shift", "night", "--date", "2026-01-15", "--clusters", "--screening", "--json"])
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert "clusters" in output
    assert "screening" in output


def test_task_runner_text(capsys):
    exit_code = task_runner.main(["--shift", "day", "--date", "2026-01-15", "--role", "hca"])

    assert exit_code == 0
    assert "SHIFT-DAY-2026-01-15" in capsys.readouterr().out


def test_task_runner_unknown_patient():
    assert task_runner.main(["--patient", "nobody"]) == 1


def test_task_runner_bad_date():
    assert task_runner.main(["--date", "yesterday"]) == 1


def test_readiness_runner_json(capsys):
    exit_code = readiness_runner.main(["--json"])
    output = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert [entry["patient"]["id"] for entry in output] == ["daisy", "elsa"]
    assert output[1]["assessment"]["overall_status"] == "not_ready"


def test_readiness_runner_handover(capsys):
    exit_code = readiness_runner.main(["--patient", "elsa", "--handover"])

    assert exit_code == 0
    assert "NICU HANDOVER SUMMARY" in capsys.readouterr().out


def test_readiness_runner_unknown_patient():
    assert readiness_runner.main(["--patient", "nobody"]) == 1
