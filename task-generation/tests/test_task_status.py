"""Tests for read-time task status and care round grouping."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Add repo root and task-generation to path for imports
ROOT = Path(__file__).parent.parent.parent
for path in (ROOT, ROOT / "task-generation"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from common.nursing_tasks import (
    CompletionLog,
    GeneratedFrom,
    NursingTask,
    TaskStatus,
    TaskType,
    VitalSignsTaskDetails,
)
from task_src.task_status import (
    classify_status,
    completion_rate,
    format_task_time,
    group_tasks_by_time_window,
    next_task,
    split_into_runs,
    status_for,
    task_summary,
    task_variance_minutes,
)

NOON = datetime(2026, 1, 15, 12, 0)


def make_task(task_id: str, scheduled_at: datetime, patient_id: str = "baby1", **overrides) -> NursingTask:
    fields = dict(
        id=task_id,
        patient_id=patient_id,
        task_type=TaskType.VITAL_SIGNS,
        scheduled_at=scheduled_at,
        generated_from=GeneratedFrom("care_plan", "cp-1", 1),
        details=VitalSignsTaskDetails(parameters=("heart_rate",)),
    )
    fields.update(overrides)
    return NursingTask(**fields)


def test_status_without_window():
    task = make_task("t1", NOON)

    # Test case 1: well before the due lead
    assert classify_status(task, None, NOON - timedelta(hours=1)) == TaskStatus.PENDING

    # Test case 2: inside the 30 minute lead
    assert classify_status(task, None, NOON - timedelta(minutes=30)) == TaskStatus.DUE
    assert classify_status(task, None, NOON) == TaskStatus.DUE

    # Test case 3: past the scheduled time
    assert classify_status(task, None, NOON + timedelta(minutes=1)) == TaskStatus.OVERDUE


def test_status_with_window():
    task = make_task(
        "t1", NOON,
        window_start=NOON - timedelta(minutes=15),
        window_end=NOON + timedelta(minutes=15),
    )

    assert classify_status(task, None, NOON - timedelta(minutes=20)) == TaskStatus.PENDING
    assert classify_status(task, None, NOON - timedelta(minutes=15)) == TaskStatus.DUE
    assert classify_status(task, None, NOON + timedelta(minutes=15)) == TaskStatus.DUE
    assert classify_status(task, None, NOON + timedelta(minutes=16)) == TaskStatus.OVERDUE


def test_terminal_outcomes_are_sticky():
    task = make_task("t1", NOON)
    log = CompletionLog()
    log.complete("t1", completed_by="nurse-a", at=NOON - timedelta(minutes=5))

    for now in (NOON - timedelta(hours=2), NOON, NOON + timedelta(hours=6)):
        assert status_for(task, log, now) == TaskStatus.COMPLETED


def test_in_progress_outranks_time():
    task = make_task("t1", NOON)
    log = CompletionLog()
    log.start("t1", started_by="nurse-a", at=NOON)

    assert status_for(task, log, NOON + timedelta(hours=1)) == TaskStatus.IN_PROGRESS


def test_missed_and_deferred_status():
    log = CompletionLog()
    log.mark_missed("t1", "nurse-a", NOON, "Baby in theatre")
    log.defer("t2", "nurse-a", NOON, "Parents doing skin-to-skin", alternative_action="Retry at 13:00")

    assert status_for(make_task("t1", NOON), log, NOON) == TaskStatus.MISSED
    assert status_for(make_task("t2", NOON), log, NOON) == TaskStatus.DEFERRED


def test_task_summary_counts():
    tasks = [
        make_task("t1", NOON - timedelta(hours=2)),
        make_task("t2", NOON - timedelta(hours=1)),
        make_task("t3", NOON + timedelta(minutes=10)),
        make_task("t4", NOON + timedelta(hours=2)),
    ]
    log = CompletionLog()
    log.complete("t1", "nurse-a", NOON - timedelta(hours=2))

    summary = task_summary(tasks, log, NOON)

    assert summary["total"] == 4
    assert summary["completed"] == 1
    assert summary["overdue"] == 1
    assert summary["due"] == 1
    assert summary["pending"] == 1
    assert summary["completion_rate"] == 25


def test_completion_rate_edge_cases():
    assert completion_rate([], CompletionLog()) == 0
    assert completion_rate([make_task("t1", NOON)], None) == 0

    tasks = [make_task(f"t{i}", NOON) for i in range(3)]
    log = CompletionLog()
    log.complete("t0", "nurse-a", NOON)
    log.complete("t1", "nurse-a", NOON)
    # 66.67 rounds half up to 67
    assert completion_rate(tasks, log) == 67


def test_task_variance_minutes():
    task = make_task("t1", NOON)
    log = CompletionLog()
    assert task_variance_minutes(task, None) is None

    outcome = log.complete("t1", "nurse-a", NOON + timedelta(minutes=12))
    assert task_variance_minutes(task, outcome) == 12

    early = CompletionLog().complete("t1", "nurse-a", NOON - timedelta(minutes=5))
    assert task_variance_minutes(task, early) == -5


def test_format_task_time():
    assert format_task_time(NOON, NOON) == "Due now"
    assert format_task_time(NOON + timedelta(minutes=20), NOON) == "Due in 20 min"
    assert format_task_time(NOON + timedelta(hours=2), NOON) == "Due in 2 hrs"
    assert format_task_time(NOON - timedelta(minutes=10), NOON) == "Overdue by 10 min"
    assert format_task_time(NOON - timedelta(hours=3), NOON) == "Overdue by 3 hrs"


def test_next_task_skips_closed_and_past():
    tasks = [
        make_task("t1", NOON - timedelta(minutes=30)),
        make_task("t2", NOON + timedelta(minutes=10)),
        make_task("t3", NOON + timedelta(minutes=40)),
    ]
    log = CompletionLog()
    assert next_task(tasks, log, NOON).id == "t2"

    log.complete("t2", "nurse-a", NOON)
    assert next_task(tasks, log, NOON).id == "t3"

    log.complete("t3", "nurse-a", NOON)
    assert next_task(tasks, log, NOON) is None


def test_runs_use_consecutive_gaps():
    # 08:00, 08:25, 08:50 chain together even though 08:00 -> 08:50 exceeds the window
    base = datetime(2026, 1, 15, 8, 0)
    tasks = [
        make_task("a", base),
        make_task("b", base + timedelta(minutes=25)),
        make_task("c", base + timedelta(minutes=50)),
        make_task("d", base + timedelta(minutes=120)),
    ]

    runs = split_into_runs(tasks, 30)

    assert [[t.id for t in run] for run in runs] == [["a", "b", "c"], ["d"]]


def test_runs_partition_input():
    base = datetime(2026, 1, 15, 8, 0)
    tasks = [make_task(f"t{i}", base + timedelta(minutes=17 * i)) for i in range(10)]

    for window in (0, 10, 17, 30, 600):
        runs = split_into_runs(list(reversed(tasks)), window)
        flattened = [t.id for run in runs for t in run]
        assert sorted(flattened) == sorted(t.id for t in tasks)
        # Consecutive runs are separated by more than the window
        for earlier, later in zip(runs, runs[1:]):
            gap = later[0].scheduled_at - earlier[-1].scheduled_at
            assert gap > timedelta(minutes=window)


def test_runs_reject_negative_window():
    with pytest.raises(ValueError):
        split_into_runs([make_task("t1", NOON)], -1)

    assert split_into_runs([], 30) == []


def test_group_tasks_by_time_window():
    base = datetime(2026, 1, 15, 8, 0)
    tasks = [
        make_task("feed", base, task_type=TaskType.FEEDING),
        make_task("obs", base + timedelta(minutes=5)),
        make_task("later", base + timedelta(hours=3)),
    ]

    clusters = group_tasks_by_time_window(tasks, 30)

    assert len(clusters) == 2
    assert clusters[0].id == "baby1-2026-01-15T08:00:00"
    assert clusters[0].start == base
    assert clusters[0].end == base + timedelta(minutes=5)
    assert [t.id for t in clusters[0].tasks] == ["feed", "obs"]
    assert clusters[0].can_be_combined
