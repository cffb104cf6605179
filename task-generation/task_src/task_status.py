"""Read-time task status classification and task list helpers.

Status is a pure function of (task shell, latest outcome, now). Terminal
outcomes are sticky; everything else is recomputed on every read.
"""

from datetime import datetime, timedelta
from typing import Any

from common.nursing_tasks import (
    CompletionLog,
    NursingTask,
    TaskCluster,
    TaskOutcome,
    TaskStatus,
)

OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.DUE, TaskStatus.OVERDUE)


def classify_status(
    task: NursingTask,
    outcome: TaskOutcome | None,
    now: datetime,
    due_lead_minutes: int = 30,
) -> TaskStatus:
    """Derive the current status of a task.

    Args:
        task: The generated task shell
        outcome: Latest completion-log entry for the task, if any
        now: Current time
        due_lead_minutes: How early a task without a window becomes due

    Returns:
        The task's status at `now`
    """
    if outcome is not None:
        if outcome.is_terminal:
            return outcome.status
        if outcome.status == TaskStatus.IN_PROGRESS:
            return TaskStatus.IN_PROGRESS

    window_end = task.window_end or task.scheduled_at
    if now > window_end:
        return TaskStatus.OVERDUE

    window_start = task.window_start or task.scheduled_at - timedelta(minutes=due_lead_minutes)
    if now >= window_start:
        return TaskStatus.DUE

    return TaskStatus.PENDING


def status_for(task: NursingTask, log: CompletionLog | None, now: datetime, due_lead_minutes: int = 30) -> TaskStatus:
    outcome = log.outcome_for(task.id) if log is not None else None
    return classify_status(task, outcome, now, due_lead_minutes)


def statuses_for(
    tasks: list[NursingTask],
    log: CompletionLog | None,
    now: datetime,
    due_lead_minutes: int = 30,
) -> dict[str, TaskStatus]:
    """Status of every task, keyed by task id."""
    return {t.id: status_for(t, log, now, due_lead_minutes) for t in tasks}


def task_summary(tasks: list[NursingTask], log: CompletionLog | None, now: datetime) -> dict[str, Any]:
    """Counts by status plus completion rate."""
    summary = {status.value: 0 for status in TaskStatus}
    for status in statuses_for(tasks, log, now).values():
        summary[status.value] += 1
    summary["total"] = len(tasks)
    summary["completion_rate"] = completion_rate(tasks, log)
    return summary


def completion_rate(tasks: list[NursingTask], log: CompletionLog | None) -> int:
    """Whole-number percentage of tasks with a completed outcome."""
    if not tasks or log is None:
        return 0
    completed = 0
    for task in tasks:
        outcome = log.outcome_for(task.id)
        if outcome is not None and outcome.status == TaskStatus.COMPLETED:
            completed += 1
    return int(completed / len(tasks) * 100 + 0.5)


def task_variance_minutes(task: NursingTask, outcome: TaskOutcome | None) -> int | None:
    """Minutes between scheduled time and completion (negative if early)."""
    if outcome is None or outcome.status != TaskStatus.COMPLETED:
        return None
    seconds = (outcome.recorded_at - task.scheduled_at).total_seconds()
    return round(seconds / 60)


def format_task_time(scheduled_at: datetime, now: datetime) -> str:
    """Describe a scheduled time relative to now, e.g. "Due in 20 min"."""
    diff_minutes = round((scheduled_at - now).total_seconds() / 60)

    if diff_minutes < -60:
        hours = round(abs(diff_minutes) / 60)
        return f"Overdue by {hours} hr{'s' if hours > 1 else ''}"
    if diff_minutes < 0:
        return f"Overdue by {abs(diff_minutes)} min"
    if diff_minutes == 0:
        return "Due now"
    if diff_minutes < 60:
        return f"Due in {diff_minutes} min"

    hours = round(diff_minutes / 60)
    return f"Due in {hours} hr{'s' if hours > 1 else ''}"


def next_task(tasks: list[NursingTask], log: CompletionLog | None, now: datetime) -> NursingTask | None:
    """Earliest open task scheduled at or after now."""
    candidates = [
        t for t in tasks
        if t.scheduled_at >= now and status_for(t, log, now) in OPEN_STATUSES
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda t: (t.scheduled_at, t.id))


def split_into_runs(tasks: list[NursingTask], window_minutes: float) -> list[list[NursingTask]]:
    """Split tasks into maximal time-ordered runs with consecutive gaps <= window."""
    if window_minutes < 0:
        raise ValueError(f"window_minutes must not be negative, got {window_minutes}")
    ordered = sorted(tasks, key=lambda t: (t.scheduled_at, t.id))
    if not ordered:
        return []

    window = timedelta(minutes=window_minutes)
    runs = [[ordered[0]]]
    for task in ordered[1:]:
        if task.scheduled_at - runs[-1][-1].scheduled_at <= window:
            runs[-1].append(task)
        else:
            runs.append([task])
    return runs


def group_tasks_by_time_window(tasks: list[NursingTask], window_minutes: float = 30) -> list[TaskCluster]:
    """Group one patient's tasks into care rounds.

    Callers must pass the patient's complete task list; clustering an
    already-filtered subset can split or drop rounds.
    """
    clusters = []
    for run in split_into_runs(tasks, window_minutes):
        start, end = run[0].scheduled_at, run[-1].scheduled_at
        clusters.append(TaskCluster(
            id=f"{run[0].patient_id}-{start.isoformat()}",
            patient_id=run[0].patient_id,
            start=start,
            end=end,
            tasks=run,
        ))
    return clusters
