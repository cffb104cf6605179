"""Append-only record of what happened to each task.

Terminal outcomes (completed, missed, cancelled, deferred) are sticky: once
one is recorded for a task id, any further terminal outcome is rejected.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from .models import TaskStatus

logger = logging.getLogger(__name__)


# Record type created when a task of each type is completed
COMPLETION_RECORD_TYPES = {
    "feeding": "FeedingRecord",
    "medication": "MedicationAdministration",
    "vital_signs": "VitalSign",
}
DEFAULT_COMPLETION_RECORD_TYPE = "ProcedureRecord"

VARIANCE_TYPES = ("time_delayed", "not_completed", "partial", "refused", "contraindicated")


class TaskAlreadyClosedError(ValueError):
    """Raised when a task that already has a terminal outcome is closed again."""

    def __init__(self, task_id: str, status: TaskStatus):
        super().__init__(f"Task {task_id} is already {status.value}")
        self.task_id = task_id
        self.status = status


@dataclass(frozen=True)
class Variance:
    variance_type: str
    reason: str
    alternative_action: str | None = None


@dataclass(frozen=True)
class TaskOutcome:
    """One entry in the completion log."""
    task_id: str
    status: TaskStatus
    recorded_at: datetime
    recorded_by: str
    completion_record_id: str | None = None
    completion_record_type: str | None = None
    variance: Variance | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        return {
            "task_id": self.task_id,
            "status": self.status.value,
            "recorded_at": self.recorded_at.isoformat(),
            "recorded_by": self.recorded_by,
            "completion_record_id": self.completion_record_id,
            "completion_record_type": self.completion_record_type,
            "variance": {
                "type": self.variance.variance_type,
                "reason": self.variance.reason,
                "alternative_action": self.variance.alternative_action,
            } if self.variance else None,
        }


class CompletionLog:
    """In-memory, append-only log of task outcomes keyed by task id."""

    def __init__(self):
        self._entries: list[TaskOutcome] = []
        self._latest: dict[str, TaskOutcome] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, task_id: str) -> bool:
        return task_id in self._latest

    def outcome_for(self, task_id: str) -> TaskOutcome | None:
        """Latest outcome recorded for a task, or None."""
        return self._latest.get(task_id)

    def history_for(self, task_id: str) -> list[TaskOutcome]:
        return [e for e in self._entries if e.task_id == task_id]

    def entries(self) -> list[TaskOutcome]:
        return list(self._entries)

    def start(self, task_id: str, started_by: str, at: datetime) -> TaskOutcome:
        """Mark a task as in progress."""
        return self._append(TaskOutcome(
            task_id=task_id,
            status=TaskStatus.IN_PROGRESS,
            recorded_at=at,
            recorded_by=started_by,
        ))

    def complete(
        self,
        task_id: str,
        completed_by: str,
        at: datetime,
        task_type: str | None = None,
        completion_record_id: str | None = None,
        variance: Variance | None = None,
    ) -> TaskOutcome:
        """Record completion, linking to the clinical record it produced."""
        record_type = None
        if task_type is not None:
            record_type = COMPLETION_RECORD_TYPES.get(task_type, DEFAULT_COMPLETION_RECORD_TYPE)
            if completion_record_id is None:
                completion_record_id = f"{task_type}-record-{task_id}"
        return self._append(TaskOutcome(
            task_id=task_id,
            status=TaskStatus.COMPLETED,
            recorded_at=at,
            recorded_by=completed_by,
            completion_record_id=completion_record_id,
            completion_record_type=record_type,
            variance=variance,
        ))

    def mark_missed(self, task_id: str, recorded_by: str, at: datetime, reason: str) -> TaskOutcome:
        return self._append(TaskOutcome(
            task_id=task_id,
            status=TaskStatus.MISSED,
            recorded_at=at,
            recorded_by=recorded_by,
            variance=Variance("not_completed", reason),
        ))

    def cancel(self, task_id: str, recorded_by: str, at: datetime, reason: str) -> TaskOutcome:
        return self._append(TaskOutcome(
            task_id=task_id,
            status=TaskStatus.CANCELLED,
            recorded_at=at,
            recorded_by=recorded_by,
            variance=Variance("contraindicated", reason),
        ))

    def defer(
        self,
        task_id: str,
        recorded_by: str,
        at: datetime,
        reason: str,
        alternative_action: str | None = None,
    ) -> TaskOutcome:
        return self._append(TaskOutcome(
            task_id=task_id,
            status=TaskStatus.DEFERRED,
            recorded_at=at,
            recorded_by=recorded_by,
            variance=Variance("time_delayed", reason, alternative_action),
        ))

    def _append(self, outcome: TaskOutcome) -> TaskOutcome:
        current = self._latest.get(outcome.task_id)
        if current is not None and current.is_terminal:
            raise TaskAlreadyClosedError(outcome.task_id, current.status)

        self._entries.append(outcome)
        self._latest[outcome.task_id] = outcome
        logger.debug(f"Task {outcome.task_id} -> {outcome.status.value} by {outcome.recorded_by}")
        return outcome
