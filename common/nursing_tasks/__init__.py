"""Nursing task value objects and the task completion log."""

from .completion_log import (
    CompletionLog,
    TaskAlreadyClosedError,
    TaskOutcome,
    Variance,
)
from .models import (
    FeedingTaskDetails,
    GeneratedFrom,
    InFeedMedication,
    MedicationTaskDetails,
    NursingTask,
    ProcedureTaskDetails,
    ProcedureType,
    Recurrence,
    ShiftTaskBundle,
    ShiftTimes,
    TaskCluster,
    TaskDetails,
    TaskFlag,
    TaskPriority,
    TaskReminder,
    TaskStatus,
    TaskType,
    TERMINAL_STATUSES,
    VitalSignsTaskDetails,
    describe_details,
)

__all__ = [
    "CompletionLog",
    "FeedingTaskDetails",
    "GeneratedFrom",
    "InFeedMedication",
    "MedicationTaskDetails",
    "NursingTask",
    "ProcedureTaskDetails",
    "ProcedureType",
    "Recurrence",
    "ShiftTaskBundle",
    "ShiftTimes",
    "TaskAlreadyClosedError",
    "TaskCluster",
    "TaskDetails",
    "TaskFlag",
    "TaskOutcome",
    "TaskPriority",
    "TaskReminder",
    "TaskStatus",
    "TaskType",
    "TERMINAL_STATUSES",
    "Variance",
    "VitalSignsTaskDetails",
    "describe_details",
]
