"""Data models for generated nursing tasks.

A NursingTask is an immutable shell produced by task generation. Its
status is never stored on it; status is derived at read time from the
shell, the completion log and the current time.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union


class TaskType(str, Enum):
    """Kind of nursing task."""
    FEEDING = "feeding"
    MEDICATION = "medication"
    VITAL_SIGNS = "vital_signs"
    PROCEDURE = "procedure"
    ASSESSMENT = "assessment"
    POSITION_CHANGE = "position_change"
    SKIN_CARE = "skin_care"
    LINE_CARE = "line_care"

    @classmethod
    def display_name(cls, value):
        """Get human-readable display name for a task type."""
        display_map = {
            cls.FEEDING: "Feeding",
            cls.MEDICATION: "Medication",
            cls.VITAL_SIGNS: "Vital Signs",
            cls.PROCEDURE: "Procedure",
            cls.ASSESSMENT: "Assessment",
            cls.POSITION_CHANGE: "Position Change",
            cls.SKIN_CARE: "Skin Care",
            cls.LINE_CARE: "Line Care",
        }
        if isinstance(value, cls):
            return display_map.get(value, value.value.replace("_", " ").title())
        return display_map.get(cls(value) if value else None, value.replace("_", " ").title() if value else "")

    @classmethod
    def all_options(cls):
        """Get all options as (value, display_name) tuples for dropdowns."""
        return [(t.value, cls.display_name(t)) for t in cls]


class TaskStatus(str, Enum):
    """Derived task status."""
    PENDING = "pending"
    DUE = "due"
    OVERDUE = "overdue"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"
    DEFERRED = "deferred"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @classmethod
    def display_name(cls, value):
        """Get human-readable display name for a status."""
        return {
            cls.PENDING: "Pending",
            cls.DUE: "Due",
            cls.OVERDUE: "Overdue",
            cls.IN_PROGRESS: "In Progress",
            cls.COMPLETED: "Completed",
            cls.MISSED: "Missed",
            cls.CANCELLED: "Cancelled",
            cls.DEFERRED: "Deferred",
        }.get(value, value)


TERMINAL_STATUSES = frozenset({
    TaskStatus.COMPLETED,
    TaskStatus.MISSED,
    TaskStatus.CANCELLED,
    TaskStatus.DEFERRED,
})


class TaskPriority(str, Enum):
    """Clinical priority, lowest to highest."""
    ROUTINE = "routine"
    IMPORTANT = "important"
    URGENT = "urgent"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.ROUTINE: 0,
    TaskPriority.IMPORTANT: 1,
    TaskPriority.URGENT: 2,
    TaskPriority.CRITICAL: 3,
}


class TaskFlag(str, Enum):
    FIRST_TIME = "first_time"
    NEEDS_TWO_NURSES = "needs_two_nurses"
    PARENT_PRESENT = "parent_present"
    STERILE = "sterile"


class ProcedureType(str, Enum):
    LINE_FLUSH = "line_flush"
    DRESSING_CHANGE = "dressing_change"
    TUBE_POSITION_CHECK = "tube_position_check"
    POSITION_CHANGE = "position_change"
    SKIN_ASSESSMENT = "skin_assessment"


# =============================================================================
# Task details (tagged by task type)
# =============================================================================

@dataclass(frozen=True)
class InFeedMedication:
    """A prescription the nurse may add to a feed."""
    prescription_id: str
    medication_name: str


@dataclass(frozen=True)
class FeedingTaskDetails:
    volume_ml: float
    feed_type: str
    route: str
    aspirate_required: bool = False
    fortification: str | None = None
    medications_to_include: tuple[InFeedMedication, ...] = ()

    kind = TaskType.FEEDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "volume_ml": self.volume_ml,
            "feed_type": self.feed_type,
            "route": self.route,
            "aspirate_required": self.aspirate_required,
            "fortification": self.fortification,
            "medications_to_include": [
                {"prescription_id": m.prescription_id, "medication_name": m.medication_name}
                for m in self.medications_to_include
            ],
        }


@dataclass(frozen=True)
class MedicationTaskDetails:
    prescription_id: str
    medication_name: str
    dose_amount: float
    dose_unit: str
    route: str
    can_be_given_in_feed: bool = False
    must_be_given_separately: bool = False

    kind = TaskType.MEDICATION

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "prescription_id": self.prescription_id,
            "medication_name": self.medication_name,
            "dose": {"amount": self.dose_amount, "unit": self.dose_unit},
            "route": self.route,
            "can_be_given_in_feed": self.can_be_given_in_feed,
            "must_be_given_separately": self.must_be_given_separately,
        }


@dataclass(frozen=True)
class VitalSignsTaskDetails:
    parameters: tuple[str, ...]
    is_routine_check: bool = True
    special_instructions: str | None = None

    kind = TaskType.VITAL_SIGNS

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "parameters": list(self.parameters),
            "is_routine_check": self.is_routine_check,
            "special_instructions": self.special_instructions,
        }


@dataclass(frozen=True)
class ProcedureTaskDetails:
    procedure_type: ProcedureType
    specific_instructions: str | None = None
    equipment_required: tuple[str, ...] = ()
    target_line_or_tube_id: str | None = None

    kind = TaskType.PROCEDURE

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "procedure_type": self.procedure_type.value,
            "specific_instructions": self.specific_instructions,
            "equipment_required": list(self.equipment_required),
            "target_line_or_tube_id": self.target_line_or_tube_id,
        }


TaskDetails = Union[
    FeedingTaskDetails,
    MedicationTaskDetails,
    VitalSignsTaskDetails,
    ProcedureTaskDetails,
]


def describe_details(details: TaskDetails) -> str:
    """Short human-readable description of a task's details."""
    if isinstance(details, FeedingTaskDetails):
        return f"Feed due ({details.volume_ml:g}ml)"
    if isinstance(details, MedicationTaskDetails):
        return f"Medication: {details.medication_name}"
    if isinstance(details, VitalSignsTaskDetails):
        return "Vital signs check"
    if isinstance(details, ProcedureTaskDetails):
        return details.procedure_type.value.replace("_", " ").capitalize()
    raise TypeError(f"Unknown task details: {type(details).__name__}")


# =============================================================================
# Task shell
# =============================================================================

@dataclass(frozen=True)
class GeneratedFrom:
    """Back-reference to the plan or prescription a task was generated from."""
    source_type: str  # care_plan, medication_prescription, manual
    source_id: str
    version: int | None = None


@dataclass(frozen=True)
class Recurrence:
    series_id: str
    instance_number: int
    frequency: str | None = None


@dataclass(frozen=True)
class NursingTask:
    """An immutable generated nursing task."""
    id: str
    patient_id: str
    task_type: TaskType
    scheduled_at: datetime
    generated_from: GeneratedFrom
    details: TaskDetails
    task_category: str = "routine"
    priority: TaskPriority = TaskPriority.ROUTINE
    flags: frozenset[TaskFlag] = field(default_factory=frozenset)
    window_start: datetime | None = None
    window_end: datetime | None = None
    shift_id: str | None = None
    recurrence: Recurrence | None = None

    @property
    def scheduled_time_of_day(self) -> str:
        return self.scheduled_at.strftime("%H:%M")

    @property
    def description(self) -> str:
        return describe_details(self.details)

    def has_flag(self, flag: TaskFlag) -> bool:
        return flag in self.flags

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "task_type": self.task_type.value,
            "task_type_display": TaskType.display_name(self.task_type),
            "task_category": self.task_category,
            "priority": self.priority.value,
            "scheduled_at": self.scheduled_at.isoformat(),
            "scheduled_time_of_day": self.scheduled_time_of_day,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "window_end": self.window_end.isoformat() if self.window_end else None,
            "shift_id": self.shift_id,
            "generated_from": {
                "source_type": self.generated_from.source_type,
                "source_id": self.generated_from.source_id,
                "version": self.generated_from.version,
            },
            "recurrence": {
                "series_id": self.recurrence.series_id,
                "instance_number": self.recurrence.instance_number,
            } if self.recurrence else None,
            "flags": sorted(f.value for f in self.flags),
            "description": self.description,
            "details": self.details.to_dict(),
        }


# =============================================================================
# Shift-level views
# =============================================================================

@dataclass(frozen=True)
class ShiftTimes:
    start: datetime
    end: datetime
    shift_type: str

    @property
    def shift_id(self) -> str:
        return f"shift-{self.shift_type}-{self.start:%Y-%m-%d}"

    def contains(self, when: datetime) -> bool:
        return self.start <= when < self.end

    def to_dict(self) -> dict[str, Any]:
        return {
            "shift_id": self.shift_id,
            "shift_type": self.shift_type,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass(frozen=True)
class TaskReminder:
    id: str
    task_id: str
    patient_id: str
    remind_at: datetime
    message: str
    priority: str  # low, medium, high, critical
    reminder_type: str = "upcoming"  # upcoming, due_now, overdue, window_closing

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "patient_id": self.patient_id,
            "remind_at": self.remind_at.isoformat(),
            "message": self.message,
            "priority": self.priority,
            "reminder_type": self.reminder_type,
        }


@dataclass
class ShiftTaskBundle:
    """All tasks generated for one shift."""
    shift_id: str
    shift: ShiftTimes
    generated_at: datetime
    generated_by: str
    tasks_by_patient: dict[str, list[NursingTask]] = field(default_factory=dict)
    all_tasks: list[NursingTask] = field(default_factory=list)
    reminders: list[TaskReminder] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "shift_id": self.shift_id,
            "shift": self.shift.to_dict(),
            "generated_at": self.generated_at.isoformat(),
            "generated_by": self.generated_by,
            "tasks_by_patient": {
                patient_id: [t.id for t in tasks]
                for patient_id, tasks in self.tasks_by_patient.items()
            },
            "all_tasks": [t.to_dict() for t in self.all_tasks],
            "reminders": [r.to_dict() for r in self.reminders],
            "stats": self.stats,
        }


COMBINABLE_TASK_TYPES = frozenset({TaskType.FEEDING, TaskType.MEDICATION, TaskType.VITAL_SIGNS})


@dataclass
class TaskCluster:
    """A care round: one patient's tasks close enough to do in one visit."""
    id: str
    patient_id: str
    start: datetime
    end: datetime
    tasks: list[NursingTask] = field(default_factory=list)

    @property
    def highest_priority(self) -> TaskPriority:
        return max((t.priority for t in self.tasks), key=lambda p: p.rank, default=TaskPriority.ROUTINE)

    @property
    def can_be_combined(self) -> bool:
        """True when every task can be done in one handling episode."""
        return all(t.task_type in COMBINABLE_TASK_TYPES for t in self.tasks)

    @property
    def time_window(self) -> str:
        start, end = f"{self.start:%H:%M}", f"{self.end:%H:%M}"
        return start if start == end else f"{start}-{end}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "time_window": self.time_window,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "task_ids": [t.id for t in self.tasks],
            "task_count": len(self.tasks),
            "highest_priority": self.highest_priority.value,
            "can_be_combined": self.can_be_combined,
        }
