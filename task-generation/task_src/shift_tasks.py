"""Shift-level task generation and derived task views.

Generates 24 hours of tasks from each shift start, keeps the slice that
falls inside the shift, attaches execution windows and reminders, and
provides the role, upcoming, overdue and care-round views over the result.
"""

import logging
from collections import Counter
from dataclasses import replace
from datetime import date, datetime, timedelta
from enum import Enum

from common.clinical_data import (
    CarePlan,
    CarePlanStatus,
    MedicationPrescription,
    Patient,
    select_active_care_plan,
)
from common.nursing_tasks import (
    CompletionLog,
    NursingTask,
    ProcedureTaskDetails,
    ShiftTaskBundle,
    ShiftTimes,
    TaskCluster,
    TaskFlag,
    TaskPriority,
    TaskReminder,
    TaskStatus,
    TaskType,
)
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .task_generator import TaskGenerator
from .task_status import group_tasks_by_time_window, split_into_runs, status_for

logger = logging.getLogger(__name__)

GENERATION_HORIZON_HOURS = 24


class StaffRole(str, Enum):
    """Roles that get their own task view."""
    NURSE = "nurse"
    HCA = "hca"
    DOCTOR = "doctor"
    ANP = "anp"
    UNIT_MANAGER = "unit_manager"


HCA_TASK_TYPES = frozenset({TaskType.VITAL_SIGNS, TaskType.POSITION_CHANGE, TaskType.SKIN_CARE})

REMINDER_PRIORITY = {
    TaskPriority.ROUTINE: "low",
    TaskPriority.IMPORTANT: "medium",
    TaskPriority.URGENT: "high",
    TaskPriority.CRITICAL: "critical",
}

REMINDER_PREFIXES = {
    "upcoming": "Due at {time}:",
    "due_now": "Due now:",
    "overdue": "OVERDUE:",
    "window_closing": "Window closing:",
}


def format_reminder_message(task: NursingTask, reminder_type: str = "upcoming") -> str:
    """Reminder text, e.g. "Due at 11:00: Feed due (36ml)"."""
    prefix = REMINDER_PREFIXES[reminder_type].format(time=task.scheduled_time_of_day)

    if task.task_type in (TaskType.FEEDING, TaskType.MEDICATION, TaskType.VITAL_SIGNS):
        description = task.description
    elif task.task_type == TaskType.PROCEDURE and isinstance(task.details, ProcedureTaskDetails):
        description = f"Procedure: {task.details.procedure_type.value.replace('_', ' ')}"
    else:
        description = {
            TaskType.LINE_CARE: "Line care",
            TaskType.POSITION_CHANGE: "Position change",
            TaskType.SKIN_CARE: "Skin assessment",
            TaskType.ASSESSMENT: "Assessment due",
        }.get(task.task_type, task.task_type.value)

    return f"{prefix} {description}"


class ShiftTaskService:
    """Generates shift task bundles and role-specific views."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG, generator: TaskGenerator | None = None):
        self.config = config
        self.shift_config = config.shifts
        self.generator = generator or TaskGenerator()

    # -------------------------------------------------------------------------
    # Generation
    # -------------------------------------------------------------------------

    def get_shift_times(self, shift_date: date, shift_type: str) -> ShiftTimes:
        """Start and end of a shift. Night shifts end on the following day.

        Raises:
            ValueError: If the shift type is not configured
        """
        start, end = self.shift_config.get_shift(shift_type).times_on(shift_date)
        return ShiftTimes(start=start, end=end, shift_type=shift_type)

    def generate_shift_tasks(
        self,
        patients: list[Patient],
        care_plans: list[CarePlan],
        prescriptions: list[MedicationPrescription],
        shift_type: str,
        shift_date: date,
        generated_by: str,
        generated_at: datetime | None = None,
    ) -> ShiftTaskBundle:
        """Generate every patient's tasks for one shift.

        Args:
            patients: Patients on the unit
            care_plans: Care plans for any patients (only active ones are used)
            prescriptions: Prescriptions for any patients (only approved ones are used)
            shift_type: day, night or long_day
            shift_date: Calendar date the shift starts on
            generated_by: User or process requesting generation
            generated_at: Timestamp recorded on the bundle (defaults to now)

        Returns:
            ShiftTaskBundle with tasks, reminders and stats
        """
        shift = self.get_shift_times(shift_date, shift_type)

        tasks_by_patient: dict[str, list[NursingTask]] = {}
        all_tasks: list[NursingTask] = []
        reminders: list[TaskReminder] = []

        for patient in patients:
            patient_tasks = self.generate_patient_shift_tasks(patient, care_plans, prescriptions, shift)
            tasks_by_patient[patient.id] = patient_tasks
            all_tasks.extend(patient_tasks)
            reminders.extend(self.generate_reminders(patient_tasks))

        all_tasks.sort(key=lambda t: (t.scheduled_at, t.patient_id, t.id))

        bundle = ShiftTaskBundle(
            shift_id=shift.shift_id,
            shift=shift,
            generated_at=generated_at or datetime.now(),
            generated_by=generated_by,
            tasks_by_patient=tasks_by_patient,
            all_tasks=all_tasks,
            reminders=reminders,
            stats=self._bundle_stats(tasks_by_patient, all_tasks),
        )

        logger.info(
            f"Generated {len(all_tasks)} tasks for {shift.shift_id} "
            f"across {len(patients)} patients ({len(reminders)} reminders)"
        )
        return bundle

    def generate_patient_shift_tasks(
        self,
        patient: Patient,
        care_plans: list[CarePlan],
        prescriptions: list[MedicationPrescription],
        shift: ShiftTimes,
    ) -> list[NursingTask]:
        """One patient's tasks for a shift, with windows and shift id attached.

        Only the highest-version active plan is expanded; a second active
        plan for the same patient is logged and ignored.
        """
        active_count = sum(
            1 for cp in care_plans if cp.patient_id == patient.id and cp.status == CarePlanStatus.ACTIVE
        )
        care_plan = select_active_care_plan(care_plans, patient.id)
        approved = [p for p in prescriptions if p.patient_id == patient.id and p.is_approved]

        if care_plan is None:
            logger.debug(f"No active care plan for patient {patient.id}")
            return []
        if active_count > 1:
            logger.warning(
                f"Patient {patient.id} has {active_count} active care plans, "
                f"using {care_plan.id} (v{care_plan.version})"
            )

        raw = self.generator.generate(care_plan, approved, shift.start, GENERATION_HORIZON_HOURS)
        patient_tasks = [self._attach_window(t, shift) for t in raw if shift.contains(t.scheduled_at)]

        patient_tasks.sort(key=lambda t: (t.scheduled_at, t.id))
        logger.debug(f"Patient {patient.id}: {len(patient_tasks)} tasks in {shift.shift_id}")
        return patient_tasks

    def pre_generate_upcoming_shifts(
        self,
        patients: list[Patient],
        care_plans: list[CarePlan],
        prescriptions: list[MedicationPrescription],
        generated_by: str,
        now: datetime,
        hours_ahead: int = 48,
    ) -> list[ShiftTaskBundle]:
        """Bundles for consecutive day/night shifts covering the next hours_ahead hours."""
        day = self.shift_config.get_shift("day")
        night = self.shift_config.get_shift("night")

        if day.start_hour <= now.hour < day.end_hour:
            shift_type, shift_date = "day", now.date()
        elif now.hour >= night.start_hour:
            shift_type, shift_date = "night", now.date()
        else:
            # Early morning belongs to the night shift that started yesterday
            shift_type, shift_date = "night", now.date() - timedelta(days=1)

        bundles = []
        hours_covered = 0
        while hours_covered < hours_ahead:
            bundle = self.generate_shift_tasks(
                patients, care_plans, prescriptions, shift_type, shift_date, generated_by, generated_at=now,
            )
            bundles.append(bundle)
            hours_covered += self.shift_config.get_shift(shift_type).duration_hours

            if shift_type == "day":
                shift_type = "night"
            else:
                shift_type, shift_date = "day", shift_date + timedelta(days=1)

        logger.info(f"Pre-generated {len(bundles)} shift bundles covering {hours_ahead}h")
        return bundles

    # -------------------------------------------------------------------------
    # Windows & reminders
    # -------------------------------------------------------------------------

    def _attach_window(self, task: NursingTask, shift: ShiftTimes) -> NursingTask:
        window = timedelta(minutes=self.shift_config.window_for(task.task_type.value))
        return replace(
            task,
            window_start=max(shift.start, task.scheduled_at - window),
            window_end=min(shift.end, task.scheduled_at + window),
            shift_id=shift.shift_id,
        )

    def generate_reminders(self, tasks: list[NursingTask]) -> list[TaskReminder]:
        reminders = []
        for task in tasks:
            lead = self.shift_config.reminder_lead_minutes.get(task.priority.value, 30)
            reminders.append(TaskReminder(
                id=f"reminder-{task.id}",
                task_id=task.id,
                patient_id=task.patient_id,
                remind_at=task.scheduled_at - timedelta(minutes=lead),
                message=format_reminder_message(task, "upcoming"),
                priority=REMINDER_PRIORITY.get(task.priority, "medium"),
            ))
        return reminders

    def _bundle_stats(self, tasks_by_patient: dict[str, list[NursingTask]], all_tasks: list[NursingTask]) -> dict:
        return {
            "total_tasks": len(all_tasks),
            "by_type": dict(Counter(t.task_type.value for t in all_tasks)),
            "by_priority": dict(Counter(t.priority.value for t in all_tasks)),
            "by_patient": {patient_id: len(tasks) for patient_id, tasks in tasks_by_patient.items()},
        }

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    def filter_tasks_for_role(
        self,
        tasks: list[NursingTask],
        role: StaffRole | str,
        log: CompletionLog | None = None,
        now: datetime | None = None,
    ) -> list[NursingTask]:
        """Subset of tasks relevant to a role.

        The unit manager view includes overdue tasks only when `now` is given.

        Raises:
            ValueError: If the role is unknown
        """
        role = StaffRole(role)

        if role == StaffRole.NURSE:
            return list(tasks)

        if role == StaffRole.HCA:
            return [
                t for t in tasks
                if t.task_type in HCA_TASK_TYPES and t.priority != TaskPriority.CRITICAL
            ]

        if role in (StaffRole.DOCTOR, StaffRole.ANP):
            return [
                t for t in tasks
                if t.task_type == TaskType.MEDICATION
                or t.priority == TaskPriority.CRITICAL
                or t.has_flag(TaskFlag.NEEDS_TWO_NURSES)
            ]

        return [
            t for t in tasks
            if t.priority in (TaskPriority.CRITICAL, TaskPriority.URGENT)
            or (now is not None and self._status(t, log, now) == TaskStatus.OVERDUE)
        ]

    def get_upcoming_tasks(
        self,
        tasks: list[NursingTask],
        log: CompletionLog | None,
        now: datetime,
        within_minutes: int = 30,
    ) -> list[NursingTask]:
        """Not-yet-actioned tasks scheduled in [now, now + within_minutes]."""
        cutoff = now + timedelta(minutes=within_minutes)
        return [
            t for t in tasks
            if now <= t.scheduled_at <= cutoff
            and self._status(t, log, now) in (TaskStatus.PENDING, TaskStatus.DUE)
        ]

    def get_overdue_tasks(self, tasks: list[NursingTask], log: CompletionLog | None, now: datetime) -> list[NursingTask]:
        """Tasks whose window has closed without any outcome being recorded."""
        return [t for t in tasks if self._status(t, log, now) == TaskStatus.OVERDUE]

    def cluster_tasks(self, tasks: list[NursingTask], window_minutes: int = 30) -> dict[str, list[NursingTask]]:
        """Group each patient's tasks into care rounds.

        Returns:
            Mapping of "<patient_id>-<first task time>" to the tasks in that round
        """
        clusters: dict[str, list[NursingTask]] = {}
        for patient_id, patient_tasks in _by_patient(tasks).items():
            for run in split_into_runs(patient_tasks, window_minutes):
                clusters[f"{patient_id}-{run[0].scheduled_at.isoformat()}"] = run
        return clusters

    def care_rounds(self, tasks: list[NursingTask], window_minutes: int = 30) -> list[TaskCluster]:
        """cluster_tasks as TaskCluster objects, ordered by start time."""
        rounds = []
        for patient_tasks in _by_patient(tasks).values():
            rounds.extend(group_tasks_by_time_window(patient_tasks, window_minutes))
        rounds.sort(key=lambda c: (c.start, c.patient_id))
        return rounds

    def _status(self, task: NursingTask, log: CompletionLog | None, now: datetime) -> TaskStatus:
        return status_for(task, log, now, self.shift_config.due_lead_minutes)


def _by_patient(tasks: list[NursingTask]) -> dict[str, list[NursingTask]]:
    grouped: dict[str, list[NursingTask]] = {}
    for task in tasks:
        grouped.setdefault(task.patient_id, []).append(task)
    return grouped
