"""Expand a care plan and its prescriptions into timestamped nursing tasks.

Generation is deterministic: task ids are derived from the task type, the
source plan or prescription id and the scheduled time, so regenerating the
same horizon from the same inputs yields identical tasks in identical order.
"""

import logging
import re
from datetime import date, datetime, time, timedelta

from common.clinical_data import CarePlan, MedicationPrescription
from common.nursing_tasks import (
    FeedingTaskDetails,
    GeneratedFrom,
    InFeedMedication,
    MedicationTaskDetails,
    NursingTask,
    ProcedureTaskDetails,
    ProcedureType,
    Recurrence,
    TaskFlag,
    TaskPriority,
    TaskType,
    VitalSignsTaskDetails,
)

logger = logging.getLogger(__name__)

TIMING_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class InvalidScheduleError(ValueError):
    """A care plan or prescription cannot be turned into a schedule."""


def make_task_id(task_type: TaskType, source_id: str, scheduled_at: datetime, suffix: str | None = None) -> str:
    """Build the deterministic id for a generated task."""
    task_id = f"{task_type.value}-{source_id}-{scheduled_at:%Y%m%dT%H%M}"
    if suffix:
        task_id = f"{task_id}-{suffix}"
    return task_id


def parse_timing(timing: str) -> time:
    """Parse an "HH:MM" clock time."""
    match = TIMING_PATTERN.match(timing.strip()) if isinstance(timing, str) else None
    if not match:
        raise InvalidScheduleError(f"Malformed medication timing: {timing!r}")
    return time(int(match.group(1)), int(match.group(2)))


def _to_minutes(hours: float, what: str) -> int:
    if hours is None or hours <= 0:
        raise InvalidScheduleError(f"{what} must be positive, got {hours}")
    minutes = round(hours * 60)
    if minutes <= 0:
        raise InvalidScheduleError(f"{what} is shorter than one minute: {hours}")
    return minutes


def cadence_times(
    start: datetime,
    interval_hours: float,
    horizon_hours: float,
    whole_intervals: bool = False,
    what: str = "frequency",
) -> list[datetime]:
    """Times at start, start + interval, ... inside the horizon.

    Args:
        start: First tick
        interval_hours: Hours between ticks
        horizon_hours: Length of the horizon
        whole_intervals: Only keep ticks whose full interval fits in the
            horizon (floor(H/f) ticks). Otherwise keep every tick in
            [start, start + H).
        what: Name used in error messages

    Returns:
        Ascending list of tick times
    """
    interval = _to_minutes(interval_hours, what)
    horizon = _to_minutes(horizon_hours, "horizon_hours")

    if whole_intervals:
        count = horizon // interval
    else:
        count = -(-horizon // interval)
    return [start + timedelta(minutes=interval * i) for i in range(count)]


class TaskGenerator:
    """Generates nursing task shells from a care plan and prescriptions."""

    def generate(
        self,
        care_plan: CarePlan | None,
        prescriptions: list[MedicationPrescription],
        start: datetime,
        horizon_hours: float,
    ) -> list[NursingTask]:
        """Generate every task for one patient across a horizon.

        Args:
            care_plan: The patient's care plan (None yields no tasks)
            prescriptions: The patient's prescriptions; only approved ones
                produce tasks
            start: Start of the horizon
            horizon_hours: Length of the horizon in hours

        Returns:
            Tasks grouped by type, ascending by time within each type

        Raises:
            InvalidScheduleError: If a frequency, cadence or horizon is not
                positive, or a prescription's timings are empty or malformed
        """
        if horizon_hours is None or horizon_hours <= 0:
            raise InvalidScheduleError(f"horizon_hours must be positive, got {horizon_hours}")

        if care_plan is None:
            return []
        if not care_plan.is_active:
            logger.debug(f"Care plan {care_plan.id} is {care_plan.status.value}, no tasks generated")
            return []

        approved = [p for p in prescriptions if p.is_approved and p.patient_id == care_plan.patient_id]

        tasks: list[NursingTask] = []
        tasks.extend(self.generate_feeding_tasks(care_plan, approved, start, horizon_hours))
        tasks.extend(self.generate_medication_tasks(care_plan, approved, start, horizon_hours))
        tasks.extend(self.generate_vital_signs_tasks(care_plan, start, horizon_hours))
        tasks.extend(self.generate_procedure_tasks(care_plan, start, horizon_hours))

        logger.debug(
            f"Generated {len(tasks)} tasks for patient {care_plan.patient_id} "
            f"from {care_plan.id} v{care_plan.version} ({horizon_hours}h from {start:%Y-%m-%d %H:%M})"
        )
        return tasks

    def generate_feeding_tasks(
        self,
        care_plan: CarePlan,
        prescriptions: list[MedicationPrescription],
        start: datetime,
        horizon_hours: float,
    ) -> list[NursingTask]:
        plan = care_plan.feeding_plan
        if plan is None:
            return []

        in_feed = tuple(
            InFeedMedication(p.id, p.medication_name)
            for p in prescriptions
            if p.may_be_mixed_with_feed
        )
        source = GeneratedFrom("care_plan", care_plan.id, care_plan.version)
        details = FeedingTaskDetails(
            volume_ml=plan.volume_per_feed_ml,
            feed_type=plan.feed_type.value,
            route=plan.route.value,
            aspirate_required=plan.aspirate_before_feed,
            fortification=plan.fortification,
            medications_to_include=in_feed,
        )
        frequency = f"{plan.frequency_hours:g}-hourly"

        tasks = []
        ticks = cadence_times(
            start, plan.frequency_hours, horizon_hours,
            whole_intervals=True, what="feeding frequency_hours",
        )
        for i, scheduled_at in enumerate(ticks, start=1):
            tasks.append(NursingTask(
                id=make_task_id(TaskType.FEEDING, care_plan.id, scheduled_at),
                patient_id=care_plan.patient_id,
                task_type=TaskType.FEEDING,
                scheduled_at=scheduled_at,
                generated_from=source,
                details=details,
                priority=TaskPriority.IMPORTANT if plan.aspirate_before_feed else TaskPriority.ROUTINE,
                recurrence=Recurrence(f"feeding-{care_plan.id}", i, frequency),
            ))
        return tasks

    def generate_medication_tasks(
        self,
        care_plan: CarePlan,
        prescriptions: list[MedicationPrescription],
        start: datetime,
        horizon_hours: float,
    ) -> list[NursingTask]:
        end = start + timedelta(hours=horizon_hours)
        tasks = []

        for prescription in prescriptions:
            if prescription.is_prn:
                continue
            if not prescription.timings:
                raise InvalidScheduleError(f"Prescription {prescription.id} has no timings")
            clock_times = sorted({parse_timing(t) for t in prescription.timings})

            source = GeneratedFrom("medication_prescription", prescription.id)
            details = MedicationTaskDetails(
                prescription_id=prescription.id,
                medication_name=prescription.medication_name,
                dose_amount=prescription.dose_amount,
                dose_unit=prescription.dose_unit,
                route=prescription.route,
                can_be_given_in_feed=prescription.can_be_given_in_feed,
                must_be_given_separately=prescription.must_be_given_separately,
            )
            flags = frozenset({TaskFlag.NEEDS_TWO_NURSES}) if prescription.controlled_drug else frozenset()

            instance = 0
            for day in _days_touched(start, end):
                for clock in clock_times:
                    scheduled_at = datetime.combine(day, clock, tzinfo=start.tzinfo)
                    if not (start <= scheduled_at < end):
                        continue
                    if not prescription.is_valid_at(scheduled_at):
                        continue
                    instance += 1
                    tasks.append(NursingTask(
                        id=make_task_id(TaskType.MEDICATION, prescription.id, scheduled_at),
                        patient_id=prescription.patient_id,
                        task_type=TaskType.MEDICATION,
                        scheduled_at=scheduled_at,
                        generated_from=source,
                        details=details,
                        priority=TaskPriority.IMPORTANT,
                        flags=flags,
                        recurrence=Recurrence(f"medication-{prescription.id}", instance, prescription.frequency),
                    ))

        tasks.sort(key=lambda t: (t.scheduled_at, t.id))
        return tasks

    def generate_vital_signs_tasks(
        self,
        care_plan: CarePlan,
        start: datetime,
        horizon_hours: float,
    ) -> list[NursingTask]:
        plan = care_plan.observation_plan
        if plan is None:
            return []

        try:
            interval_hours = plan.interval_hours
        except ValueError as e:
            raise InvalidScheduleError(str(e)) from e

        source = GeneratedFrom("care_plan", care_plan.id, care_plan.version)
        details = VitalSignsTaskDetails(parameters=tuple(plan.parameters))
        tasks = []
        for i, scheduled_at in enumerate(
            cadence_times(start, interval_hours, horizon_hours, what="observation frequency"),
            start=1,
        ):
            tasks.append(NursingTask(
                id=make_task_id(TaskType.VITAL_SIGNS, care_plan.id, scheduled_at),
                patient_id=care_plan.patient_id,
                task_type=TaskType.VITAL_SIGNS,
                scheduled_at=scheduled_at,
                generated_from=source,
                details=details,
                recurrence=Recurrence(f"vital_signs-{care_plan.id}", i, plan.frequency),
            ))
        return tasks

    def generate_procedure_tasks(
        self,
        care_plan: CarePlan,
        start: datetime,
        horizon_hours: float,
    ) -> list[NursingTask]:
        """Line flushes, tube position checks, position changes and skin assessments.

        Each kind is emitted as its own task type (line_care, procedure,
        position_change, skin_care) carrying ProcedureTaskDetails.
        """
        plan = care_plan.procedural_plan
        if plan is None:
            return []

        tasks = []
        if plan.line_care is not None:
            for line_id in plan.line_care.line_ids:
                tasks.extend(self._procedure_series(
                    care_plan, start, horizon_hours,
                    task_type=TaskType.LINE_CARE,
                    interval_hours=plan.line_care.flush_frequency_hours,
                    details=ProcedureTaskDetails(
                        procedure_type=ProcedureType.LINE_FLUSH,
                        equipment_required=("0.9% sodium chloride", "sterile syringe"),
                        target_line_or_tube_id=line_id,
                    ),
                    priority=TaskPriority.IMPORTANT,
                    flags=frozenset({TaskFlag.STERILE}),
                    target_id=line_id,
                ))
        if plan.tube_care is not None:
            for tube_id in plan.tube_care.tube_ids:
                tasks.extend(self._procedure_series(
                    care_plan, start, horizon_hours,
                    task_type=TaskType.PROCEDURE,
                    interval_hours=plan.tube_care.position_check_hours,
                    details=ProcedureTaskDetails(
                        procedure_type=ProcedureType.TUBE_POSITION_CHECK,
                        specific_instructions="Check pH before feeding",
                        equipment_required=("pH strip",),
                        target_line_or_tube_id=tube_id,
                    ),
                    priority=TaskPriority.IMPORTANT,
                    target_id=tube_id,
                ))
        if plan.position_changes is not None:
            tasks.extend(self._procedure_series(
                care_plan, start, horizon_hours,
                task_type=TaskType.POSITION_CHANGE,
                interval_hours=plan.position_changes.frequency_hours,
                details=ProcedureTaskDetails(
                    procedure_type=ProcedureType.POSITION_CHANGE,
                    specific_instructions="Rotate: " + ", ".join(plan.position_changes.positions),
                ),
            ))
        if plan.skin_assessments is not None:
            tasks.extend(self._procedure_series(
                care_plan, start, horizon_hours,
                task_type=TaskType.SKIN_CARE,
                interval_hours=plan.skin_assessments.frequency_hours,
                details=ProcedureTaskDetails(procedure_type=ProcedureType.SKIN_ASSESSMENT),
            ))
        return tasks

    def _procedure_series(
        self,
        care_plan: CarePlan,
        start: datetime,
        horizon_hours: float,
        task_type: TaskType,
        interval_hours: float,
        details: ProcedureTaskDetails,
        priority: TaskPriority = TaskPriority.ROUTINE,
        flags: frozenset = frozenset(),
        target_id: str | None = None,
    ) -> list[NursingTask]:
        source = GeneratedFrom("care_plan", care_plan.id, care_plan.version)
        series_id = f"{task_type.value}-{care_plan.id}" + (f"-{target_id}" if target_id else "")
        ticks = cadence_times(
            start, interval_hours, horizon_hours,
            what=f"{details.procedure_type.value} frequency",
        )
        return [
            NursingTask(
                id=make_task_id(task_type, care_plan.id, scheduled_at, suffix=target_id),
                patient_id=care_plan.patient_id,
                task_type=task_type,
                scheduled_at=scheduled_at,
                generated_from=source,
                details=details,
                priority=priority,
                flags=flags,
                recurrence=Recurrence(series_id, i, f"{interval_hours:g}-hourly"),
            )
            for i, scheduled_at in enumerate(ticks, start=1)
        ]


def _days_touched(start: datetime, end: datetime) -> list[date]:
    """Calendar days that overlap [start, end)."""
    days = []
    day = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while day <= last:
        days.append(day)
        day += timedelta(days=1)
    return days


def generate_all_tasks(
    care_plan: CarePlan | None,
    prescriptions: list[MedicationPrescription],
    start: datetime,
    horizon_hours: float = 24,
) -> list[NursingTask]:
    """Convenience wrapper around TaskGenerator.generate."""
    return TaskGenerator().generate(care_plan, prescriptions, start, horizon_hours)
