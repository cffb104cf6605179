"""Caller-owned cache of generated shift bundles.

The planner holds generated tasks keyed by (patient_id, shift_id) and whole
bundles keyed by shift id. Callers invalidate entries when a patient's care
plan or prescriptions change. Task ids are deterministic, so outcomes in the
completion log stay linked to regenerated tasks as long as the task still
exists in the new schedule.
"""

import logging
from datetime import date, datetime

from common.clinical_data import CarePlan, MedicationPrescription, Patient
from common.nursing_tasks import CompletionLog, NursingTask, ShiftTaskBundle, TaskOutcome, TaskStatus

from .shift_tasks import ShiftTaskService
from .task_status import statuses_for

logger = logging.getLogger(__name__)


class ShiftPlanner:
    """Generates shift bundles on demand and caches them until invalidated."""

    def __init__(self, service: ShiftTaskService | None = None, log: CompletionLog | None = None):
        self.service = service or ShiftTaskService()
        self.log = log if log is not None else CompletionLog()
        self._tasks: dict[tuple[str, str], list[NursingTask]] = {}
        self._bundles: dict[str, ShiftTaskBundle] = {}
        self._retired_task_ids: dict[tuple[str, str], set[str]] = {}
        self.unlinked_outcomes: list[TaskOutcome] = []

    def __len__(self) -> int:
        return len(self._bundles)

    def bundle_for(
        self,
        patients: list[Patient],
        care_plans: list[CarePlan],
        prescriptions: list[MedicationPrescription],
        shift_type: str,
        shift_date: date,
        generated_by: str,
        generated_at: datetime | None = None,
    ) -> ShiftTaskBundle:
        """Cached bundle for a shift, generating it on a miss."""
        shift_id = self.service.get_shift_times(shift_date, shift_type).shift_id
        cached = self._bundles.get(shift_id)
        if cached is not None:
            return cached

        bundle = self.service.generate_shift_tasks(
            patients, care_plans, prescriptions, shift_type, shift_date, generated_by, generated_at,
        )
        self._bundles[shift_id] = bundle
        for patient_id, tasks in bundle.tasks_by_patient.items():
            self._tasks[(patient_id, shift_id)] = tasks
            self._check_links(patient_id, shift_id, tasks)

        logger.debug(f"Cached {shift_id} with {len(bundle.all_tasks)} tasks")
        return bundle

    def tasks_for(self, patient_id: str, shift_id: str) -> list[NursingTask] | None:
        """Cached tasks for one patient and shift, or None if not generated."""
        return self._tasks.get((patient_id, shift_id))

    def find_task(self, task_id: str) -> NursingTask | None:
        for bundle in self._bundles.values():
            for task in bundle.all_tasks:
                if task.id == task_id:
                    return task
        return None

    def statuses(self, shift_id: str, now: datetime) -> dict[str, TaskStatus]:
        """Current status of every task in a cached shift."""
        bundle = self._bundles.get(shift_id)
        if bundle is None:
            return {}
        return statuses_for(bundle.all_tasks, self.log, now, self.service.shift_config.due_lead_minutes)

    def invalidate_patient(self, patient_id: str) -> int:
        """Drop everything generated for a patient.

        Bundles containing the patient are dropped too, since they
        aggregate that patient's tasks.

        Returns:
            Number of (patient, shift) entries dropped
        """
        keys = [key for key in self._tasks if key[0] == patient_id]
        for key in keys:
            tasks = self._tasks.pop(key)
            self._retired_task_ids.setdefault(key, set()).update(t.id for t in tasks)

        stale_bundles = [sid for sid, b in self._bundles.items() if patient_id in b.tasks_by_patient]
        for shift_id in stale_bundles:
            bundle = self._bundles.pop(shift_id)
            for other_id in bundle.tasks_by_patient:
                if other_id != patient_id:
                    self._tasks.pop((other_id, shift_id), None)

        logger.info(f"Invalidated {len(keys)} cached shift entries for patient {patient_id}")
        return len(keys)

    def invalidate_all(self) -> None:
        self._tasks.clear()
        self._bundles.clear()
        self._retired_task_ids.clear()
        logger.info("Shift planner cache cleared")

    def _check_links(self, patient_id: str, shift_id: str, tasks: list[NursingTask]) -> None:
        """Record outcomes whose task vanished from the regenerated schedule."""
        retired = self._retired_task_ids.pop((patient_id, shift_id), set())
        current_ids = {t.id for t in tasks}
        for task_id in sorted(retired - current_ids):
            outcome = self.log.outcome_for(task_id)
            if outcome is not None:
                self.unlinked_outcomes.append(outcome)
                logger.warning(
                    f"Task {task_id} has a recorded {outcome.status.value} outcome "
                    f"but is no longer in the schedule for {shift_id}"
                )
