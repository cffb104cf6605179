"""Shift handover summaries.

Aggregates one patient's feeds, episodes, lines, tubes and shift tasks into
a HandoverSummary and renders it as plain text for printing.
"""

import logging
from datetime import datetime

from common.clinical_data import CarePlan, Episode, FeedRecord, LineRecord, Patient, TubeRecord
from common.nursing_tasks import MedicationTaskDetails, NursingTask, ShiftTimes, TaskStatus, TaskType
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .episode_counter import EpisodeCounterService
from .feed_compliance import FeedComplianceService
from .line_alerts import LineAlertService
from .models import AlertLevel, HandoverSummary, percentage, round_half_up

logger = logging.getLogger(__name__)

# A feed counts as completed at 90% of the prescribed volume
FEED_COMPLETE_FRACTION = 0.9

OUTSTANDING_STATUSES = (TaskStatus.PENDING, TaskStatus.DUE, TaskStatus.OVERDUE, TaskStatus.IN_PROGRESS)


class HandoverService:
    """Builds handover summaries for a unit."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG):
        self.config = config
        self.feed_compliance = FeedComplianceService(config)
        self.episode_counter = EpisodeCounterService(config)
        self.line_alerts = LineAlertService(config)

    def generate_handover(
        self,
        patient: Patient,
        shift: ShiftTimes,
        feeds: list[FeedRecord],
        episodes: list[Episode],
        lines: list[LineRecord],
        tubes: list[TubeRecord],
        generated_by: str,
        now: datetime,
        care_plan: CarePlan | None = None,
        shift_tasks: list[NursingTask] | None = None,
        task_statuses: dict[str, TaskStatus] | None = None,
        problems: list[str] | None = None,
        notes: str = "",
    ) -> HandoverSummary:
        """Summarise one patient's shift.

        Args:
            patient: The patient
            shift: Shift being handed over
            feeds, episodes, lines, tubes: Charted records (filtered to the
                patient and shift here)
            generated_by: Nurse handing over
            now: Time of handover
            care_plan: Active care plan, for feed compliance
            shift_tasks: The patient's generated tasks for the shift
            task_statuses: Status of each task id at `now`
            problems: Free-text problem list
            notes: Free-text notes

        Returns:
            HandoverSummary
        """
        shift_tasks = [t for t in (shift_tasks or []) if t.patient_id == patient.id]
        task_statuses = task_statuses or {}

        shift_feeds = sorted(
            (f for f in feeds if f.patient_id == patient.id and shift.contains(f.feed_time)),
            key=lambda f: f.feed_time,
        )
        shift_episodes = [e for e in episodes if e.patient_id == patient.id and shift.contains(e.occurred_at)]

        compliance = self.feed_compliance.calculate_24hr_compliance(patient.id, feeds, care_plan, now)
        completed_feeds = [
            f for f in shift_feeds
            if f.actual_volume_ml >= f.prescribed_volume_ml * FEED_COMPLETE_FRACTION
        ]
        feeding = {
            "total_feeds": len(shift_feeds),
            "feeds_completed": len(completed_feeds),
            "completion_rate": round_half_up(percentage(len(completed_feeds), len(shift_feeds)), 1),
            "oral_percentage": compliance.oral_percentage,
            "tolerance_issues": [
                f"Partial feed {f.actual_volume_ml:g}ml of {f.prescribed_volume_ml:g}ml at {f.feed_time:%H:%M}"
                for f in shift_feeds if f not in completed_feeds
            ],
            "ng_removal_ready": compliance.ng_removal_readiness.ready,
        }

        medication_tasks = [t for t in shift_tasks if t.task_type == TaskType.MEDICATION]
        missed = [
            t for t in medication_tasks
            if task_statuses.get(t.id) in (TaskStatus.MISSED, TaskStatus.OVERDUE)
        ]
        medications = {
            "total_due": len(medication_tasks),
            "given": sum(1 for t in medication_tasks if task_statuses.get(t.id) == TaskStatus.COMPLETED),
            "missed": len(missed),
            "missed_list": [f"{_medication_name(t)} ({t.scheduled_time_of_day})" for t in missed],
        }

        episode_log = self.episode_counter.create_shift_log(
            patient.id, shift.shift_type, shift_episodes, shift.start, shift.end,
        )
        respiratory = {
            "current_support": patient.respiratory_support,
            "episode_summary": {
                "apnoeas": episode_log.summary.apnoea_count,
                "bradycardias": episode_log.summary.bradycardia_count,
                "desaturations": episode_log.summary.desaturation_count,
                "intervention_rate": episode_log.summary.intervention_rate,
            },
            "clinically_significant": episode_log.clinically_significant,
        }

        active_lines = [
            self.line_alerts.calculate_line_alerts(line, now)
            for line in lines if line.patient_id == patient.id and line.is_active
        ]
        active_tubes = [
            self.line_alerts.calculate_tube_alerts(tube, now)
            for tube in tubes if tube.patient_id == patient.id and tube.is_active
        ]
        alerts = self.line_alerts.get_all_active_alerts(patient.id, lines, tubes, now)
        lines_and_tubes = {
            "active_lines": [
                {"type": s.line_type, "inserted_at": s.inserted_at.isoformat(),
                 "days_in_situ": s.days_in_situ, "alert_level": s.alert_level.value}
                for s in active_lines
            ],
            "active_tubes": [
                {"type": s.tube_type, "inserted_at": s.inserted_at.isoformat(),
                 "last_ph": s.last_ph, "ph_status": s.ph_status}
                for s in active_tubes
            ],
            "alerts": [
                a.message for a in alerts
                if a.severity in (AlertLevel.WARNING, AlertLevel.CRITICAL)
            ],
        }

        task_counts = {status.value: 0 for status in TaskStatus}
        for task in shift_tasks:
            status = task_statuses.get(task.id, TaskStatus.PENDING)
            task_counts[status.value] += 1

        outstanding = [
            f"{t.scheduled_time_of_day} {t.description}"
            for t in sorted(shift_tasks, key=lambda t: t.scheduled_at)
            if task_statuses.get(t.id, TaskStatus.PENDING) in OUTSTANDING_STATUSES
        ]

        logger.debug(f"Handover for {patient.id} on {shift.shift_id}: {len(outstanding)} outstanding tasks")

        return HandoverSummary(
            patient=patient,
            shift=shift,
            generated_at=now,
            generated_by=generated_by,
            feeding=feeding,
            medications=medications,
            respiratory=respiratory,
            lines_and_tubes=lines_and_tubes,
            task_summary=task_counts,
            problems=list(problems or []),
            tasks=outstanding,
            notes=notes,
        )


def _medication_name(task: NursingTask) -> str:
    if isinstance(task.details, MedicationTaskDetails):
        return task.details.medication_name
    return task.description


def format_handover_text(handover: HandoverSummary) -> str:
    """Plain-text handover for printing."""
    patient = handover.patient
    feeding = handover.feeding
    medications = handover.medications
    respiratory = handover.respiratory
    episodes = respiratory.get("episode_summary", {})
    lines_and_tubes = handover.lines_and_tubes

    out = [
        "NICU HANDOVER SUMMARY",
        "=" * 21,
        "",
        f"Patient: {patient.name}",
        f"MRN: {patient.mrn or 'N/A'}",
        f"Bed: {patient.bed_number or 'N/A'}",
        f"Shift: {handover.shift.shift_type.replace('_', ' ').title()} - {handover.shift.start:%Y-%m-%d}",
        f"Generated: {handover.generated_at:%Y-%m-%d %H:%M}",
        "",
    ]

    if handover.problems:
        out.append("PROBLEMS:")
        out.extend(f"  {i}. {problem}" for i, problem in enumerate(handover.problems, 1))
        out.append("")

    out.append("FEEDING:")
    out.append(
        f"  Feeds this shift: {feeding.get('feeds_completed', 0)}/{feeding.get('total_feeds', 0)} "
        f"({feeding.get('completion_rate', 0):.0f}%)"
    )
    out.append(f"  Oral intake (24h): {feeding.get('oral_percentage', 0):.1f}%")
    if feeding.get("ng_removal_ready"):
        out.append("  ! NG TUBE READY FOR REMOVAL")
    if feeding.get("tolerance_issues"):
        out.append("  Tolerance issues:")
        out.extend(f"    - {issue}" for issue in feeding["tolerance_issues"])
    out.append("")

    out.append("MEDICATIONS:")
    out.append(f"  Given: {medications.get('given', 0)}/{medications.get('total_due', 0)}")
    if medications.get("missed"):
        out.append("  ! MISSED MEDICATIONS:")
        out.extend(f"    - {med}" for med in medications["missed_list"])
    out.append("")

    out.append("RESPIRATORY:")
    out.append(f"  Current support: {respiratory.get('current_support') or 'Room air'}")
    out.append(
        f"  A/B/D episodes: {episodes.get('apnoeas', 0)}A / "
        f"{episodes.get('bradycardias', 0)}B / {episodes.get('desaturations', 0)}D"
    )
    out.append(f"  Intervention rate: {episodes.get('intervention_rate', 0):.0f}%")
    out.append("")

    out.append("LINES & TUBES:")
    if lines_and_tubes.get("active_lines"):
        out.append("  Lines:")
        for line in lines_and_tubes["active_lines"]:
            flag = f" [{line['alert_level'].upper()}]" if line["alert_level"] != "none" else ""
            out.append(f"    - {line['type']}: {line['days_in_situ']} days{flag}")
    if lines_and_tubes.get("active_tubes"):
        out.append("  Tubes:")
        for tube in lines_and_tubes["active_tubes"]:
            ph = f"{tube['last_ph']:g}" if tube["last_ph"] is not None else "N/A"
            flag = f" [{tube['ph_status'].upper()}]" if tube["ph_status"] != "safe" else ""
            out.append(f"    - {tube['type']}: pH {ph}{flag}")
    if lines_and_tubes.get("alerts"):
        out.append("  ! ALERTS:")
        out.extend(f"    - {alert}" for alert in lines_and_tubes["alerts"])
    out.append("")

    if handover.tasks:
        out.append("OUTSTANDING TASKS:")
        out.extend(f"  {i}. {task}" for i, task in enumerate(handover.tasks, 1))
        out.append("")

    if handover.notes:
        out.append("ADDITIONAL NOTES:")
        out.append(handover.notes)
        out.append("")

    out.append(f"Generated by: {handover.generated_by}")
    return "\n".join(out) + "\n"
