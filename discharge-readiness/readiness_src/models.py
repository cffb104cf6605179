"""Data models for feed compliance, episode tracking, discharge readiness,
line/tube alerts and handover summaries.

All of these are derived values: they are recomputed from charted records
on every call and never stored as the source of truth.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from common.clinical_data import Episode, Patient
from common.nursing_tasks import ShiftTimes


def round_half_up(value: float, places: int = 0) -> float:
    """Round with .5 going away from zero (33.75 -> 34, 66.65 -> 66.7 at 1dp)."""
    exponent = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP))


def percentage(numerator: float, denominator: float) -> float:
    """numerator / denominator * 100, or 0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


# =============================================================================
# Feed compliance
# =============================================================================

@dataclass
class VolumeCompliance:
    total_prescribed: float
    total_actual: float
    compliance_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_prescribed": self.total_prescribed,
            "total_actual": self.total_actual,
            "compliance_rate": self.compliance_rate,
        }


@dataclass
class NGRemovalReadiness:
    """Whether the trailing window of feeds supports taking the tube out."""
    oral_threshold_met: bool = False
    consecutive_hours_met: bool = False
    zero_top_ups_met: bool = False
    ready: bool = False
    feeds_until_ready: int = 0
    current_consecutive_streak: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "oral_threshold_met": self.oral_threshold_met,
            "consecutive_hours_met": self.consecutive_hours_met,
            "zero_top_ups_met": self.zero_top_ups_met,
            "ready": self.ready,
            "feeds_until_ready": self.feeds_until_ready,
            "current_consecutive_streak": self.current_consecutive_streak,
        }


@dataclass
class FeedingCompliance:
    """Rolling 24 hour feed compliance for one patient."""
    id: str
    patient_id: str
    calculated_at: datetime
    window_start: datetime
    window_end: datetime
    window_hours: int
    total_feeds_scheduled: int
    total_feeds_completed: int
    completion_rate: float
    oral_feeds: int
    ng_feeds: int
    oral_percentage: float
    volume_compliance: VolumeCompliance
    ng_removal_readiness: NGRemovalReadiness
    missed_feeds: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "calculated_at": self.calculated_at.isoformat(),
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "window_hours": self.window_hours,
            "total_feeds_scheduled": self.total_feeds_scheduled,
            "total_feeds_completed": self.total_feeds_completed,
            "completion_rate": self.completion_rate,
            "missed_feeds": self.missed_feeds,
            "oral_feeds": self.oral_feeds,
            "ng_feeds": self.ng_feeds,
            "oral_percentage": self.oral_percentage,
            "volume_compliance": self.volume_compliance.to_dict(),
            "ng_removal_readiness": self.ng_removal_readiness.to_dict(),
        }


# =============================================================================
# Episodes
# =============================================================================

@dataclass
class EpisodeSummary:
    total_episodes: int = 0
    apnoea_count: int = 0
    bradycardia_count: int = 0
    desaturation_count: int = 0
    self_resolved_count: int = 0
    stimulation_count: int = 0
    oxygen_increase_count: int = 0
    bagging_count: int = 0
    episodes_per_hour: float = 0.0
    intervention_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_episodes": self.total_episodes,
            "apnoea_count": self.apnoea_count,
            "bradycardia_count": self.bradycardia_count,
            "desaturation_count": self.desaturation_count,
            "self_resolved_count": self.self_resolved_count,
            "stimulation_count": self.stimulation_count,
            "oxygen_increase_count": self.oxygen_increase_count,
            "bagging_count": self.bagging_count,
            "episodes_per_hour": self.episodes_per_hour,
            "intervention_rate": self.intervention_rate,
        }


@dataclass
class EpisodeLog:
    """A/B/D episodes recorded during one shift."""
    id: str
    patient_id: str
    shift_type: str
    shift_start: datetime
    shift_end: datetime
    summary: EpisodeSummary
    apnoeas: list[Episode] = field(default_factory=list)
    bradycardias: list[Episode] = field(default_factory=list)
    desaturations: list[Episode] = field(default_factory=list)
    clinically_significant: bool = False
    escalated_to_medical_team: bool = False
    flagged_for_handover: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "shift_type": self.shift_type,
            "shift_start": self.shift_start.isoformat(),
            "shift_end": self.shift_end.isoformat(),
            "summary": self.summary.to_dict(),
            "clinically_significant": self.clinically_significant,
            "escalated_to_medical_team": self.escalated_to_medical_team,
            "flagged_for_handover": self.flagged_for_handover,
        }


@dataclass
class EpisodeCounterState:
    """Bedside counter for the current shift."""
    patient_id: str
    current_shift: str
    apnoea_count: int
    bradycardia_count: int
    desaturation_count: int
    last_apnoea: datetime | None = None
    last_bradycardia: datetime | None = None
    last_desaturation: datetime | None = None
    recent_episodes: list[Episode] = field(default_factory=list)
    self_resolved_percentage: int = 100
    rate_increasing: bool = False
    requires_review: bool = False

    @property
    def total(self) -> int:
        return self.apnoea_count + self.bradycardia_count + self.desaturation_count

    def to_dict(self) -> dict[str, Any]:
        def iso(value):
            return value.isoformat() if value else None

        return {
            "patient_id": self.patient_id,
            "current_shift": self.current_shift,
            "apnoea_count": self.apnoea_count,
            "bradycardia_count": self.bradycardia_count,
            "desaturation_count": self.desaturation_count,
            "total": self.total,
            "last_apnoea": iso(self.last_apnoea),
            "last_bradycardia": iso(self.last_bradycardia),
            "last_desaturation": iso(self.last_desaturation),
            "recent_episodes": [e.to_dict() for e in self.recent_episodes],
            "self_resolved_percentage": self.self_resolved_percentage,
            "rate_increasing": self.rate_increasing,
            "requires_review": self.requires_review,
        }


# =============================================================================
# Discharge readiness
# =============================================================================

class ReadinessStatus(str, Enum):
    """Overall discharge readiness."""
    READY = "ready"
    APPROACHING = "approaching"
    NOT_READY = "not_ready"

    @classmethod
    def display_name(cls, value):
        """Get human-readable display name for a readiness status."""
        return {
            cls.READY: "Ready for Discharge",
            cls.APPROACHING: "Approaching Discharge",
            cls.NOT_READY: "Not Ready",
        }.get(value, value)

    @property
    def color(self) -> str:
        return {
            ReadinessStatus.READY: "green",
            ReadinessStatus.APPROACHING: "amber",
            ReadinessStatus.NOT_READY: "red",
        }[self]


@dataclass
class WeightCriterion:
    met: bool
    current_weight_grams: float
    target_weight_grams: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "met": self.met,
            "current_weight_grams": self.current_weight_grams,
            "target_weight_grams": self.target_weight_grams,
        }


@dataclass
class RespiratoryCriterion:
    met: bool
    no_respiratory_support: bool
    current_support: str | None
    episode_free_days: float
    required_episode_free_days: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "met": self.met,
            "no_respiratory_support": self.no_respiratory_support,
            "current_support": self.current_support,
            "episode_free_days": self.episode_free_days,
            "required_episode_free_days": self.required_episode_free_days,
        }


@dataclass
class FeedingCriterion:
    met: bool
    full_oral_feeds: bool
    oral_percentage: float
    target_oral_percentage: float
    ng_tube_removed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "met": self.met,
            "full_oral_feeds": self.full_oral_feeds,
            "oral_percentage": self.oral_percentage,
            "target_oral_percentage": self.target_oral_percentage,
            "ng_tube_removed": self.ng_tube_removed,
        }


@dataclass
class DischargeCriteria:
    """Result of one discharge readiness assessment."""
    id: str
    patient_id: str
    assessed_at: datetime
    weight: WeightCriterion
    respiratory: RespiratoryCriterion
    feeding: FeedingCriterion
    readiness_score: int
    overall_status: ReadinessStatus
    current_blockers: list[str] = field(default_factory=list)

    TOTAL_GATES = 3

    @property
    def gates_met(self) -> int:
        return sum(1 for gate in (self.weight, self.respiratory, self.feeding) if gate.met)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "assessed_at": self.assessed_at.isoformat(),
            "weight": self.weight.to_dict(),
            "respiratory": self.respiratory.to_dict(),
            "feeding": self.feeding.to_dict(),
            "gates_met": self.gates_met,
            "readiness_score": self.readiness_score,
            "overall_status": self.overall_status.value,
            "overall_status_display": ReadinessStatus.display_name(self.overall_status),
            "current_blockers": list(self.current_blockers),
        }


@dataclass
class DischargeReadinessSummary:
    """Compact view of a DischargeCriteria for dashboards."""
    patient_id: str
    gates_met: int
    total_gates: int
    progress: int
    status: ReadinessStatus
    status_color: str
    gate_details: dict[str, dict[str, Any]] = field(default_factory=dict)
    next_milestone: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "gates_met": self.gates_met,
            "total_gates": self.total_gates,
            "progress": self.progress,
            "status": self.status.value,
            "status_color": self.status_color,
            "gate_details": self.gate_details,
            "next_milestone": self.next_milestone,
        }


# =============================================================================
# Line & tube alerts
# =============================================================================

class AlertLevel(str, Enum):
    NONE = "none"
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort key, most severe first."""
        return {
            AlertLevel.CRITICAL: 0,
            AlertLevel.WARNING: 1,
            AlertLevel.INFO: 2,
            AlertLevel.NONE: 3,
        }[self]


@dataclass
class CareAlert:
    id: str
    patient_id: str
    alert_type: str  # line_duration, tube_ph_high, tube_duration
    severity: AlertLevel
    title: str
    message: str
    source_type: str  # line, tube
    source_id: str
    created_at: datetime
    action_required: bool = False
    action_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "alert_type": self.alert_type,
            "severity": self.severity.value,
            "title": self.title,
            "message": self.message,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "created_at": self.created_at.isoformat(),
            "action_required": self.action_required,
            "action_type": self.action_type,
        }


@dataclass
class LineAlertStatus:
    line_id: str
    patient_id: str
    line_type: str
    insertion_site: str
    inserted_at: datetime
    is_active: bool
    days_in_situ: int
    hours_in_situ: int
    alert_level: AlertLevel = AlertLevel.NONE
    alerts: list[CareAlert] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "line_id": self.line_id,
            "patient_id": self.patient_id,
            "line_type": self.line_type,
            "insertion_site": self.insertion_site,
            "inserted_at": self.inserted_at.isoformat(),
            "is_active": self.is_active,
            "days_in_situ": self.days_in_situ,
            "hours_in_situ": self.hours_in_situ,
            "alert_level": self.alert_level.value,
            "alerts": [a.to_dict() for a in self.alerts],
        }


@dataclass
class TubeAlertStatus:
    tube_id: str
    patient_id: str
    tube_type: str
    inserted_at: datetime
    is_active: bool
    days_in_situ: int
    hours_in_situ: int
    last_ph: float | None = None
    last_ph_check: datetime | None = None
    ph_status: str = "unknown"  # safe, warning, critical, unknown
    alert_level: AlertLevel = AlertLevel.NONE
    alerts: list[CareAlert] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tube_id": self.tube_id,
            "patient_id": self.patient_id,
            "tube_type": self.tube_type,
            "inserted_at": self.inserted_at.isoformat(),
            "is_active": self.is_active,
            "days_in_situ": self.days_in_situ,
            "hours_in_situ": self.hours_in_situ,
            "last_ph": self.last_ph,
            "last_ph_check": self.last_ph_check.isoformat() if self.last_ph_check else None,
            "ph_status": self.ph_status,
            "alert_level": self.alert_level.value,
            "alerts": [a.to_dict() for a in self.alerts],
        }


# =============================================================================
# Handover
# =============================================================================

@dataclass
class HandoverSummary:
    """Everything the next shift needs to know about one patient."""
    patient: Patient
    shift: ShiftTimes
    generated_at: datetime
    generated_by: str
    feeding: dict[str, Any] = field(default_factory=dict)
    medications: dict[str, Any] = field(default_factory=dict)
    respiratory: dict[str, Any] = field(default_factory=dict)
    lines_and_tubes: dict[str, Any] = field(default_factory=dict)
    task_summary: dict[str, int] = field(default_factory=dict)
    problems: list[str] = field(default_factory=list)
    tasks: list[str] = field(default_factory=list)
    notes: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient": self.patient.to_dict(),
            "shift": self.shift.to_dict(),
            "generated_at": self.generated_at.isoformat(),
            "generated_by": self.generated_by,
            "feeding": self.feeding,
            "medications": self.medications,
            "respiratory": self.respiratory,
            "lines_and_tubes": self.lines_and_tubes,
            "task_summary": self.task_summary,
            "problems": list(self.problems),
            "tasks": list(self.tasks),
            "notes": self.notes,
        }
