"""Clinical input models: patients, care plans, prescriptions and charted records.

These are the read-only inputs to task generation and the compliance
calculators. Care plans are immutable; an edit produces a new version.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any


class CarePlanStatus(str, Enum):
    """Care plan lifecycle."""
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    SUSPENDED = "suspended"
    COMPLETED = "completed"


class PrescriptionStatus(str, Enum):
    """Prescription approval workflow."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    DISCONTINUED = "discontinued"

    @classmethod
    def display_name(cls, value):
        """Get human-readable display name for a status."""
        return {
            cls.DRAFT: "Draft",
            cls.PENDING_APPROVAL: "Pending Approval",
            cls.APPROVED: "Approved",
            cls.DISCONTINUED: "Discontinued",
        }.get(value, value)


class FeedType(str, Enum):
    EBM = "EBM"
    FORMULA = "formula"
    FORTIFIED_EBM = "fortified_EBM"
    FORTIFIED_FORMULA = "fortified_formula"
    TPN = "TPN"
    MIXED = "mixed"


class FeedRoute(str, Enum):
    """How a feed is given."""
    ORAL_BOTTLE = "oral_bottle"
    ORAL_BREAST = "oral_breast"
    NG_TUBE = "NG_tube"
    OG_TUBE = "OG_tube"
    IV = "IV"
    MIXED = "mixed"  # oral attempt with tube top-up

    @property
    def is_oral(self) -> bool:
        return self in (FeedRoute.ORAL_BOTTLE, FeedRoute.ORAL_BREAST)

    @property
    def is_tube(self) -> bool:
        return self in (FeedRoute.NG_TUBE, FeedRoute.OG_TUBE)


class RespiratoryMode(str, Enum):
    IPPV = "IPPV"
    SIMV = "SIMV"
    CPAP = "CPAP"
    HFOV = "HFOV"
    NASAL_CANNULA = "nasal_cannula"
    ROOM_AIR = "room_air"


class EpisodeType(str, Enum):
    """Apnoea / bradycardia / desaturation."""
    APNOEA = "apnoea"
    BRADYCARDIA = "bradycardia"
    DESATURATION = "desaturation"


# Observation cadence name -> hours between checks
OBSERVATION_INTERVAL_HOURS: dict[str, int] = {
    "continuous": 1,
    "hourly": 1,
    "2-hourly": 2,
    "4-hourly": 4,
    "6-hourly": 6,
}


@dataclass
class Patient:
    """A baby on the unit."""
    id: str
    name: str
    date_of_birth: datetime
    gestation_at_birth_weeks: int
    gestation_at_birth_days: int = 0
    birth_weight_grams: float = 0
    current_weight_grams: float = 0
    bed_number: str | None = None
    mrn: str | None = None
    respiratory_support: str | None = None  # None or "room_air" means unsupported

    def day_of_life(self, on: datetime) -> int:
        """Day of life where the date of birth is day 1."""
        return (on.date() - self.date_of_birth.date()).days + 1

    def corrected_gestational_age(self, on: datetime) -> tuple[int, int]:
        """Corrected gestational age as (weeks, days)."""
        total_days = (
            self.gestation_at_birth_weeks * 7
            + self.gestation_at_birth_days
            + (on.date() - self.date_of_birth.date()).days
        )
        return total_days // 7, total_days % 7

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mrn": self.mrn,
            "bed_number": self.bed_number,
            "date_of_birth": self.date_of_birth.isoformat(),
            "gestation_at_birth": f"{self.gestation_at_birth_weeks}+{self.gestation_at_birth_days}",
            "birth_weight_grams": self.birth_weight_grams,
            "current_weight_grams": self.current_weight_grams,
            "respiratory_support": self.respiratory_support,
        }


# =============================================================================
# Care plan sub-plans
# =============================================================================

@dataclass(frozen=True)
class FeedingPlan:
    frequency_hours: float
    volume_per_feed_ml: float
    feed_type: FeedType = FeedType.EBM
    route: FeedRoute = FeedRoute.NG_TUBE
    aspirate_before_feed: bool = False
    fortification: str | None = None


@dataclass(frozen=True)
class MedicationPlan:
    prescription_ids: tuple[str, ...] = ()
    administration_guidelines: str | None = None


@dataclass(frozen=True)
class ObservationPlan:
    frequency: str = "4-hourly"
    parameters: tuple[str, ...] = (
        "temperature", "heart_rate", "respiratory_rate", "oxygen_saturation",
    )

    @property
    def interval_hours(self) -> int:
        try:
            return OBSERVATION_INTERVAL_HOURS[self.frequency]
        except KeyError:
            raise ValueError(f"Unknown observation frequency: {self.frequency}") from None


@dataclass(frozen=True)
class RespiratoryPlan:
    mode: RespiratoryMode = RespiratoryMode.ROOM_AIR
    fio2_target: float | None = None
    assessment_frequency: str = "4-hourly"


@dataclass(frozen=True)
class LineCare:
    line_ids: tuple[str, ...]
    flush_frequency_hours: float
    dressing_change_days: int = 7


@dataclass(frozen=True)
class TubeCare:
    tube_ids: tuple[str, ...]
    position_check_hours: float


@dataclass(frozen=True)
class PositionChanges:
    frequency_hours: float
    positions: tuple[str, ...] = ("supine", "left lateral", "prone", "right lateral")


@dataclass(frozen=True)
class SkinAssessments:
    frequency_hours: float


@dataclass(frozen=True)
class ProceduralPlan:
    line_care: LineCare | None = None
    tube_care: TubeCare | None = None
    position_changes: PositionChanges | None = None
    skin_assessments: SkinAssessments | None = None


@dataclass(frozen=True)
class DevelopmentalPlan:
    kangaroo_care: bool = False
    minimum_handling: bool = False
    clustered_care: bool = True


@dataclass(frozen=True)
class CarePlan:
    """A versioned ward-round care plan for one patient."""
    id: str
    patient_id: str
    version: int
    effective_from: datetime
    status: CarePlanStatus = CarePlanStatus.ACTIVE
    supersedes: str | None = None
    prescribed_by: str | None = None

    feeding_plan: FeedingPlan | None = None
    medication_plan: MedicationPlan | None = None
    observation_plan: ObservationPlan | None = None
    respiratory_plan: RespiratoryPlan | None = None
    procedural_plan: ProceduralPlan | None = None
    developmental_plan: DevelopmentalPlan | None = None

    @property
    def is_active(self) -> bool:
        return self.status == CarePlanStatus.ACTIVE

    def revise(self, new_id: str | None = None, **changes) -> tuple["CarePlan", "CarePlan"]:
        """Produce the next version of this plan.

        Args:
            new_id: Id for the new version (defaults to "<id>-v<version>")
            **changes: Fields to change on the new version

        Returns:
            (new active plan, this plan marked superseded)
        """
        next_version = self.version + 1
        base, sep, suffix = self.id.rpartition("-v")
        if not (sep and suffix.isdigit()):
            base = self.id
        revised = replace(
            self,
            id=new_id or f"{base}-v{next_version}",
            version=next_version,
            supersedes=self.id,
            status=CarePlanStatus.ACTIVE,
            **changes,
        )
        superseded = replace(self, status=CarePlanStatus.SUPERSEDED)
        return revised, superseded

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "version": self.version,
            "status": self.status.value,
            "supersedes": self.supersedes,
            "effective_from": self.effective_from.isoformat(),
            "has_feeding_plan": self.feeding_plan is not None,
            "has_observation_plan": self.observation_plan is not None,
            "has_procedural_plan": self.procedural_plan is not None,
        }


def select_active_care_plan(care_plans: list[CarePlan], patient_id: str) -> CarePlan | None:
    """Return the single active care plan for a patient, or None.

    If more than one plan is marked active the highest version wins.
    """
    active = [
        cp for cp in care_plans
        if cp.patient_id == patient_id and cp.status == CarePlanStatus.ACTIVE
    ]
    if not active:
        return None
    return max(active, key=lambda cp: cp.version)


# =============================================================================
# Prescriptions and charted records
# =============================================================================

@dataclass
class MedicationPrescription:
    """One ordered medication with explicit clock timings."""
    id: str
    patient_id: str
    medication_name: str
    dose_amount: float
    dose_unit: str
    route: str
    frequency: str
    timings: list[str]  # "HH:MM"
    start_date: datetime
    end_date: datetime | None = None
    indication: str | None = None
    can_be_given_in_feed: bool = False
    must_be_given_separately: bool = False
    is_prn: bool = False
    controlled_drug: bool = False
    status: PrescriptionStatus = PrescriptionStatus.APPROVED

    @property
    def is_approved(self) -> bool:
        return self.status == PrescriptionStatus.APPROVED

    @property
    def may_be_mixed_with_feed(self) -> bool:
        return self.can_be_given_in_feed and not self.must_be_given_separately

    def is_valid_at(self, when: datetime) -> bool:
        if when < self.start_date:
            return False
        return self.end_date is None or when <= self.end_date

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "medication_name": self.medication_name,
            "dose": f"{self.dose_amount:g} {self.dose_unit}",
            "route": self.route,
            "frequency": self.frequency,
            "timings": list(self.timings),
            "status": self.status.value,
            "status_display": PrescriptionStatus.display_name(self.status),
            "can_be_given_in_feed": self.can_be_given_in_feed,
            "must_be_given_separately": self.must_be_given_separately,
        }


@dataclass
class FeedRecord:
    """A charted feed."""
    id: str
    patient_id: str
    feed_time: datetime
    route: FeedRoute
    actual_volume_ml: float
    prescribed_volume_ml: float = 0
    oral_volume_ml: float | None = None  # only meaningful for mixed-route feeds
    feed_type: FeedType = FeedType.EBM
    recorded_by: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "feed_time": self.feed_time.isoformat(),
            "route": self.route.value,
            "actual_volume_ml": self.actual_volume_ml,
            "prescribed_volume_ml": self.prescribed_volume_ml,
            "oral_volume_ml": self.oral_volume_ml,
            "feed_type": self.feed_type.value,
        }


@dataclass
class Episode:
    """A single apnoea, bradycardia or desaturation event."""
    id: str
    patient_id: str
    occurred_at: datetime
    episode_type: EpisodeType
    severity: str = "moderate"
    duration_seconds: int | None = None
    lowest_value: int | None = None  # lowest HR or SpO2
    self_resolved: bool = True
    interventions: list[str] = field(default_factory=list)
    respiratory_support: str | None = None
    recorded_by: str | None = None

    @property
    def intervention_required(self) -> bool:
        return not self.self_resolved

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "occurred_at": self.occurred_at.isoformat(),
            "episode_type": self.episode_type.value,
            "severity": self.severity,
            "duration_seconds": self.duration_seconds,
            "lowest_value": self.lowest_value,
            "self_resolved": self.self_resolved,
            "interventions": list(self.interventions),
        }


@dataclass
class LineRecord:
    """A peripheral or central vascular line."""
    id: str
    patient_id: str
    line_type: str  # peripheral_IV, PICC, UAC, UVC, long_line, femoral_line
    insertion_site: str
    inserted_at: datetime
    is_active: bool = True
    removed_at: datetime | None = None


@dataclass
class TubeCheck:
    checked_at: datetime
    ph: float | None = None
    checked_by: str | None = None


@dataclass
class TubeRecord:
    """A nasogastric or orogastric tube."""
    id: str
    patient_id: str
    tube_type: str  # NG, OG
    inserted_at: datetime
    size_fr: int | None = None
    is_active: bool = True
    checks: list[TubeCheck] = field(default_factory=list)

    @property
    def last_check(self) -> TubeCheck | None:
        if not self.checks:
            return None
        return max(self.checks, key=lambda c: c.checked_at)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start) / timedelta(hours=1)
