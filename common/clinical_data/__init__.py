"""Clinical input models and the demo data provider."""

from .models import (
    CarePlan,
    CarePlanStatus,
    DevelopmentalPlan,
    Episode,
    EpisodeType,
    FeedingPlan,
    FeedRecord,
    FeedRoute,
    FeedType,
    LineCare,
    LineRecord,
    MedicationPlan,
    MedicationPrescription,
    OBSERVATION_INTERVAL_HOURS,
    ObservationPlan,
    Patient,
    PositionChanges,
    PrescriptionStatus,
    ProceduralPlan,
    RespiratoryMode,
    RespiratoryPlan,
    SkinAssessments,
    TubeCare,
    TubeCheck,
    TubeRecord,
    hours_between,
    select_active_care_plan,
)
from .demo import DemoClinicalData, build_demo_data

__all__ = [
    "CarePlan",
    "CarePlanStatus",
    "DemoClinicalData",
    "DevelopmentalPlan",
    "Episode",
    "EpisodeType",
    "FeedingPlan",
    "FeedRecord",
    "FeedRoute",
    "FeedType",
    "LineCare",
    "LineRecord",
    "MedicationPlan",
    "MedicationPrescription",
    "OBSERVATION_INTERVAL_HOURS",
    "ObservationPlan",
    "Patient",
    "PositionChanges",
    "PrescriptionStatus",
    "ProceduralPlan",
    "RespiratoryMode",
    "RespiratoryPlan",
    "SkinAssessments",
    "TubeCare",
    "TubeCheck",
    "TubeRecord",
    "build_demo_data",
    "hours_between",
    "select_active_care_plan",
]
