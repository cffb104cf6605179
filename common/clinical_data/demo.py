"""In-memory demo clinical data.

Two babies anchored on a reference time so that the same anchor always
produces the same records:

- daisy: 32+0 week baby approaching discharge, fully oral, room air
- elsa: 27+3 week baby on CPAP, NG fed 2-hourly, frequent episodes
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .models import (
    CarePlan,
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
    ObservationPlan,
    Patient,
    PrescriptionStatus,
    PositionChanges,
    ProceduralPlan,
    RespiratoryMode,
    RespiratoryPlan,
    SkinAssessments,
    TubeCare,
    TubeCheck,
    TubeRecord,
    select_active_care_plan,
)


@dataclass
class DemoClinicalData:
    """Read-only access to the demo records, keyed by patient id."""
    patients: list[Patient] = field(default_factory=list)
    care_plans: list[CarePlan] = field(default_factory=list)
    prescriptions: list[MedicationPrescription] = field(default_factory=list)
    feeds: list[FeedRecord] = field(default_factory=list)
    episodes: list[Episode] = field(default_factory=list)
    lines: list[LineRecord] = field(default_factory=list)
    tubes: list[TubeRecord] = field(default_factory=list)

    def get_patient(self, patient_id: str) -> Patient | None:
        for patient in self.patients:
            if patient.id == patient_id:
                return patient
        return None

    def active_care_plan(self, patient_id: str) -> CarePlan | None:
        return select_active_care_plan(self.care_plans, patient_id)

    def prescriptions_for(self, patient_id: str) -> list[MedicationPrescription]:
        return [p for p in self.prescriptions if p.patient_id == patient_id]

    def feeds_for(self, patient_id: str) -> list[FeedRecord]:
        return [f for f in self.feeds if f.patient_id == patient_id]

    def episodes_for(self, patient_id: str) -> list[Episode]:
        return [e for e in self.episodes if e.patient_id == patient_id]

    def lines_for(self, patient_id: str) -> list[LineRecord]:
        return [line for line in self.lines if line.patient_id == patient_id]

    def tubes_for(self, patient_id: str) -> list[TubeRecord]:
        return [t for t in self.tubes if t.patient_id == patient_id]


def _recent_feeds(
    patient_id: str,
    now: datetime,
    frequency_hours: int,
    count: int,
    route: FeedRoute,
    volume_ml: float,
    feed_type: FeedType,
) -> list[FeedRecord]:
    feeds = []
    for i in range(count):
        feed_time = now - timedelta(hours=frequency_hours * (i + 1) - 1)
        feeds.append(FeedRecord(
            id=f"feed-{patient_id}-{feed_time:%Y%m%dT%H%M}",
            patient_id=patient_id,
            feed_time=feed_time,
            route=route,
            actual_volume_ml=volume_ml,
            prescribed_volume_ml=volume_ml,
            feed_type=feed_type,
            recorded_by="sarah-nurse",
        ))
    return list(reversed(feeds))


def build_demo_data(now: datetime | None = None) -> DemoClinicalData:
    """Build the demo data set anchored on `now` (defaults to the current hour)."""
    if now is None:
        now = datetime.now().replace(minute=0, second=0, microsecond=0)
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)

    daisy = Patient(
        id="daisy",
        name="Daisy Thompson",
        mrn="NICU-1001",
        bed_number="SC-3",
        date_of_birth=today - timedelta(days=34),
        gestation_at_birth_weeks=32,
        gestation_at_birth_days=0,
        birth_weight_grams=1520,
        current_weight_grams=1900,
        respiratory_support=None,
    )
    elsa = Patient(
        id="elsa",
        name="Elsa Okafor",
        mrn="NICU-1002",
        bed_number="IC-1",
        date_of_birth=today - timedelta(days=11),
        gestation_at_birth_weeks=27,
        gestation_at_birth_days=3,
        birth_weight_grams=940,
        current_weight_grams=980,
        respiratory_support=RespiratoryMode.CPAP.value,
    )

    daisy_plan = CarePlan(
        id="careplan-daisy-v3",
        patient_id="daisy",
        version=3,
        supersedes="careplan-daisy-v2",
        effective_from=today - timedelta(days=2),
        prescribed_by="dr-patel",
        feeding_plan=FeedingPlan(
            frequency_hours=3,
            volume_per_feed_ml=36,
            feed_type=FeedType.FORTIFIED_EBM,
            route=FeedRoute.ORAL_BOTTLE,
            fortification="1 scoop per 50ml",
        ),
        medication_plan=MedicationPlan(prescription_ids=("rx-daisy-vitd", "rx-daisy-iron")),
        observation_plan=ObservationPlan(frequency="6-hourly"),
        respiratory_plan=RespiratoryPlan(mode=RespiratoryMode.ROOM_AIR),
        procedural_plan=ProceduralPlan(
            skin_assessments=SkinAssessments(frequency_hours=12),
        ),
        developmental_plan=DevelopmentalPlan(kangaroo_care=True),
    )
    elsa_plan = CarePlan(
        id="careplan-elsa-v1",
        patient_id="elsa",
        version=1,
        effective_from=today - timedelta(days=1),
        prescribed_by="dr-patel",
        feeding_plan=FeedingPlan(
            frequency_hours=2,
            volume_per_feed_ml=12,
            feed_type=FeedType.EBM,
            route=FeedRoute.NG_TUBE,
            aspirate_before_feed=True,
        ),
        medication_plan=MedicationPlan(prescription_ids=("rx-elsa-caffeine", "rx-elsa-gent")),
        observation_plan=ObservationPlan(frequency="hourly"),
        respiratory_plan=RespiratoryPlan(mode=RespiratoryMode.CPAP, fio2_target=0.25),
        procedural_plan=ProceduralPlan(
            line_care=LineCare(line_ids=("line-elsa-picc",), flush_frequency_hours=6),
            tube_care=TubeCare(tube_ids=("tube-elsa-ng",), position_check_hours=4),
            position_changes=PositionChanges(frequency_hours=4),
            skin_assessments=SkinAssessments(frequency_hours=8),
        ),
        developmental_plan=DevelopmentalPlan(minimum_handling=True, clustered_care=True),
    )

    prescriptions = [
        MedicationPrescription(
            id="rx-daisy-vitd",
            patient_id="daisy",
            medication_name="Vitamin D (Abidec)",
            dose_amount=0.3,
            dose_unit="ml",
            route="oral",
            frequency="once daily",
            timings=["10:00"],
            start_date=today - timedelta(days=20),
            can_be_given_in_feed=True,
        ),
        MedicationPrescription(
            id="rx-daisy-iron",
            patient_id="daisy",
            medication_name="Sodium feredetate (Sytron)",
            dose_amount=0.5,
            dose_unit="ml",
            route="oral",
            frequency="twice daily",
            timings=["09:00", "21:00"],
            start_date=today - timedelta(days=6),
            must_be_given_separately=True,
        ),
        MedicationPrescription(
            id="rx-elsa-caffeine",
            patient_id="elsa",
            medication_name="Caffeine citrate",
            dose_amount=5,
            dose_unit="mg",
            route="NG",
            frequency="once daily",
            timings=["08:00"],
            start_date=today - timedelta(days=10),
            indication="Apnoea of prematurity",
            can_be_given_in_feed=True,
        ),
        MedicationPrescription(
            id="rx-elsa-gent",
            patient_id="elsa",
            medication_name="Gentamicin",
            dose_amount=4.5,
            dose_unit="mg",
            route="IV",
            frequency="36-hourly",
            timings=["14:00"],
            start_date=today - timedelta(days=1),
            end_date=today + timedelta(days=4),
            indication="Suspected late-onset sepsis",
            must_be_given_separately=True,
        ),
        MedicationPrescription(
            id="rx-elsa-morphine",
            patient_id="elsa",
            medication_name="Morphine",
            dose_amount=10,
            dose_unit="microgram/kg/hr",
            route="IV",
            frequency="continuous",
            timings=["00:00"],
            start_date=today - timedelta(days=1),
            controlled_drug=True,
            status=PrescriptionStatus.PENDING_APPROVAL,
        ),
    ]

    feeds = _recent_feeds("daisy", now, 3, 8, FeedRoute.ORAL_BOTTLE, 36, FeedType.FORTIFIED_EBM)
    feeds += _recent_feeds("elsa", now, 2, 12, FeedRoute.NG_TUBE, 12, FeedType.EBM)

    episodes = [
        Episode(
            id=f"episode-elsa-{i}",
            patient_id="elsa",
            occurred_at=now - timedelta(hours=hours_ago),
            episode_type=episode_type,
            duration_seconds=duration,
            self_resolved=self_resolved,
            interventions=interventions,
            respiratory_support="CPAP 6 @ 25%",
            recorded_by="sarah-nurse",
        )
        for i, (hours_ago, episode_type, duration, self_resolved, interventions) in enumerate([
            (1, EpisodeType.BRADYCARDIA, 12, True, []),
            (3, EpisodeType.DESATURATION, 20, False, ["increased_oxygen"]),
            (5, EpisodeType.APNOEA, 22, False, ["gentle_stimulation"]),
            (9, EpisodeType.BRADYCARDIA, 8, True, []),
            (14, EpisodeType.APNOEA, 25, False, ["vigorous_stimulation", "increased_oxygen"]),
            (26, EpisodeType.DESATURATION, 15, True, []),
        ])
    ]
    # Daisy's last episode was over a week ago
    episodes.append(Episode(
        id="episode-daisy-0",
        patient_id="daisy",
        occurred_at=today - timedelta(days=8, hours=-3),
        episode_type=EpisodeType.BRADYCARDIA,
        duration_seconds=6,
        self_resolved=True,
    ))

    lines = [
        LineRecord(
            id="line-elsa-picc",
            patient_id="elsa",
            line_type="PICC",
            insertion_site="Left saphenous",
            inserted_at=now - timedelta(days=11),
        ),
        LineRecord(
            id="line-elsa-piv",
            patient_id="elsa",
            line_type="peripheral_IV",
            insertion_site="Right hand",
            inserted_at=now - timedelta(hours=50),
        ),
    ]
    tubes = [
        TubeRecord(
            id="tube-elsa-ng",
            patient_id="elsa",
            tube_type="NG",
            inserted_at=now - timedelta(days=2),
            size_fr=6,
            checks=[
                TubeCheck(checked_at=now - timedelta(hours=6), ph=4.5, checked_by="sarah-nurse"),
                TubeCheck(checked_at=now - timedelta(hours=2), ph=5.5, checked_by="sarah-nurse"),
            ],
        ),
    ]

    return DemoClinicalData(
        patients=[daisy, elsa],
        care_plans=[daisy_plan, elsa_plan],
        prescriptions=prescriptions,
        feeds=feeds,
        episodes=episodes,
        lines=lines,
        tubes=tubes,
    )
