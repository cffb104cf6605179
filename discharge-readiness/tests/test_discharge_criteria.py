"""Tests for the three-gate discharge readiness assessment."""

import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add repo root and discharge-readiness to path for imports
ROOT = Path(__file__).parent.parent.parent
for path in (ROOT, ROOT / "discharge-readiness"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from common.clinical_data import (
    CarePlan,
    Episode,
    EpisodeType,
    FeedingPlan,
    FeedRecord,
    FeedRoute,
    Patient,
    RespiratoryMode,
)
from readiness_src.discharge_criteria import DischargeCriteriaService, has_respiratory_support
from readiness_src.episode_counter import EpisodeCounterService
from readiness_src.feed_compliance import FeedComplianceService
from readiness_src.models import ReadinessStatus

NOW = datetime(2026, 1, 20, 8, 0)


def make_patient() -> Patient:
    return Patient(
        id="baby1",
        name="Baby One",
        date_of_birth=datetime(2025, 12, 1),
        gestation_at_birth_weeks=32,
        birth_weight_grams=1500,
    )


def make_compliance(route: FeedRoute = FeedRoute.ORAL_BOTTLE):
    plan = CarePlan(
        id="careplan-baby1-v1",
        patient_id="baby1",
        version=1,
        effective_from=datetime(2026, 1, 1),
        feeding_plan=FeedingPlan(frequency_hours=3, volume_per_feed_ml=36),
    )
    feeds = [
        FeedRecord(
            id=f"feed-{i}",
            patient_id="baby1",
            feed_time=NOW - timedelta(hours=3 * i),
            route=route,
            actual_volume_ml=36,
            prescribed_volume_ml=36,
        )
        for i in range(8)
    ]
    return FeedComplianceService().calculate_24hr_compliance("baby1", feeds, plan, NOW)


def shift_logs(episode_free_shifts: int, episodes_before: bool = True):
    """Logs covering the last week, with the given number of empty shifts at the end."""
    counter = EpisodeCounterService()
    period_start = NOW - timedelta(days=7)
    all_logs = counter.build_shift_logs("baby1", [], period_start, NOW)

    if episodes_before and episode_free_shifts < len(all_logs):
        eventful = all_logs[-episode_free_shifts - 1]
        episode = Episode(
            id="ep-1",
            patient_id="baby1",
            occurred_at=eventful.shift_start + timedelta(hours=1),
            episode_type=EpisodeType.BRADYCARDIA,
        )
        all_logs = counter.build_shift_logs("baby1", [episode], period_start, NOW)
    return all_logs


def assess(weight=1900, support=None, compliance=None, logs=None):
    service = DischargeCriteriaService()
    criteria = service.assess_readiness(
        make_patient(),
        weight,
        compliance or make_compliance(),
        logs if logs is not None else shift_logs(12),
        current_respiratory_support=support,
        assessed_at=NOW,
    )
    return service, criteria


def test_has_respiratory_support():
    assert not has_respiratory_support(None)
    assert not has_respiratory_support("")
    assert not has_respiratory_support("room_air")
    assert not has_respiratory_support(RespiratoryMode.ROOM_AIR)
    assert has_respiratory_support("CPAP")
    assert has_respiratory_support(RespiratoryMode.NASAL_CANNULA)


def test_all_gates_met():
    service, criteria = assess()

    assert criteria.weight.met
    assert criteria.respiratory.met
    assert criteria.respiratory.episode_free_days == 6
    assert criteria.feeding.met
    assert criteria.gates_met == 3
    assert criteria.readiness_score == 100
    assert criteria.overall_status == ReadinessStatus.READY
    assert criteria.current_blockers == []

    summary = service.generate_summary(criteria)
    assert summary.status_color == "green"
    assert summary.next_milestone is None
    assert summary.gate_details["weight"]["detail"] == "1900g / 1800g"
    assert summary.gate_details["respiratory"]["detail"] == "6 / 5 days"
    assert summary.gate_details["feeding"]["detail"] == "100% oral"


def test_respiratory_support_blocks():
    service, criteria = assess(support="CPAP")

    assert not criteria.respiratory.met
    assert criteria.readiness_score == 67
    assert criteria.overall_status == ReadinessStatus.APPROACHING
    assert criteria.current_blockers == ["On respiratory support (CPAP)"]

    summary = service.generate_summary(criteria)
    assert summary.status_color == "amber"
    assert summary.progress == 67
    assert summary.next_milestone == "Wean from CPAP"


def test_room_air_counts_as_no_support():
    _, criteria = assess(support="room_air")

    assert criteria.respiratory.no_respiratory_support
    assert criteria.overall_status == ReadinessStatus.READY


def test_weight_and_feeding_blockers():
    service, criteria = assess(weight=1700, support="CPAP", compliance=make_compliance(FeedRoute.NG_TUBE))

    assert criteria.gates_met == 0
    assert criteria.readiness_score == 0
    assert criteria.overall_status == ReadinessStatus.NOT_READY
    assert criteria.current_blockers == [
        "Weight 1700g below 1800g",
        "On respiratory support (CPAP)",
        "Oral intake 0% below 100%",
        "NG tube removal criteria not met",
    ]

    summary = service.generate_summary(criteria)
    assert summary.status_color == "red"
    assert summary.next_milestone == "Reach 1800g"


def test_one_gate_is_not_ready():
    _, criteria = assess(weight=1700, support="CPAP")

    assert criteria.gates_met == 1
    assert criteria.readiness_score == 33
    assert criteria.overall_status == ReadinessStatus.NOT_READY


def test_too_few_episode_free_days():
    service, criteria = assess(logs=shift_logs(7))

    assert criteria.respiratory.episode_free_days == 3.5
    assert not criteria.respiratory.met
    assert criteria.current_blockers == ["Episode free for 3.5 of 5 days"]
    assert service.generate_summary(criteria).next_milestone == "5 episode-free days"


def test_weight_on_threshold_meets_gate():
    _, criteria = assess(weight=1800)

    assert criteria.weight.met


def test_reassessment_downgrades():
    _, ready = assess()
    _, after_episode = assess(logs=shift_logs(0))

    assert ready.overall_status == ReadinessStatus.READY
    assert after_episode.respiratory.episode_free_days == 0
    assert after_episode.overall_status == ReadinessStatus.APPROACHING


def test_criteria_to_dict():
    _, criteria = assess(support="CPAP")
    data = criteria.to_dict()

    assert data["patient_id"] == "baby1"
    assert data["gates_met"] == 2
    assert data["overall_status"] == "approaching"
    assert data["overall_status_display"] == "Approaching Discharge"
    assert data["assessed_at"] == NOW.isoformat()
