"""Tests for rolling feed compliance and NG removal readiness."""

import sys
from dataclasses import replace
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

# Add repo root and discharge-readiness to path for imports
ROOT = Path(__file__).parent.parent.parent
for path in (ROOT, ROOT / "discharge-readiness"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from common.clinical_data import CarePlan, FeedingPlan, FeedRecord, FeedRoute
from common.unit_config import UnitConfig
from readiness_src.feed_compliance import (
    FeedComplianceService,
    calculate_feed_volume,
    feed_oral_percentage,
    feed_oral_volume,
    used_tube,
)
from readiness_src.models import percentage, round_half_up

END = datetime(2026, 1, 15, 12, 0)


def make_feed(index: int, route: FeedRoute = FeedRoute.ORAL_BOTTLE, volume: float = 36, **overrides) -> FeedRecord:
    """Feed `index` 3-hourly slots before END (0 is the most recent)."""
    fields = dict(
        id=f"feed-{index}",
        patient_id="baby1",
        feed_time=END - timedelta(hours=3 * index),
        route=route,
        actual_volume_ml=volume,
        prescribed_volume_ml=36,
    )
    fields.update(overrides)
    return FeedRecord(**fields)


def oral_day() -> list[FeedRecord]:
    return [make_feed(i) for i in range(8)]


def make_plan() -> CarePlan:
    return CarePlan(
        id="careplan-baby1-v1",
        patient_id="baby1",
        version=1,
        effective_from=datetime(2026, 1, 1),
        feeding_plan=FeedingPlan(frequency_hours=3, volume_per_feed_ml=36),
    )


def test_round_half_up():
    assert round_half_up(33.75) == 34
    assert round_half_up(66.65, 1) == 66.7
    assert round_half_up(2.5) == 3
    assert round_half_up(0.25, 1) == 0.3


def test_percentage_zero_denominator():
    assert percentage(5, 0) == 0
    assert percentage(1, 4) == 25


def test_feed_oral_volume_by_route():
    assert feed_oral_volume(make_feed(0)) == 36
    assert feed_oral_volume(make_feed(0, route=FeedRoute.ORAL_BREAST)) == 36
    assert feed_oral_volume(make_feed(0, route=FeedRoute.NG_TUBE)) == 0
    assert feed_oral_volume(make_feed(0, route=FeedRoute.MIXED, oral_volume_ml=30)) == 30
    # Oral part can never exceed what was given
    assert feed_oral_volume(make_feed(0, route=FeedRoute.MIXED, oral_volume_ml=50)) == 36
    assert feed_oral_volume(make_feed(0, route=FeedRoute.MIXED)) == 0


def test_feed_oral_percentage_and_tube_use():
    assert feed_oral_percentage(make_feed(0, volume=0)) == 0

    top_up = make_feed(0, route=FeedRoute.MIXED, oral_volume_ml=30)
    assert round_half_up(feed_oral_percentage(top_up), 1) == 83.3
    assert used_tube(top_up)

    all_oral_mixed = make_feed(0, route=FeedRoute.MIXED, oral_volume_ml=36)
    assert feed_oral_percentage(all_oral_mixed) == 100
    assert not used_tube(all_oral_mixed)
    assert used_tube(make_feed(0, route=FeedRoute.OG_TUBE))


def test_full_oral_day_is_ready():
    ng = FeedComplianceService().check_ng_removal_readiness("baby1", oral_day(), END)

    assert ng.ready
    assert ng.oral_threshold_met
    assert ng.consecutive_hours_met
    assert ng.zero_top_ups_met
    assert ng.feeds_until_ready == 0
    assert ng.current_consecutive_streak == 8


def test_one_tube_feed_resets_readiness():
    feeds = oral_day()
    feeds[7] = make_feed(7, route=FeedRoute.NG_TUBE)

    ng = FeedComplianceService().check_ng_removal_readiness("baby1", feeds, END)

    assert not ng.ready
    assert not ng.oral_threshold_met
    assert not ng.zero_top_ups_met
    assert ng.current_consecutive_streak == 7
    assert ng.feeds_until_ready == 1


def test_latest_feed_failing_needs_full_run():
    feeds = oral_day()
    feeds[0] = make_feed(0, route=FeedRoute.MIXED, oral_volume_ml=20)

    ng = FeedComplianceService().check_ng_removal_readiness("baby1", feeds, END)

    assert not ng.ready
    assert ng.current_consecutive_streak == 0
    assert ng.feeds_until_ready == 8


def test_too_few_feeds():
    ng = FeedComplianceService().check_ng_removal_readiness("baby1", oral_day()[:5], END)

    assert not ng.ready
    assert ng.feeds_until_ready == 3


def test_no_feeds_is_not_ready():
    ng = FeedComplianceService().check_ng_removal_readiness("baby1", [], END)

    assert not ng.ready
    assert ng.feeds_until_ready == 8


def test_top_ups_allowed_by_config():
    config = UnitConfig()
    config.ng_removal.allow_ng_top_ups = True
    config.ng_removal.oral_percentage_threshold = 80
    feeds = oral_day()
    feeds[3] = make_feed(3, route=FeedRoute.MIXED, oral_volume_ml=30)

    strict = FeedComplianceService().check_ng_removal_readiness("baby1", feeds, END)
    relaxed = FeedComplianceService(config).check_ng_removal_readiness("baby1", feeds, END)

    assert not strict.ready
    assert relaxed.ready


def test_24hr_compliance_full_day():
    compliance = FeedComplianceService().calculate_24hr_compliance("baby1", oral_day(), make_plan(), END)

    assert compliance.window_start == END - timedelta(hours=24)
    assert compliance.window_end == END
    assert compliance.total_feeds_scheduled == 8
    assert compliance.total_feeds_completed == 8
    assert compliance.completion_rate == 100.0
    assert compliance.missed_feeds == 0
    assert compliance.oral_feeds == 8
    assert compliance.ng_feeds == 0
    assert compliance.oral_percentage == 100.0
    assert compliance.volume_compliance.total_prescribed == 288
    assert compliance.volume_compliance.total_actual == 288
    assert compliance.volume_compliance.compliance_rate == 100.0
    assert compliance.ng_removal_readiness.ready
    assert compliance.id.startswith("compliance-baby1-")


def test_24hr_compliance_partial_day():
    feeds = [make_feed(i) for i in range(4)] + [make_feed(i, route=FeedRoute.NG_TUBE) for i in (4, 5)]

    compliance = FeedComplianceService().calculate_24hr_compliance("baby1", feeds, make_plan(), END)

    assert compliance.total_feeds_completed == 6
    assert compliance.completion_rate == 75.0
    assert compliance.missed_feeds == 2
    assert compliance.oral_feeds == 4
    assert compliance.ng_feeds == 2
    assert compliance.oral_percentage == 66.7
    assert compliance.volume_compliance.compliance_rate == 75.0
    assert not compliance.ng_removal_readiness.ready


def test_compliance_window_bounds_and_other_patients():
    feeds = oral_day() + [
        make_feed(9, id="too-old"),
        make_feed(0, id="other-baby", patient_id="baby2", route=FeedRoute.NG_TUBE),
        replace(make_feed(0, id="future"), feed_time=END + timedelta(minutes=1)),
    ]

    compliance = FeedComplianceService().calculate_24hr_compliance("baby1", feeds, make_plan(), END)

    assert compliance.total_feeds_completed == 8
    assert compliance.ng_feeds == 0


def test_zero_volume_feeds_give_zero_percent():
    feeds = [make_feed(i, volume=0) for i in range(8)]

    compliance = FeedComplianceService().calculate_24hr_compliance("baby1", feeds, make_plan(), END)

    assert compliance.oral_percentage == 0
    assert compliance.volume_compliance.compliance_rate == 0
    assert not compliance.ng_removal_readiness.ready


def test_compliance_without_feeding_plan():
    compliance = FeedComplianceService().calculate_24hr_compliance("baby1", [], None, END)

    assert compliance.total_feeds_scheduled == 8
    assert compliance.total_feeds_completed == 0
    assert compliance.completion_rate == 0
    assert compliance.oral_percentage == 0
    assert compliance.volume_compliance.total_prescribed == 0
    assert compliance.volume_compliance.compliance_rate == 0


def test_compliance_rejects_non_positive_frequency():
    service = FeedComplianceService()

    for frequency in (0, -3):
        plan = replace(make_plan(), feeding_plan=FeedingPlan(frequency_hours=frequency, volume_per_feed_ml=36))
        with pytest.raises(ValueError, match="Feed frequency must be positive"):
            service.calculate_24hr_compliance("baby1", oral_day(), plan, END)


def test_calculate_feed_volume():
    assert calculate_feed_volume(1800, 3) == 34
    assert calculate_feed_volume(1000, 2) == 13
    assert calculate_feed_volume(2000, 3, ml_per_kg_per_day=180) == 45
    assert FeedComplianceService().calculate_feed_volume(1800, 3) == 34

    with pytest.raises(ValueError):
        calculate_feed_volume(1800, 0)


def test_weigh_days():
    service = FeedComplianceService()

    # 2026-01-14 is a Wednesday
    assert service.is_weigh_day(date(2026, 1, 14))
    assert not service.is_weigh_day(date(2026, 1, 15))
    assert service.next_weigh_day(date(2026, 1, 14)) == date(2026, 1, 17)
    assert service.next_weigh_day(date(2026, 1, 17)) == date(2026, 1, 21)
