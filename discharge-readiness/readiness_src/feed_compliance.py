"""Rolling feed compliance and NG tube removal readiness.

Pure calculations over charted feeds. Missing data never raises: an empty
window gives zero counts, 0% and a not-ready NG assessment. A non-positive
feed frequency is a configuration error and raises ValueError.
"""

import logging
import math
from datetime import date, datetime, timedelta

from common.clinical_data import CarePlan, FeedRecord, FeedRoute
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .models import (
    FeedingCompliance,
    NGRemovalReadiness,
    VolumeCompliance,
    percentage,
    round_half_up,
)

logger = logging.getLogger(__name__)

COMPLIANCE_WINDOW_HOURS = 24

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def feed_oral_volume(feed: FeedRecord) -> float:
    """Volume of a feed taken by mouth.

    Mixed-route feeds carry the oral part explicitly; oral routes count
    the whole volume; tube and IV feeds count nothing.
    """
    if feed.route == FeedRoute.MIXED:
        return min(feed.oral_volume_ml or 0, feed.actual_volume_ml)
    if feed.route.is_oral:
        return feed.actual_volume_ml
    return 0


def feed_oral_percentage(feed: FeedRecord) -> float:
    """Oral share of a single feed, 0 when nothing was given."""
    return percentage(feed_oral_volume(feed), feed.actual_volume_ml)


def used_tube(feed: FeedRecord) -> bool:
    """True when any of the feed went down a tube."""
    if feed.route.is_tube:
        return True
    return feed.route == FeedRoute.MIXED and feed_oral_volume(feed) < feed.actual_volume_ml


def _feeds_in_window(feeds: list[FeedRecord], patient_id: str, start: datetime, end: datetime) -> list[FeedRecord]:
    window = [f for f in feeds if f.patient_id == patient_id and start <= f.feed_time <= end]
    return sorted(window, key=lambda f: f.feed_time)


class FeedComplianceService:
    """Feed tracking calculations for one unit's thresholds."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG):
        self.config = config

    def calculate_24hr_compliance(
        self,
        patient_id: str,
        feeds: list[FeedRecord],
        care_plan: CarePlan | None,
        end_time: datetime,
    ) -> FeedingCompliance:
        """Compliance over the 24 hours ending at end_time (inclusive both ends).

        Args:
            patient_id: Patient to evaluate
            feeds: Charted feeds (other patients' feeds are ignored)
            care_plan: Active care plan; without a feeding plan the unit's
                default frequency is used and prescribed volume is 0
            end_time: End of the window

        Returns:
            FeedingCompliance with embedded NG removal readiness
        """
        window_start = end_time - timedelta(hours=COMPLIANCE_WINDOW_HOURS)
        window_feeds = _feeds_in_window(feeds, patient_id, window_start, end_time)

        feeding_plan = care_plan.feeding_plan if care_plan else None
        frequency = feeding_plan.frequency_hours if feeding_plan else self.config.feeding.default_frequency_hours
        if frequency is None or frequency <= 0:
            raise ValueError(f"Feed frequency must be positive, got {frequency} for patient {patient_id}")
        scheduled = math.floor(COMPLIANCE_WINDOW_HOURS / frequency)

        oral_feeds = [f for f in window_feeds if f.route.is_oral]
        ng_feeds = [f for f in window_feeds if f.route.is_tube]

        volume_per_feed = feeding_plan.volume_per_feed_ml if feeding_plan else 0
        total_prescribed = scheduled * volume_per_feed
        total_actual = sum(f.actual_volume_ml for f in window_feeds)
        oral_volume = sum(feed_oral_volume(f) for f in window_feeds)

        compliance = FeedingCompliance(
            id=f"compliance-{patient_id}-{int(end_time.timestamp() * 1000)}",
            patient_id=patient_id,
            calculated_at=end_time,
            window_start=window_start,
            window_end=end_time,
            window_hours=COMPLIANCE_WINDOW_HOURS,
            total_feeds_scheduled=scheduled,
            total_feeds_completed=len(window_feeds),
            completion_rate=round_half_up(percentage(len(window_feeds), scheduled), 1),
            missed_feeds=max(scheduled - len(window_feeds), 0),
            oral_feeds=len(oral_feeds),
            ng_feeds=len(ng_feeds),
            oral_percentage=round_half_up(percentage(oral_volume, total_actual), 1),
            volume_compliance=VolumeCompliance(
                total_prescribed=total_prescribed,
                total_actual=total_actual,
                compliance_rate=round_half_up(percentage(total_actual, total_prescribed), 1),
            ),
            ng_removal_readiness=self.check_ng_removal_readiness(patient_id, feeds, end_time),
        )

        logger.debug(
            f"Compliance for {patient_id}: {compliance.total_feeds_completed}/{scheduled} feeds, "
            f"{compliance.oral_percentage}% oral"
        )
        return compliance

    def check_ng_removal_readiness(
        self,
        patient_id: str,
        feeds: list[FeedRecord],
        end_time: datetime,
    ) -> NGRemovalReadiness:
        """All-or-nothing check of the trailing window.

        Every feed in the last `consecutive_hours` must reach the oral
        threshold, there must be at least `minimum_consecutive_feeds` of
        them, and when top-ups are disallowed none may use a tube. One
        failing feed anywhere in the window makes the whole window not ready.
        """
        criteria = self.config.ng_removal
        minimum = criteria.minimum_consecutive_feeds
        window_start = end_time - timedelta(hours=criteria.consecutive_hours)
        recent = _feeds_in_window(feeds, patient_id, window_start, end_time)

        if len(recent) < minimum:
            return NGRemovalReadiness(feeds_until_ready=minimum - len(recent))

        passing = [feed_oral_percentage(f) >= criteria.oral_percentage_threshold for f in recent]

        streak = 0
        for passed in reversed(passing):
            if not passed:
                break
            streak += 1

        oral_threshold_met = all(passing)
        consecutive_hours_met = len(recent) >= minimum
        zero_top_ups_met = criteria.allow_ng_top_ups or not any(used_tube(f) for f in recent)
        ready = oral_threshold_met and consecutive_hours_met and zero_top_ups_met

        if ready:
            logger.info(f"Patient {patient_id} meets NG removal criteria ({len(recent)} feeds)")

        return NGRemovalReadiness(
            oral_threshold_met=oral_threshold_met,
            consecutive_hours_met=consecutive_hours_met,
            zero_top_ups_met=zero_top_ups_met,
            ready=ready,
            feeds_until_ready=0 if ready else max(minimum - streak, 1),
            current_consecutive_streak=streak,
        )

    def calculate_feed_volume(
        self,
        weight_grams: float,
        frequency_hours: float,
        ml_per_kg_per_day: float | None = None,
    ) -> int:
        """Per-feed volume in ml for a weight and feeding frequency.

        Raises:
            ValueError: If frequency_hours is not positive
        """
        return calculate_feed_volume(
            weight_grams,
            frequency_hours,
            ml_per_kg_per_day or self.config.feeding.standard_volume_ml_per_kg_per_day,
        )

    def is_weigh_day(self, on: date) -> bool:
        return WEEKDAYS[on.weekday()] in self.config.feeding.weigh_days

    def next_weigh_day(self, after: date) -> date:
        """First weigh day strictly after the given date."""
        for offset in range(1, 8):
            candidate = after + timedelta(days=offset)
            if self.is_weigh_day(candidate):
                return candidate
        logger.warning("No weigh days configured")
        return after


def calculate_feed_volume(weight_grams: float, frequency_hours: float, ml_per_kg_per_day: float = 150) -> int:
    """round(weight_kg * ml_per_kg_per_day / feeds_per_day), halves rounded up.

    >>> calculate_feed_volume(1800, 3)
    34
    """
    if frequency_hours <= 0:
        raise ValueError(f"Feed frequency must be positive, got {frequency_hours}")
    feeds_per_day = 24 / frequency_hours
    daily_volume = weight_grams / 1000 * ml_per_kg_per_day
    return int(round_half_up(daily_volume / feeds_per_day))
