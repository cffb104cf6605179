"""Unit-configurable defaults for NICU workflows.

All values can be overridden per unit. Based on BAPM and NICE guidance.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Feeding
# =============================================================================

@dataclass
class FeedingDefaults:
    """Standard feeding parameters."""
    standard_volume_ml_per_kg_per_day: float = 150  # typical range 150-180
    default_frequency_hours: float = 3
    weigh_days: tuple[str, ...] = ("Wednesday", "Saturday")
    auto_recalculate_on_weigh: bool = True
    ng_only_until_weeks: int = 34       # corrected gestational age
    oral_trial_start_weeks: int = 34
    aspirate_normal_max_ml: float = 2
    aspirate_significant_min_ml: float = 6


@dataclass
class NGRemovalCriteria:
    """Criteria for discontinuing NG/OG tube feeding."""
    oral_percentage_threshold: float = 95   # >=95% oral per feed
    consecutive_hours: float = 24           # every feed for 24 hours
    allow_ng_top_ups: bool = False
    minimum_consecutive_feeds: int = 8      # 8 feeds over 24hrs at 3-hourly


# =============================================================================
# Discharge (3 gates)
# =============================================================================

@dataclass
class WeightGate:
    enabled: bool = True
    minimum_weight_grams: float = 1800
    required_weight_gain_g_per_kg_per_day: float = 15
    consecutive_days_good_gain: int = 3


@dataclass
class RespiratoryGate:
    enabled: bool = True
    no_respiratory_support: bool = True
    episode_free_days: int = 5              # no A/B/D for 5 days
    no_respiratory_meds: bool = True
    excluded_meds: list[str] = field(
        default_factory=lambda: ["caffeine", "diuretics", "bronchodilators"]
    )


@dataclass
class FeedingGate:
    enabled: bool = True
    full_oral_feeds: bool = True
    oral_percentage_target: float = 100
    consecutive_days_full_oral: int = 2
    ng_tube_must_be_removed: bool = True
    max_feed_duration_minutes: int = 30


@dataclass
class DischargeCriteriaConfig:
    """The three discharge gates."""
    weight_gate: WeightGate = field(default_factory=WeightGate)
    respiratory_gate: RespiratoryGate = field(default_factory=RespiratoryGate)
    feeding_gate: FeedingGate = field(default_factory=FeedingGate)


# =============================================================================
# Lines & tubes
# =============================================================================

@dataclass
class LineAlertThreshold:
    """Dwell-time thresholds for a vascular line type (hours)."""
    line_type: str
    warning_hours: float
    critical_hours: float
    maintenance_check_hours: float


@dataclass
class TubeAlertThreshold:
    """Change and pH thresholds for a gastric tube type."""
    tube_type: str
    change_hours: float
    position_check_hours: float
    ph_safe_min: float = 1.0
    ph_warning: float = 5.5             # >5.5 do not feed, recheck
    ph_critical: float = 6.0            # >6 urgent medical review


def _default_line_thresholds() -> list[LineAlertThreshold]:
    return [
        LineAlertThreshold("peripheral_IV", 48, 72, 4),
        LineAlertThreshold("PICC", 10 * 24, 14 * 24, 24),
        LineAlertThreshold("UAC", 5 * 24, 7 * 24, 6),
        LineAlertThreshold("UVC", 5 * 24, 7 * 24, 6),
        LineAlertThreshold("long_line", 21 * 24, 28 * 24, 24),
        LineAlertThreshold("femoral_line", 3 * 24, 5 * 24, 12),
    ]


def _default_tube_thresholds() -> list[TubeAlertThreshold]:
    return [
        TubeAlertThreshold("NG", 3 * 24, 4),
        TubeAlertThreshold("OG", 3 * 24, 4),
    ]


# =============================================================================
# Screening
# =============================================================================

@dataclass
class ScreeningSettings:
    """Newborn screening schedule."""
    nbbs_day_of_life: int = 5               # Day 1 = DOB
    nbbs_reminder_days_before: int = 1
    nbbs_escalate_if_overdue_days: int = 2

    nbbs_day28_max_gestation_weeks: int = 32
    nbbs_day28_day_of_life: int = 28
    nbbs_day28_reminder_days_before: int = 3

    rop_max_gestation_weeks: int = 32
    rop_max_birth_weight_grams: int = 1500
    rop_start_weeks: int = 30               # corrected gestational age
    rop_end_weeks: int = 36

    cranial_uss_max_gestation_weeks: int = 32
    cranial_uss_days_of_life: tuple[tuple[int, str], ...] = (
        (1, "Day 1-3 scan"),
        (7, "Day 7 scan"),
        (28, "Day 28 scan"),
    )

    hearing_min_day_of_life: int = 5

    swab_day: str = "Monday"
    swab_types: tuple[str, ...] = ("MRSA", "CRO")


# =============================================================================
# Episodes (apnoea / bradycardia / desaturation)
# =============================================================================

@dataclass
class EpisodeThresholds:
    apnoea_duration_seconds: int = 20
    bradycardia_heart_rate: int = 100
    desaturation_spo2: int = 85

    # Alert thresholds
    episodes_per_shift: int = 10            # >10 episodes in one shift
    intervention_rate: float = 30           # >30% requiring intervention
    increase_trend: float = 50              # >50% increase from previous shift

    # Discharge
    episode_free_days: int = 5
    max_minor_episodes_per_week: int = 2


# =============================================================================
# Shifts
# =============================================================================

@dataclass
class ShiftDefinition:
    shift_type: str
    start_hour: int
    end_hour: int

    @property
    def duration_hours(self) -> int:
        if self.end_hour > self.start_hour:
            return self.end_hour - self.start_hour
        return 24 - self.start_hour + self.end_hour

    def times_on(self, shift_date: date) -> tuple[datetime, datetime]:
        """Start and end of the shift starting on shift_date.

        Shifts that cross midnight end on the following day.
        """
        if isinstance(shift_date, datetime):
            shift_date = shift_date.date()
        start = datetime.combine(shift_date, time(self.start_hour))
        return start, start + timedelta(hours=self.duration_hours)


@dataclass
class ShiftConfig:
    """Shift boundaries, reminder lead times and execution windows."""
    shifts: dict[str, ShiftDefinition] = field(default_factory=lambda: {
        "day": ShiftDefinition("day", 8, 20),
        "night": ShiftDefinition("night", 20, 8),
        "long_day": ShiftDefinition("long_day", 7, 21),
    })

    # Minutes before the task
    reminder_lead_minutes: dict[str, int] = field(default_factory=lambda: {
        "routine": 15,
        "important": 30,
        "urgent": 45,
        "critical": 60,
    })

    # Minutes either side of the scheduled time
    task_window_minutes: dict[str, int] = field(default_factory=lambda: {
        "feeding": 30,
        "medication": 30,
        "vital_signs": 30,
        "procedure": 60,
    })
    default_window_minutes: int = 30

    # A task becomes "due" this many minutes before it is scheduled
    due_lead_minutes: int = 30

    def get_shift(self, shift_type: str) -> ShiftDefinition:
        try:
            return self.shifts[shift_type]
        except KeyError:
            raise ValueError(f"Unknown shift type: {shift_type}") from None

    def window_for(self, task_type: str) -> int:
        return self.task_window_minutes.get(task_type, self.default_window_minutes)


# =============================================================================
# Unit configuration
# =============================================================================

@dataclass
class UnitConfig:
    """Main configuration container for one NICU."""
    unit_id: str = "default"
    unit_name: str = "Default NICU"

    feeding: FeedingDefaults = field(default_factory=FeedingDefaults)
    ng_removal: NGRemovalCriteria = field(default_factory=NGRemovalCriteria)
    discharge: DischargeCriteriaConfig = field(default_factory=DischargeCriteriaConfig)
    line_thresholds: list[LineAlertThreshold] = field(default_factory=_default_line_thresholds)
    tube_thresholds: list[TubeAlertThreshold] = field(default_factory=_default_tube_thresholds)
    screening: ScreeningSettings = field(default_factory=ScreeningSettings)
    episodes: EpisodeThresholds = field(default_factory=EpisodeThresholds)
    shifts: ShiftConfig = field(default_factory=ShiftConfig)

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "UnitConfig":
        """Load configuration, overriding defaults from NICU_* environment variables."""
        config = cls(
            unit_id=os.environ.get("NICU_UNIT_ID", "default"),
            unit_name=os.environ.get("NICU_UNIT_NAME", "Default NICU"),
            log_level=os.environ.get("NICU_LOG_LEVEL", "INFO"),
        )

        config.discharge.weight_gate.minimum_weight_grams = float(
            os.environ.get("NICU_MIN_DISCHARGE_WEIGHT_G", config.discharge.weight_gate.minimum_weight_grams)
        )
        episode_free_days = int(
            os.environ.get("NICU_EPISODE_FREE_DAYS", config.discharge.respiratory_gate.episode_free_days)
        )
        config.discharge.respiratory_gate.episode_free_days = episode_free_days
        config.episodes.episode_free_days = episode_free_days
        config.ng_removal.oral_percentage_threshold = float(
            os.environ.get("NICU_ORAL_THRESHOLD_PCT", config.ng_removal.oral_percentage_threshold)
        )
        config.ng_removal.minimum_consecutive_feeds = int(
            os.environ.get("NICU_MIN_CONSECUTIVE_FEEDS", config.ng_removal.minimum_consecutive_feeds)
        )
        config.feeding.standard_volume_ml_per_kg_per_day = float(
            os.environ.get("NICU_FEED_ML_PER_KG_DAY", config.feeding.standard_volume_ml_per_kg_per_day)
        )

        config.validate()
        logger.debug(f"Loaded unit configuration for {config.unit_id}")
        return config

    def validate(self) -> None:
        """Raise ValueError if any threshold is unusable."""
        checks = {
            "feeding.default_frequency_hours": self.feeding.default_frequency_hours,
            "feeding.standard_volume_ml_per_kg_per_day": self.feeding.standard_volume_ml_per_kg_per_day,
            "ng_removal.consecutive_hours": self.ng_removal.consecutive_hours,
            "ng_removal.minimum_consecutive_feeds": self.ng_removal.minimum_consecutive_feeds,
            "discharge.weight_gate.minimum_weight_grams": self.discharge.weight_gate.minimum_weight_grams,
        }
        for name, value in checks.items():
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")

        if not 0 < self.ng_removal.oral_percentage_threshold <= 100:
            raise ValueError(
                f"ng_removal.oral_percentage_threshold must be in (0, 100], "
                f"got {self.ng_removal.oral_percentage_threshold}"
            )
        if self.discharge.respiratory_gate.episode_free_days < 0:
            raise ValueError("discharge.respiratory_gate.episode_free_days must not be negative")
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {self.log_level}")

        for shift in self.shifts.shifts.values():
            if not (0 <= shift.start_hour < 24 and 0 <= shift.end_hour < 24):
                raise ValueError(f"Shift {shift.shift_type} hours must be within 0-23")
            if shift.start_hour == shift.end_hour:
                raise ValueError(f"Shift {shift.shift_type} has zero duration")

    def get_line_threshold(self, line_type: str) -> LineAlertThreshold | None:
        for threshold in self.line_thresholds:
            if threshold.line_type == line_type:
                return threshold
        return None

    def get_tube_threshold(self, tube_type: str) -> TubeAlertThreshold | None:
        for threshold in self.tube_thresholds:
            if threshold.tube_type == tube_type:
                return threshold
        return None

    def to_dict(self) -> dict[str, Any]:
        """Summary of the key thresholds for display."""
        return {
            "unit_id": self.unit_id,
            "unit_name": self.unit_name,
            "standard_volume_ml_per_kg_per_day": self.feeding.standard_volume_ml_per_kg_per_day,
            "oral_percentage_threshold": self.ng_removal.oral_percentage_threshold,
            "minimum_consecutive_feeds": self.ng_removal.minimum_consecutive_feeds,
            "minimum_discharge_weight_grams": self.discharge.weight_gate.minimum_weight_grams,
            "episode_free_days": self.discharge.respiratory_gate.episode_free_days,
            "shifts": {
                name: {"start_hour": s.start_hour, "end_hour": s.end_hour}
                for name, s in self.shifts.shifts.items()
            },
        }


DEFAULT_UNIT_CONFIG = UnitConfig()
