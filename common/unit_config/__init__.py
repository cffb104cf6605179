"""Unit configuration: static threshold tables consumed by every calculator."""

from .defaults import (
    DEFAULT_UNIT_CONFIG,
    DischargeCriteriaConfig,
    EpisodeThresholds,
    FeedingDefaults,
    FeedingGate,
    LineAlertThreshold,
    NGRemovalCriteria,
    RespiratoryGate,
    ScreeningSettings,
    ShiftConfig,
    ShiftDefinition,
    TubeAlertThreshold,
    UnitConfig,
    WeightGate,
)

__all__ = [
    "DEFAULT_UNIT_CONFIG",
    "DischargeCriteriaConfig",
    "EpisodeThresholds",
    "FeedingDefaults",
    "FeedingGate",
    "LineAlertThreshold",
    "NGRemovalCriteria",
    "RespiratoryGate",
    "ScreeningSettings",
    "ShiftConfig",
    "ShiftDefinition",
    "TubeAlertThreshold",
    "UnitConfig",
    "WeightGate",
]
