"""Feed compliance, episode tracking and discharge readiness for the NICU."""

from .discharge_criteria import DischargeCriteriaService, has_respiratory_support
from .episode_counter import EpisodeCounterService
from .feed_compliance import (
    FeedComplianceService,
    calculate_feed_volume,
    feed_oral_percentage,
    feed_oral_volume,
)
from .handover import HandoverService, format_handover_text
from .line_alerts import LineAlertService
from .models import (
    AlertLevel,
    CareAlert,
    DischargeCriteria,
    DischargeReadinessSummary,
    EpisodeCounterState,
    EpisodeLog,
    EpisodeSummary,
    FeedingCompliance,
    HandoverSummary,
    LineAlertStatus,
    NGRemovalReadiness,
    ReadinessStatus,
    TubeAlertStatus,
    round_half_up,
)

__all__ = [
    "AlertLevel",
    "CareAlert",
    "DischargeCriteria",
    "DischargeCriteriaService",
    "DischargeReadinessSummary",
    "EpisodeCounterService",
    "EpisodeCounterState",
    "EpisodeLog",
    "EpisodeSummary",
    "FeedComplianceService",
    "FeedingCompliance",
    "HandoverService",
    "HandoverSummary",
    "LineAlertService",
    "LineAlertStatus",
    "NGRemovalReadiness",
    "ReadinessStatus",
    "TubeAlertStatus",
    "calculate_feed_volume",
    "feed_oral_percentage",
    "feed_oral_volume",
    "format_handover_text",
    "has_respiratory_support",
    "round_half_up",
]
