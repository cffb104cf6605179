"""Apnoea / bradycardia / desaturation tracking.

Builds per-shift episode logs and derives the episode-free run used by the
respiratory discharge gate.
"""

import logging
from datetime import date, datetime, timedelta

from common.clinical_data import Episode, EpisodeType
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .models import EpisodeCounterState, EpisodeLog, EpisodeSummary, percentage, round_half_up

logger = logging.getLogger(__name__)

# Each empty shift counts as half a day (two 12 hour shifts per day)
EPISODE_FREE_DAYS_PER_SHIFT = 0.5

RECENT_EPISODE_COUNT = 5

# Shifts that tile the day without overlap
LOGGED_SHIFT_TYPES = ("day", "night")


def _count_with(episodes: list[Episode], predicate) -> int:
    return sum(1 for e in episodes if any(predicate(i) for i in e.interventions))


class EpisodeCounterService:
    """Episode summaries and the episode-free day counter."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG):
        self.config = config

    def create_shift_log(
        self,
        patient_id: str,
        shift_type: str,
        episodes: list[Episode],
        shift_start: datetime,
        shift_end: datetime,
    ) -> EpisodeLog:
        """Summarise the episodes recorded during one shift.

        Args:
            patient_id: Patient the log belongs to
            shift_type: day, night or long_day
            episodes: Episodes recorded in the shift
            shift_start: Shift start
            shift_end: Shift end (a zero-length shift gives a rate of 0)

        Returns:
            EpisodeLog with summary and clinical significance flag
        """
        by_type = {episode_type: [] for episode_type in EpisodeType}
        for episode in sorted(episodes, key=lambda e: e.occurred_at):
            by_type[episode.episode_type].append(episode)

        total = len(episodes)
        self_resolved = sum(1 for e in episodes if e.self_resolved)
        duration_hours = (shift_end - shift_start) / timedelta(hours=1)
        per_hour = total / duration_hours if duration_hours > 0 else 0.0
        intervention_rate = percentage(total - self_resolved, total)

        summary = EpisodeSummary(
            total_episodes=total,
            apnoea_count=len(by_type[EpisodeType.APNOEA]),
            bradycardia_count=len(by_type[EpisodeType.BRADYCARDIA]),
            desaturation_count=len(by_type[EpisodeType.DESATURATION]),
            self_resolved_count=self_resolved,
            stimulation_count=_count_with(episodes, lambda i: "stimulation" in i),
            oxygen_increase_count=_count_with(episodes, lambda i: i == "increased_oxygen"),
            bagging_count=_count_with(episodes, lambda i: i == "bag_mask_ventilation"),
            episodes_per_hour=round_half_up(per_hour, 1),
            intervention_rate=round_half_up(intervention_rate, 1),
        )

        thresholds = self.config.episodes
        significant = total > thresholds.episodes_per_shift or intervention_rate > thresholds.intervention_rate
        if significant:
            logger.warning(
                f"Clinically significant episodes for {patient_id} on {shift_type} shift: "
                f"{total} episodes, {summary.intervention_rate}% needed intervention"
            )

        return EpisodeLog(
            id=f"episode-log-{patient_id}-{int(shift_start.timestamp() * 1000)}",
            patient_id=patient_id,
            shift_type=shift_type,
            shift_start=shift_start,
            shift_end=shift_end,
            summary=summary,
            apnoeas=by_type[EpisodeType.APNOEA],
            bradycardias=by_type[EpisodeType.BRADYCARDIA],
            desaturations=by_type[EpisodeType.DESATURATION],
            clinically_significant=significant,
            flagged_for_handover=significant,
        )

    def log_episode(
        self,
        patient_id: str,
        episode_type: EpisodeType | str,
        occurred_at: datetime,
        recorded_by: str,
        severity: str = "moderate",
        duration_seconds: int | None = None,
        lowest_value: int | None = None,
        interventions: list[str] | None = None,
        self_resolved: bool = True,
        respiratory_support: str | None = None,
    ) -> Episode:
        """Record a single episode at the bedside."""
        return Episode(
            id=f"episode-{patient_id}-{int(occurred_at.timestamp() * 1000)}",
            patient_id=patient_id,
            occurred_at=occurred_at,
            episode_type=EpisodeType(episode_type),
            severity=severity,
            duration_seconds=duration_seconds,
            lowest_value=lowest_value,
            self_resolved=self_resolved,
            interventions=["none_self_resolved"] if self_resolved else list(interventions or []),
            respiratory_support=respiratory_support,
            recorded_by=recorded_by,
        )

    def calculate_counter_state(
        self,
        patient_id: str,
        shift_type: str,
        episodes: list[Episode],
        current_log: EpisodeLog | None = None,
        previous_log: EpisodeLog | None = None,
    ) -> EpisodeCounterState:
        """Running counts for the bedside counter.

        rate_increasing compares current_log against previous_log when both
        are supplied.
        """
        ordered = sorted(episodes, key=lambda e: e.occurred_at)

        def last_of(episode_type: EpisodeType) -> datetime | None:
            matching = [e.occurred_at for e in ordered if e.episode_type == episode_type]
            return matching[-1] if matching else None

        self_resolved = sum(1 for e in ordered if e.self_resolved)
        self_resolved_pct = percentage(self_resolved, len(ordered)) if ordered else 100

        rate_increasing = False
        if current_log is not None:
            rate_increasing = self.is_rate_increasing(current_log, previous_log)

        return EpisodeCounterState(
            patient_id=patient_id,
            current_shift=shift_type,
            apnoea_count=sum(1 for e in ordered if e.episode_type == EpisodeType.APNOEA),
            bradycardia_count=sum(1 for e in ordered if e.episode_type == EpisodeType.BRADYCARDIA),
            desaturation_count=sum(1 for e in ordered if e.episode_type == EpisodeType.DESATURATION),
            last_apnoea=last_of(EpisodeType.APNOEA),
            last_bradycardia=last_of(EpisodeType.BRADYCARDIA),
            last_desaturation=last_of(EpisodeType.DESATURATION),
            recent_episodes=list(reversed(ordered))[:RECENT_EPISODE_COUNT],
            self_resolved_percentage=int(round_half_up(self_resolved_pct)),
            rate_increasing=rate_increasing,
            requires_review=len(ordered) > self.config.episodes.episodes_per_shift,
        )

    def is_rate_increasing(self, current: EpisodeLog, previous: EpisodeLog | None) -> bool:
        """True when the hourly rate rose by more than the trend threshold."""
        if previous is None:
            return False

        current_rate = current.summary.episodes_per_hour
        previous_rate = previous.summary.episodes_per_hour
        if previous_rate == 0:
            return current_rate > 0

        increase = (current_rate - previous_rate) / previous_rate * 100
        return increase > self.config.episodes.increase_trend

    def calculate_episode_free_days(self, logs: list[EpisodeLog]) -> float:
        """Length of the most recent run of episode-free shifts, in days.

        Walks the logs newest first, adding half a day per empty shift and
        stopping at the first shift with episodes or at a gap of more than
        one calendar day between consecutive logs. The total is not floored,
        so a single empty shift gives 0.5.
        """
        days = 0.0
        current_date: date | None = None

        for log in sorted(logs, key=lambda entry: entry.shift_start, reverse=True):
            log_date = log.shift_start.date()
            if current_date is not None and (current_date - log_date).days > 1:
                logger.debug(f"Gap in episode logs for {log.patient_id} before {current_date}")
                break
            current_date = log_date

            if log.summary.total_episodes > 0:
                break
            days += EPISODE_FREE_DAYS_PER_SHIFT

        return days

    def meets_discharge_criteria(self, logs: list[EpisodeLog]) -> bool:
        return self.calculate_episode_free_days(logs) >= self.config.episodes.episode_free_days

    def build_shift_logs(
        self,
        patient_id: str,
        episodes: list[Episode],
        period_start: datetime,
        period_end: datetime,
    ) -> list[EpisodeLog]:
        """Episode logs for every completed day/night shift in a period.

        Only shifts that both start and end inside [period_start, period_end]
        are logged, so a shift still in progress is not counted as empty.

        Returns:
            Logs in chronological order
        """
        patient_episodes = [e for e in episodes if e.patient_id == patient_id]
        logs = []

        day = period_start.date() - timedelta(days=1)
        while day <= period_end.date():
            for shift_type in LOGGED_SHIFT_TYPES:
                start, end = self.config.shifts.get_shift(shift_type).times_on(day)
                if start < period_start or end > period_end:
                    continue

                in_shift = [e for e in patient_episodes if start <= e.occurred_at < end]
                logs.append(self.create_shift_log(patient_id, shift_type, in_shift, start, end))
            day += timedelta(days=1)

        logger.debug(f"Built {len(logs)} shift logs for {patient_id}")
        return logs
