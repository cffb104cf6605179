"""Three-gate discharge readiness: weight, respiratory and feeding.

Each assessment is a fresh recomputation from current data. Nothing locks
in once met, so a weight drop or a new episode downgrades the result on the
next call.
"""

import logging
from datetime import datetime

from common.clinical_data import Patient, RespiratoryMode
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .episode_counter import EpisodeCounterService
from .models import (
    DischargeCriteria,
    DischargeReadinessSummary,
    EpisodeLog,
    FeedingCompliance,
    FeedingCriterion,
    ReadinessStatus,
    RespiratoryCriterion,
    WeightCriterion,
    round_half_up,
)

logger = logging.getLogger(__name__)

NO_SUPPORT_MODES = {"", RespiratoryMode.ROOM_AIR.value}


def has_respiratory_support(mode: str | None) -> bool:
    """True unless the mode is absent or room air."""
    if mode is None:
        return False
    if isinstance(mode, RespiratoryMode):
        mode = mode.value
    return mode not in NO_SUPPORT_MODES


def _format_number(value: float) -> str:
    return f"{value:g}"


class DischargeCriteriaService:
    """Assesses the discharge gates for a patient."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG, episode_counter: EpisodeCounterService | None = None):
        self.config = config
        self.episode_counter = episode_counter or EpisodeCounterService(config)

    def assess_readiness(
        self,
        patient: Patient,
        current_weight: float,
        feed_compliance: FeedingCompliance,
        episode_logs: list[EpisodeLog],
        current_respiratory_support: str | None = None,
        assessed_at: datetime | None = None,
    ) -> DischargeCriteria:
        """Evaluate the three discharge gates.

        Args:
            patient: Patient being assessed
            current_weight: Latest weight in grams
            feed_compliance: Rolling 24 hour feed compliance
            episode_logs: Shift episode logs (any order)
            current_respiratory_support: Current mode; None or room_air means none
            assessed_at: Assessment time (defaults to now)

        Returns:
            DischargeCriteria with score, overall status and blockers
        """
        assessed_at = assessed_at or datetime.now()
        gates = self.config.discharge

        weight = WeightCriterion(
            met=current_weight >= gates.weight_gate.minimum_weight_grams,
            current_weight_grams=current_weight,
            target_weight_grams=gates.weight_gate.minimum_weight_grams,
        )

        episode_free_days = self.episode_counter.calculate_episode_free_days(episode_logs)
        required_days = gates.respiratory_gate.episode_free_days
        no_support = not has_respiratory_support(current_respiratory_support)
        respiratory = RespiratoryCriterion(
            met=no_support and episode_free_days >= required_days,
            no_respiratory_support=no_support,
            current_support=current_respiratory_support,
            episode_free_days=episode_free_days,
            required_episode_free_days=required_days,
        )

        oral_target = gates.feeding_gate.oral_percentage_target
        full_oral = feed_compliance.oral_percentage >= oral_target
        ng_ready = feed_compliance.ng_removal_readiness.ready
        feeding = FeedingCriterion(
            met=full_oral and ng_ready,
            full_oral_feeds=full_oral,
            oral_percentage=feed_compliance.oral_percentage,
            target_oral_percentage=oral_target,
            ng_tube_removed=ng_ready,
        )

        gates_met = sum(1 for gate in (weight, respiratory, feeding) if gate.met)
        score = int(round_half_up(gates_met / DischargeCriteria.TOTAL_GATES * 100))
        if gates_met == DischargeCriteria.TOTAL_GATES:
            status = ReadinessStatus.READY
        elif gates_met >= 2:
            status = ReadinessStatus.APPROACHING
        else:
            status = ReadinessStatus.NOT_READY

        criteria = DischargeCriteria(
            id=f"discharge-{patient.id}-{int(assessed_at.timestamp() * 1000)}",
            patient_id=patient.id,
            assessed_at=assessed_at,
            weight=weight,
            respiratory=respiratory,
            feeding=feeding,
            readiness_score=score,
            overall_status=status,
            current_blockers=self._blockers(weight, respiratory, feeding),
        )

        logger.info(f"Discharge assessment for {patient.id}: {gates_met}/3 gates, {status.value}")
        return criteria

    def _blockers(
        self,
        weight: WeightCriterion,
        respiratory: RespiratoryCriterion,
        feeding: FeedingCriterion,
    ) -> list[str]:
        blockers = []
        if not weight.met:
            blockers.append(
                f"Weight {_format_number(weight.current_weight_grams)}g below "
                f"{_format_number(weight.target_weight_grams)}g"
            )
        if not respiratory.met:
            if not respiratory.no_respiratory_support:
                blockers.append(f"On respiratory support ({respiratory.current_support})")
            if respiratory.episode_free_days < respiratory.required_episode_free_days:
                blockers.append(
                    f"Episode free for {_format_number(respiratory.episode_free_days)} of "
                    f"{respiratory.required_episode_free_days} days"
                )
        if not feeding.met:
            if not feeding.full_oral_feeds:
                blockers.append(
                    f"Oral intake {_format_number(feeding.oral_percentage)}% below "
                    f"{_format_number(feeding.target_oral_percentage)}%"
                )
            if not feeding.ng_tube_removed:
                blockers.append("NG tube removal criteria not met")
        return blockers

    def generate_summary(self, criteria: DischargeCriteria) -> DischargeReadinessSummary:
        """Dashboard summary of an assessment."""
        weight, respiratory, feeding = criteria.weight, criteria.respiratory, criteria.feeding

        gate_details = {
            "weight": {
                "met": weight.met,
                "detail": f"{_format_number(weight.current_weight_grams)}g / "
                          f"{_format_number(weight.target_weight_grams)}g",
            },
            "respiratory": {
                "met": respiratory.met,
                "detail": f"{_format_number(respiratory.episode_free_days)} / "
                          f"{respiratory.required_episode_free_days} days",
            },
            "feeding": {
                "met": feeding.met,
                "detail": f"{_format_number(feeding.oral_percentage)}% oral",
            },
        }

        milestones = {
            "weight": f"Reach {_format_number(weight.target_weight_grams)}g",
            "respiratory": (
                f"Wean from {respiratory.current_support}" if not respiratory.no_respiratory_support
                else f"{respiratory.required_episode_free_days} episode-free days"
            ),
            "feeding": "Full oral feeds with NG tube out",
        }
        next_milestone = next(
            (milestones[name] for name, detail in gate_details.items() if not detail["met"]),
            None,
        )

        return DischargeReadinessSummary(
            patient_id=criteria.patient_id,
            gates_met=criteria.gates_met,
            total_gates=DischargeCriteria.TOTAL_GATES,
            progress=criteria.readiness_score,
            status=criteria.overall_status,
            status_color=criteria.overall_status.color,
            gate_details=gate_details,
            next_milestone=next_milestone,
        )
