#!/usr/bin/env python3
"""CLI entry point for feed compliance and discharge readiness.

Usage:
    # Readiness for every patient on the unit
    python -m readiness_src.runner

    # One patient, as JSON
    python -m readiness_src.runner --patient daisy --json

    # Print the handover sheet for the current shift
    python -m readiness_src.runner --patient elsa --handover
"""

import argparse
import json
import logging
import sys
from datetime import date, datetime, timedelta

from common.clinical_data import build_demo_data
from common.nursing_tasks import ShiftTimes
from common.unit_config import UnitConfig

from .discharge_criteria import DischargeCriteriaService
from .episode_counter import EpisodeCounterService
from .feed_compliance import FeedComplianceService
from .handover import HandoverService, format_handover_text
from .line_alerts import LineAlertService

# How far back to build episode logs for the episode-free counter
EPISODE_HISTORY_DAYS = 14


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def current_shift(config: UnitConfig, now: datetime) -> ShiftTimes:
    """The day or night shift containing `now`."""
    for shift_date in (now.date(), now.date() - timedelta(days=1)):
        for shift_type in ("day", "night"):
            shift = _shift_times(config, shift_date, shift_type)
            if shift.contains(now):
                return shift
    raise ValueError(f"No day or night shift covers {now}")


def _shift_times(config: UnitConfig, shift_date: date, shift_type: str) -> ShiftTimes:
    start, end = config.shifts.get_shift(shift_type).times_on(shift_date)
    return ShiftTimes(start, end, shift_type)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="NICU Discharge Readiness",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--patient", metavar="ID", help="Only show one patient")
    parser.add_argument("--handover", action="store_true", help="Print the handover sheet for the current shift")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = UnitConfig.from_env()
        if not args.verbose:
            logging.getLogger().setLevel(config.log_level.upper())
        now = datetime.now().replace(second=0, microsecond=0)
        data = build_demo_data()

        patients = data.patients
        if args.patient:
            patients = [p for p in patients if p.id == args.patient]
            if not patients:
                logger.error(f"Unknown patient: {args.patient}")
                return 1

        feed_service = FeedComplianceService(config)
        episode_service = EpisodeCounterService(config)
        discharge_service = DischargeCriteriaService(config, episode_service)
        alert_service = LineAlertService(config)
        handover_service = HandoverService(config)

        results = []
        for patient in patients:
            compliance = feed_service.calculate_24hr_compliance(
                patient.id, data.feeds_for(patient.id), data.active_care_plan(patient.id), now,
            )
            logs = episode_service.build_shift_logs(
                patient.id, data.episodes_for(patient.id), now - timedelta(days=EPISODE_HISTORY_DAYS), now,
            )
            criteria = discharge_service.assess_readiness(
                patient, patient.current_weight_grams, compliance, logs,
                current_respiratory_support=patient.respiratory_support, assessed_at=now,
            )
            alerts = alert_service.get_all_active_alerts(
                patient.id, data.lines_for(patient.id), data.tubes_for(patient.id), now,
            )
            results.append((patient, compliance, criteria, discharge_service.generate_summary(criteria), alerts))

        if args.handover:
            shift = current_shift(config, now)
            for patient, *_ in results:
                handover = handover_service.generate_handover(
                    patient, shift,
                    data.feeds_for(patient.id), data.episodes_for(patient.id),
                    data.lines_for(patient.id), data.tubes_for(patient.id),
                    generated_by="cli", now=now, care_plan=data.active_care_plan(patient.id),
                )
                if args.json:
                    print(json.dumps(handover.to_dict(), indent=2))
                else:
                    print(format_handover_text(handover))
            return 0

        if args.json:
            output = [
                {
                    "patient": patient.to_dict(),
                    "compliance": compliance.to_dict(),
                    "assessment": criteria.to_dict(),
                    "summary": summary.to_dict(),
                    "alerts": [a.to_dict() for a in alerts],
                }
                for patient, compliance, criteria, summary, alerts in results
            ]
            print(json.dumps(output, indent=2))
            return 0

        for patient, compliance, criteria, summary, alerts in results:
            print("\n" + "=" * 60)
            print(f"{patient.name} ({patient.id}, bed {patient.bed_number})")
            print("=" * 60)
            print(f"  Status:      {criteria.overall_status.value} ({summary.gates_met}/{summary.total_gates} gates, "
                  f"{criteria.readiness_score}%)")
            for gate, detail in summary.gate_details.items():
                mark = "met" if detail["met"] else "not met"
                print(f"    {gate:12}: {detail['detail']:20} {mark}")
            if summary.next_milestone:
                print(f"  Next:        {summary.next_milestone}")
            print(f"  Feeds (24h): {compliance.total_feeds_completed}/{compliance.total_feeds_scheduled}, "
                  f"{compliance.oral_percentage}% oral")
            ng = compliance.ng_removal_readiness
            print(f"  NG removal:  {'ready' if ng.ready else f'{ng.feeds_until_ready} more feeds needed'}")
            for alert in alerts:
                print(f"  [{alert.severity.value.upper():8}] {alert.title}: {alert.message}")

        return 0

    except KeyboardInterrupt:
        logger.info("\nShutdown requested by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
