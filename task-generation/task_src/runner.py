#!/usr/bin/env python3
"""CLI entry point for shift task generation.

Usage:
    # Day shift tasks for today
    python -m task_src.runner --shift day

    # Night shift on a given date, one patient, HCA view
    python -m task_src.runner --shift night --date 2026-01-15 --patient elsa --role hca

    # Care rounds instead of the flat task list
    python -m task_src.runner --shift day --clusters --window 45

    # Screening reminders and JSON output
    python -m task_src.runner --shift day --screening --json
"""

import argparse
import json
import logging
import sys
from datetime import datetime

from common.clinical_data import build_demo_data
from common.unit_config import UnitConfig

from .screening import generate_screening_reminders
from .shift_tasks import ShiftTaskService, StaffRole


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="NICU Shift Task Generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument("--shift", choices=["day", "night", "long_day"], default="day", help="Shift type (default: day)")
    parser.add_argument("--date", metavar="YYYY-MM-DD", help="Shift start date (default: today)")
    parser.add_argument("--patient", metavar="ID", help="Only show one patient")
    parser.add_argument("--role", choices=[r.value for r in StaffRole], default="nurse", help="Role view (default: nurse)")
    parser.add_argument("--clusters", action="store_true", help="Group tasks into care rounds")
    parser.add_argument("--window", type=int, default=30, help="Care round window in minutes (default: 30)")
    parser.add_argument("--screening", action="store_true", help="Include screening reminders")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    try:
        config = UnitConfig.from_env()
        if not args.verbose:
            logging.getLogger().setLevel(config.log_level.upper())
        shift_date = datetime.strptime(args.date, "%Y-%m-%d").date() if args.date else datetime.now().date()
        now = datetime.now().replace(second=0, microsecond=0)

        data = build_demo_data()
        patients = data.patients
        if args.patient:
            patients = [p for p in patients if p.id == args.patient]
            if not patients:
                logger.error(f"Unknown patient: {args.patient}")
                return 1

        service = ShiftTaskService(config)
        bundle = service.generate_shift_tasks(
            patients, data.care_plans, data.prescriptions, args.shift, shift_date, generated_by="cli",
        )
        tasks = service.filter_tasks_for_role(bundle.all_tasks, args.role, now=now)

        screening = []
        if args.screening:
            screening = generate_screening_reminders(patients, now, config.screening)

        if args.json:
            output = {
                "shift": bundle.shift.to_dict(),
                "role": args.role,
                "stats": bundle.stats,
                "tasks": [t.to_dict() for t in tasks],
            }
            if args.clusters:
                output["clusters"] = [c.to_dict() for c in service.care_rounds(bundle.all_tasks, args.window)]
            if args.screening:
                output["screening"] = [r.to_dict() for r in screening]
            print(json.dumps(output, indent=2))
            return 0

        print("\n" + "=" * 60)
        print(f"{bundle.shift_id.upper()}  ({bundle.shift.start:%H:%M} - {bundle.shift.end:%H:%M})")
        print("=" * 60)
        print(f"  Role view:   {args.role}")
        print(f"  Tasks:       {len(tasks)} of {bundle.stats['total_tasks']}")
        for task_type, count in sorted(bundle.stats["by_type"].items()):
            print(f"    {task_type:16}: {count}")

        if args.clusters:
            visible = {t.id for t in tasks}
            print(f"\nCare rounds (window {args.window} min):")
            for cluster in service.care_rounds(bundle.all_tasks, args.window):
                shown = [t for t in cluster.tasks if t.id in visible]
                if not shown:
                    continue
                combined = "combinable" if cluster.can_be_combined else "separate"
                print(f"  {cluster.time_window:12} {cluster.patient_id:8} {len(shown)} tasks ({combined})")
                for task in shown:
                    print(f"      - {task.description}")
        else:
            print("\nTasks:")
            for task in tasks:
                print(f"  {task.scheduled_time_of_day}  {task.patient_id:8} {task.priority.value:10} {task.description}")

        if screening:
            print("\nScreening:")
            for reminder in screening:
                flag = " (ESCALATED)" if reminder.escalated else ""
                print(f"  {reminder.patient_id:8} {reminder.status:9} {reminder.description}{flag}")

        return 0

    except KeyboardInterrupt:
        logger.info("\nShutdown requested by user")
        return 0
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
