"""Shift task routes for the dashboard.

JSON views over generated shift bundles: the task list for a role, care
rounds, and recording task completion.
"""

import logging
from datetime import datetime

from flask import Blueprint, current_app, request

from common.nursing_tasks import TaskAlreadyClosedError
from task_src import task_summary

from dashboard.utils.api_response import api_error, api_exception, api_success

logger = logging.getLogger(__name__)

shift_tasks_bp = Blueprint("shift_tasks", __name__, url_prefix="/shift-tasks")


def _now() -> datetime:
    return current_app.config.get("FIXED_NOW") or datetime.now().replace(second=0, microsecond=0)


def _get_bundle():
    """Bundle for the shift named in the query string.

    Raises:
        ValueError: If the shift type or date is invalid
    """
    shift_type = request.args.get("shift", "day")
    date_arg = request.args.get("date")
    try:
        shift_date = datetime.strptime(date_arg, "%Y-%m-%d").date() if date_arg else _now().date()
    except ValueError:
        raise ValueError(f"Invalid date: {date_arg} (expected YYYY-MM-DD)") from None

    data = current_app.clinical_data
    return current_app.shift_planner.bundle_for(
        data.patients, data.care_plans, data.prescriptions, shift_type, shift_date,
        generated_by=request.args.get("user", "dashboard"),
        generated_at=_now(),
    )


@shift_tasks_bp.route("/api/bundle")
def api_bundle():
    """Tasks for a shift, filtered to a role, with their current status."""
    try:
        bundle = _get_bundle()
        planner = current_app.shift_planner
        now = _now()

        role = request.args.get("role", "nurse")
        tasks = planner.service.filter_tasks_for_role(bundle.all_tasks, role, planner.log, now)

        patient_id = request.args.get("patient")
        if patient_id:
            tasks = [t for t in tasks if t.patient_id == patient_id]

        statuses = planner.statuses(bundle.shift_id, now)
        visible = {t.id for t in tasks}
        return api_success(data={
            "shift": bundle.shift.to_dict(),
            "role": role,
            "generated_at": bundle.generated_at.isoformat(),
            "stats": bundle.stats,
            "summary": task_summary(tasks, planner.log, now),
            "tasks": [dict(t.to_dict(), status=statuses[t.id].value) for t in tasks],
            "reminders": [r.to_dict() for r in bundle.reminders if r.task_id in visible],
        })
    except Exception as e:
        return api_exception(e, "building shift bundle")


@shift_tasks_bp.route("/api/clusters")
def api_clusters():
    """Care rounds for a shift."""
    try:
        try:
            window = int(request.args.get("window", 30))
        except ValueError:
            return api_error(f"Invalid window: {request.args.get('window')}", 400)
        if window < 0:
            return api_error("window must not be negative", 400)

        bundle = _get_bundle()
        rounds = current_app.shift_planner.service.care_rounds(bundle.all_tasks, window)
        return api_success(data={
            "shift": bundle.shift.to_dict(),
            "window_minutes": window,
            "clusters": [c.to_dict() for c in rounds],
        })
    except Exception as e:
        return api_exception(e, "clustering tasks")


@shift_tasks_bp.route("/api/tasks/<task_id>/complete", methods=["POST"])
def api_complete_task(task_id: str):
    """Record completion of a generated task."""
    try:
        planner = current_app.shift_planner
        task = planner.find_task(task_id)
        if task is None:
            return api_error("Task not found", 404)

        payload = request.get_json(silent=True) or {}
        completed_by = payload.get("completed_by")
        if not completed_by:
            return api_error("completed_by is required", 400)

        outcome = planner.log.complete(
            task_id,
            completed_by=completed_by,
            at=_now(),
            task_type=task.task_type.value,
            completion_record_id=payload.get("completion_record_id"),
        )
        logger.info(f"Task {task_id} completed by {completed_by}")
        return api_success(data=outcome.to_dict(), message="Task completed")
    except TaskAlreadyClosedError as e:
        return api_error(str(e), 409)
    except Exception as e:
        return api_exception(e, f"completing task {task_id}")
