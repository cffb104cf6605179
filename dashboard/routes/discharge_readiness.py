"""Discharge readiness routes for the dashboard.

Per-patient feed compliance, discharge gate assessment and line/tube alerts,
recomputed from the clinical data on every request.
"""

import logging
from datetime import datetime, timedelta

from flask import Blueprint, current_app

from readiness_src import (
    DischargeCriteriaService,
    EpisodeCounterService,
    FeedComplianceService,
    LineAlertService,
)

from dashboard.utils.api_response import api_error, api_exception, api_success

logger = logging.getLogger(__name__)

discharge_readiness_bp = Blueprint("discharge_readiness", __name__, url_prefix="/discharge-readiness")

EPISODE_HISTORY_DAYS = 14


def _now() -> datetime:
    return current_app.config.get("FIXED_NOW") or datetime.now().replace(second=0, microsecond=0)


def _config():
    return current_app.config["UNIT_CONFIG"]


def _compliance(patient_id: str, now: datetime):
    data = current_app.clinical_data
    return FeedComplianceService(_config()).calculate_24hr_compliance(
        patient_id, data.feeds_for(patient_id), data.active_care_plan(patient_id), now,
    )


@discharge_readiness_bp.route("/api/patients/<patient_id>/compliance")
def api_compliance(patient_id: str):
    """Rolling 24 hour feed compliance and NG removal readiness."""
    try:
        if current_app.clinical_data.get_patient(patient_id) is None:
            return api_error("Patient not found", 404)
        return api_success(data=_compliance(patient_id, _now()).to_dict())
    except Exception as e:
        return api_exception(e, f"calculating compliance for {patient_id}")


@discharge_readiness_bp.route("/api/patients/<patient_id>/assessment")
def api_assessment(patient_id: str):
    """Discharge gate assessment with dashboard summary."""
    try:
        data = current_app.clinical_data
        patient = data.get_patient(patient_id)
        if patient is None:
            return api_error("Patient not found", 404)

        now = _now()
        episode_counter = EpisodeCounterService(_config())
        logs = episode_counter.build_shift_logs(
            patient_id, data.episodes_for(patient_id), now - timedelta(days=EPISODE_HISTORY_DAYS), now,
        )

        service = DischargeCriteriaService(_config(), episode_counter)
        criteria = service.assess_readiness(
            patient,
            patient.current_weight_grams,
            _compliance(patient_id, now),
            logs,
            current_respiratory_support=patient.respiratory_support,
            assessed_at=now,
        )
        return api_success(data={
            "criteria": criteria.to_dict(),
            "summary": service.generate_summary(criteria).to_dict(),
        })
    except Exception as e:
        return api_exception(e, f"assessing discharge readiness for {patient_id}")


@discharge_readiness_bp.route("/api/patients/<patient_id>/alerts")
def api_alerts(patient_id: str):
    """Active line and tube alerts, most severe first."""
    try:
        data = current_app.clinical_data
        if data.get_patient(patient_id) is None:
            return api_error("Patient not found", 404)

        alerts = LineAlertService(_config()).get_all_active_alerts(
            patient_id, data.lines_for(patient_id), data.tubes_for(patient_id), _now(),
        )
        critical = [a for a in alerts if a.severity.value == "critical"]
        if critical:
            logger.warning(f"{len(critical)} critical line/tube alerts for {patient_id}")
        return api_success(data={
            "patient_id": patient_id,
            "count": len(alerts),
            "alerts": [a.to_dict() for a in alerts],
        })
    except Exception as e:
        return api_exception(e, f"calculating alerts for {patient_id}")
