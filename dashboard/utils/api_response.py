"""Standardized API response helpers for the NICU dashboard.

All JSON API endpoints return responses in a unified envelope format:

    Success: {"success": true, "data": ..., "message": ...}
    Error:   {"success": false, "error": ...}

Usage:
    from dashboard.utils.api_response import api_success, api_error, api_exception

    @bp.route("/api/patients/<patient_id>/alerts")
    def api_alerts(patient_id):
        try:
            if data.get_patient(patient_id) is None:
                return api_error("Patient not found", 404)
            return api_success(data=alerts)
        except Exception as e:
            return api_exception(e, f"calculating alerts for {patient_id}")
"""

import logging

from flask import jsonify

logger = logging.getLogger(__name__)


def api_success(data=None, message=None):
    """Return a standardized success response.

    Returns: {"success": true, "data": ..., "message": ...}
    """
    response = {"success": True}
    if data is not None:
        response["data"] = data
    if message is not None:
        response["message"] = message
    return jsonify(response)


def api_error(error, status_code=400):
    """Return a standardized error response.

    Returns: {"success": false, "error": ...}
    """
    return jsonify({"success": False, "error": str(error)}), status_code


def api_exception(error, context):
    """Translate an exception raised while handling a request.

    ValueError means the caller sent something unusable (unknown shift or
    role, bad date, invalid schedule) and maps to 400. Anything else is
    logged with its traceback and maps to 500.
    """
    if isinstance(error, ValueError):
        logger.warning(f"Rejected request while {context}: {error}")
        return api_error(error, 400)
    logger.error(f"Error {context}: {error}", exc_info=True)
    return api_error(error, 500)
