"""Dwell-time alerts for vascular lines and pH alerts for gastric tubes."""

import logging
from datetime import datetime

from common.clinical_data import LineRecord, TubeRecord, hours_between
from common.unit_config import DEFAULT_UNIT_CONFIG, UnitConfig

from .models import AlertLevel, CareAlert, LineAlertStatus, TubeAlertStatus

logger = logging.getLogger(__name__)


class LineAlertService:
    """Line and tube alert calculations against the unit thresholds."""

    def __init__(self, config: UnitConfig = DEFAULT_UNIT_CONFIG):
        self.config = config

    def calculate_line_alerts(self, line: LineRecord, now: datetime) -> LineAlertStatus:
        """Dwell time and duration alert for one line.

        Unknown line types get no alert.
        """
        hours_in_situ = hours_between(line.inserted_at, now)
        days_in_situ = int(hours_in_situ // 24)

        status = LineAlertStatus(
            line_id=line.id,
            patient_id=line.patient_id,
            line_type=line.line_type,
            insertion_site=line.insertion_site,
            inserted_at=line.inserted_at,
            is_active=line.is_active,
            days_in_situ=days_in_situ,
            hours_in_situ=int(hours_in_situ),
        )

        threshold = self.config.get_line_threshold(line.line_type)
        if threshold is None:
            logger.debug(f"No dwell threshold for line type {line.line_type}")
            return status

        if hours_in_situ >= threshold.critical_hours:
            status.alert_level = AlertLevel.CRITICAL
            status.alerts.append(CareAlert(
                id=f"line-duration-critical-{line.id}",
                patient_id=line.patient_id,
                alert_type="line_duration",
                severity=AlertLevel.CRITICAL,
                title=f"{line.line_type} Duration Critical",
                message=f"Line has been in situ for {days_in_situ} days. Consider removal.",
                source_type="line",
                source_id=line.id,
                created_at=now,
                action_required=True,
                action_type="check_line",
            ))
        elif hours_in_situ >= threshold.warning_hours:
            status.alert_level = AlertLevel.WARNING
            status.alerts.append(CareAlert(
                id=f"line-duration-warning-{line.id}",
                patient_id=line.patient_id,
                alert_type="line_duration",
                severity=AlertLevel.WARNING,
                title=f"{line.line_type} Duration Warning",
                message=f"Line has been in situ for {days_in_situ} days. Monitor closely.",
                source_type="line",
                source_id=line.id,
                created_at=now,
            ))

        return status

    def calculate_tube_alerts(self, tube: TubeRecord, now: datetime) -> TubeAlertStatus:
        """pH status from the latest position check, plus a change-due alert."""
        hours_in_situ = hours_between(tube.inserted_at, now)
        last_check = tube.last_check

        status = TubeAlertStatus(
            tube_id=tube.id,
            patient_id=tube.patient_id,
            tube_type=tube.tube_type,
            inserted_at=tube.inserted_at,
            is_active=tube.is_active,
            days_in_situ=int(hours_in_situ // 24),
            hours_in_situ=int(hours_in_situ),
            last_ph=last_check.ph if last_check else None,
            last_ph_check=last_check.checked_at if last_check else None,
        )

        threshold = self.config.get_tube_threshold(tube.tube_type)
        if threshold is None:
            return status

        ph = status.last_ph
        if ph is not None:
            if ph >= threshold.ph_critical:
                status.ph_status = "critical"
                status.alert_level = AlertLevel.CRITICAL
                status.alerts.append(CareAlert(
                    id=f"tube-ph-critical-{tube.id}",
                    patient_id=tube.patient_id,
                    alert_type="tube_ph_high",
                    severity=AlertLevel.CRITICAL,
                    title=f"{tube.tube_type} Tube pH Critical",
                    message=f"pH is {ph:g}. DO NOT FEED. Recheck position immediately.",
                    source_type="tube",
                    source_id=tube.id,
                    created_at=now,
                    action_required=True,
                    action_type="check_tube",
                ))
            elif ph >= threshold.ph_warning:
                status.ph_status = "warning"
                status.alert_level = AlertLevel.WARNING
                status.alerts.append(CareAlert(
                    id=f"tube-ph-warning-{tube.id}",
                    patient_id=tube.patient_id,
                    alert_type="tube_ph_high",
                    severity=AlertLevel.WARNING,
                    title=f"{tube.tube_type} Tube pH High",
                    message=f"pH is {ph:g}. Recheck before next feed.",
                    source_type="tube",
                    source_id=tube.id,
                    created_at=now,
                    action_required=True,
                    action_type="check_tube",
                ))
            elif ph >= threshold.ph_safe_min:
                status.ph_status = "safe"

        if hours_in_situ >= threshold.change_hours:
            if status.alert_level == AlertLevel.NONE:
                status.alert_level = AlertLevel.INFO
            status.alerts.append(CareAlert(
                id=f"tube-duration-{tube.id}",
                patient_id=tube.patient_id,
                alert_type="tube_duration",
                severity=AlertLevel.INFO,
                title=f"{tube.tube_type} Tube Change Due",
                message=f"Tube has been in situ for {status.days_in_situ} days.",
                source_type="tube",
                source_id=tube.id,
                created_at=now,
                action_type="change_tube",
            ))

        return status

    def get_all_active_alerts(
        self,
        patient_id: str,
        lines: list[LineRecord],
        tubes: list[TubeRecord],
        now: datetime,
    ) -> list[CareAlert]:
        """Alerts for a patient's active lines and tubes, most severe first."""
        alerts = []
        for line in lines:
            if line.patient_id == patient_id and line.is_active:
                alerts.extend(self.calculate_line_alerts(line, now).alerts)
        for tube in tubes:
            if tube.patient_id == patient_id and tube.is_active:
                alerts.extend(self.calculate_tube_alerts(tube, now).alerts)

        alerts.sort(key=lambda a: a.severity.rank)
        if any(a.severity == AlertLevel.CRITICAL for a in alerts):
            logger.warning(f"Critical line/tube alerts for patient {patient_id}")
        return alerts
