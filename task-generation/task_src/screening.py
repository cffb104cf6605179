"""Newborn screening reminders driven by day of life and corrected gestation.

Schedules:
- NBBS blood spot on day 5, repeated on day 28 for babies born <32 weeks
- ROP eye screening for <32 weeks or <1500g while CGA is 30-36 weeks
- Cranial ultrasound on days 1, 7 and 28 for babies born <32 weeks
- Weekly MRSA/CRO swabs
- Hearing screen before discharge
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from common.clinical_data import Patient
from common.unit_config import DEFAULT_UNIT_CONFIG, ScreeningSettings

logger = logging.getLogger(__name__)


@dataclass
class ScreeningReminder:
    id: str
    patient_id: str
    screening_type: str  # nbbs, nbbs_day28, rop, cranial_uss, hearing, infection_swabs
    due_date: datetime
    description: str
    status: str  # upcoming, due, overdue
    escalated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "screening_type": self.screening_type,
            "due_date": self.due_date.isoformat(),
            "description": self.description,
            "status": self.status,
            "escalated": self.escalated,
        }


def _status(age_in_days: int, due_day: int) -> str:
    if age_in_days > due_day:
        return "overdue"
    if age_in_days == due_day:
        return "due"
    return "upcoming"


def generate_screening_reminders(
    patients: list[Patient],
    current_date: datetime,
    settings: ScreeningSettings | None = None,
) -> list[ScreeningReminder]:
    """Screening reminders due around current_date for each patient.

    Args:
        patients: Patients on the unit
        current_date: Date to evaluate against
        settings: Screening schedule (defaults to the unit defaults)

    Returns:
        List of ScreeningReminder
    """
    settings = settings or DEFAULT_UNIT_CONFIG.screening
    reminders = []

    for patient in patients:
        dob = patient.date_of_birth
        age_in_days = (current_date.date() - dob.date()).days
        cga_weeks, cga_days = patient.corrected_gestational_age(current_date)
        born_weeks = patient.gestation_at_birth_weeks

        # NBBS day 5
        nbbs_day = settings.nbbs_day_of_life
        if nbbs_day - settings.nbbs_reminder_days_before <= age_in_days <= nbbs_day + settings.nbbs_escalate_if_overdue_days:
            reminders.append(ScreeningReminder(
                id=f"screening-nbbs-{patient.id}",
                patient_id=patient.id,
                screening_type="nbbs",
                due_date=dob + timedelta(days=nbbs_day),
                description=f"Newborn Blood Spot screening - Day {nbbs_day}",
                status=_status(age_in_days, nbbs_day),
                escalated=age_in_days >= nbbs_day + settings.nbbs_escalate_if_overdue_days,
            ))

        # Repeat NBBS for preterms
        day28 = settings.nbbs_day28_day_of_life
        if born_weeks < settings.nbbs_day28_max_gestation_weeks:
            if day28 - settings.nbbs_day28_reminder_days_before <= age_in_days <= day28 + 7:
                reminders.append(ScreeningReminder(
                    id=f"screening-nbbs28-{patient.id}",
                    patient_id=patient.id,
                    screening_type="nbbs_day28",
                    due_date=dob + timedelta(days=day28),
                    description=f"Preterm repeat NBBS - Day {day28}",
                    status=_status(age_in_days, day28),
                ))

        # ROP
        rop_eligible = (
            born_weeks < settings.rop_max_gestation_weeks
            or patient.birth_weight_grams < settings.rop_max_birth_weight_grams
        )
        if rop_eligible and settings.rop_start_weeks <= cga_weeks <= settings.rop_end_weeks:
            reminders.append(ScreeningReminder(
                id=f"screening-rop-{patient.id}-{cga_weeks}",
                patient_id=patient.id,
                screening_type="rop",
                due_date=current_date,
                description=f"ROP screening due - CGA {cga_weeks}+{cga_days}",
                status="due",
            ))

        # Weekly swabs
        if current_date.strftime("%A") == settings.swab_day:
            reminders.append(ScreeningReminder(
                id=f"screening-swabs-{patient.id}-{current_date:%Y-%m-%d}",
                patient_id=patient.id,
                screening_type="infection_swabs",
                due_date=current_date,
                description=f"Weekly {'/'.join(settings.swab_types)} swabs",
                status="due",
            ))

        # Cranial ultrasound
        if born_weeks < settings.cranial_uss_max_gestation_weeks:
            for scan_day, description in settings.cranial_uss_days_of_life:
                if scan_day - 1 <= age_in_days <= scan_day + 2:
                    reminders.append(ScreeningReminder(
                        id=f"screening-cuss-{patient.id}-dol{scan_day}",
                        patient_id=patient.id,
                        screening_type="cranial_uss",
                        due_date=dob + timedelta(days=scan_day),
                        description=description,
                        status="overdue" if age_in_days > scan_day else "due",
                    ))

        # Hearing
        if age_in_days >= settings.hearing_min_day_of_life:
            reminders.append(ScreeningReminder(
                id=f"screening-hearing-{patient.id}",
                patient_id=patient.id,
                screening_type="hearing",
                due_date=current_date,
                description="Hearing screening - required before discharge",
                status="upcoming",
            ))

    logger.debug(f"{len(reminders)} screening reminders for {len(patients)} patients on {current_date:%Y-%m-%d}")
    return reminders
