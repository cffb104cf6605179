"""Tests for shift bundles, role views and care rounds."""

import logging
import sys
from dataclasses import replace
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest

# Add repo root and task-generation to path for imports
ROOT = Path(__file__).parent.parent.parent
for path in (ROOT, ROOT / "task-generation"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from common.clinical_data import (
    CarePlan,
    CarePlanStatus,
    FeedingPlan,
    MedicationPrescription,
    ObservationPlan,
    Patient,
)
from common.nursing_tasks import CompletionLog, TaskType
from common.unit_config import UnitConfig
from task_src.shift_tasks import ShiftTaskService, StaffRole, format_reminder_message

SHIFT_DATE = date(2026, 1, 15)


def make_patient(patient_id: str = "baby1") -> Patient:
    return Patient(
        id=patient_id,
        name=f"Baby {patient_id}",
        date_of_birth=datetime(2026, 1, 1, 3, 0),
        gestation_at_birth_weeks=30,
        birth_weight_grams=1300,
        current_weight_grams=1500,
    )


def make_plan(patient_id: str = "baby1") -> CarePlan:
    return CarePlan(
        id=f"careplan-{patient_id}-v1",
        patient_id=patient_id,
        version=1,
        effective_from=datetime(2026, 1, 10),
        feeding_plan=FeedingPlan(frequency_hours=3, volume_per_feed_ml=28),
        observation_plan=ObservationPlan(frequency="4-hourly"),
    )


def make_rx(patient_id: str = "baby1") -> MedicationPrescription:
    return MedicationPrescription(
        id=f"rx-caffeine-{patient_id}",
        patient_id=patient_id,
        medication_name="Caffeine citrate",
        dose_amount=7.5,
        dose_unit="mg",
        route="oral",
        frequency="twice daily",
        timings=["10:00", "22:00"],
        start_date=datetime(2026, 1, 10),
    )


def day_bundle(service=None, patients=None, care_plans=None, prescriptions=None):
    service = service or ShiftTaskService()
    return service.generate_shift_tasks(
        patients if patients is not None else [make_patient()],
        care_plans if care_plans is not None else [make_plan()],
        prescriptions if prescriptions is not None else [make_rx()],
        "day",
        SHIFT_DATE,
        generated_by="charge-nurse",
        generated_at=datetime(2026, 1, 15, 7, 30),
    )


def test_shift_times():
    service = ShiftTaskService()

    day = service.get_shift_times(SHIFT_DATE, "day")
    assert day.start == datetime(2026, 1, 15, 8, 0)
    assert day.end == datetime(2026, 1, 15, 20, 0)
    assert day.shift_id == "shift-day-2026-01-15"

    night = service.get_shift_times(SHIFT_DATE, "night")
    assert night.start == datetime(2026, 1, 15, 20, 0)
    assert night.end == datetime(2026, 1, 16, 8, 0)

    with pytest.raises(ValueError):
        service.get_shift_times(SHIFT_DATE, "twilight")


def test_day_shift_bundle():
    bundle = day_bundle()

    # Feeds 08,11,14,17; obs 08,12,16; caffeine 10:00 (22:00 is on nights)
    assert bundle.stats["total_tasks"] == 8
    assert bundle.stats["by_type"] == {"feeding": 4, "vital_signs": 3, "medication": 1}
    assert bundle.stats["by_patient"] == {"baby1": 8}
    assert bundle.generated_by == "charge-nurse"

    shift = bundle.shift
    for task in bundle.all_tasks:
        assert shift.start <= task.scheduled_at < shift.end
        assert task.shift_id == "shift-day-2026-01-15"
        assert shift.start <= task.window_start <= task.scheduled_at
        assert task.scheduled_at <= task.window_end <= shift.end


def test_windows_clamped_to_shift():
    bundle = day_bundle()
    first_feed = bundle.all_tasks[0]

    assert first_feed.scheduled_at == datetime(2026, 1, 15, 8, 0)
    assert first_feed.window_start == datetime(2026, 1, 15, 8, 0)
    assert first_feed.window_end == datetime(2026, 1, 15, 8, 30)


def test_night_shift_crosses_midnight():
    bundle = ShiftTaskService().generate_shift_tasks(
        [make_patient()], [make_plan()], [make_rx()], "night", SHIFT_DATE, generated_by="night-nurse",
    )

    meds = [t for t in bundle.all_tasks if t.task_type == TaskType.MEDICATION]
    feeds = [t for t in bundle.all_tasks if t.task_type == TaskType.FEEDING]

    assert [t.scheduled_at for t in meds] == [datetime(2026, 1, 15, 22, 0)]
    assert [t.scheduled_at.hour for t in feeds] == [20, 23, 2, 5]
    assert feeds[-1].scheduled_at.date() == date(2026, 1, 16)


def test_reminders():
    bundle = day_bundle()
    reminders = {r.task_id: r for r in bundle.reminders}

    assert len(reminders) == len(bundle.all_tasks)

    feed = bundle.all_tasks[0]
    reminder = reminders[feed.id]
    assert reminder.id == f"reminder-{feed.id}"
    assert reminder.remind_at == feed.scheduled_at - timedelta(minutes=15)
    assert reminder.priority == "low"
    assert reminder.message == "Due at 08:00: Feed due (28ml)"

    med = next(t for t in bundle.all_tasks if t.task_type == TaskType.MEDICATION)
    assert reminders[med.id].remind_at == datetime(2026, 1, 15, 9, 30)
    assert reminders[med.id].priority == "medium"
    assert reminders[med.id].message == "Due at 10:00: Medication: Caffeine citrate"


def test_format_reminder_message_types():
    bundle = day_bundle()
    obs = next(t for t in bundle.all_tasks if t.task_type == TaskType.VITAL_SIGNS)

    assert format_reminder_message(obs, "due_now") == "Due now: Vital signs check"
    assert format_reminder_message(obs, "overdue") == "OVERDUE: Vital signs check"


def test_patient_without_plan_gets_no_tasks():
    bundle = day_bundle(patients=[make_patient("baby1"), make_patient("baby2")])

    assert bundle.tasks_by_patient["baby2"] == []
    assert bundle.stats["by_patient"] == {"baby1": 8, "baby2": 0}


def test_superseded_plan_not_used():
    original = make_plan()
    revised, superseded = original.revise(feeding_plan=FeedingPlan(frequency_hours=2, volume_per_feed_ml=20))

    bundle = day_bundle(care_plans=[superseded, revised], prescriptions=[])
    feeds = [t for t in bundle.all_tasks if t.task_type == TaskType.FEEDING]

    assert revised.id == "careplan-baby1-v2"
    assert len(feeds) == 6
    assert all(t.generated_from.source_id == "careplan-baby1-v2" for t in feeds)


def test_two_active_plans_use_highest_version(caplog):
    original = make_plan()
    revised, superseded = original.revise(feeding_plan=FeedingPlan(frequency_hours=3, volume_per_feed_ml=40))
    still_active = replace(superseded, status=CarePlanStatus.ACTIVE)

    with caplog.at_level(logging.WARNING):
        bundle = day_bundle(care_plans=[still_active, revised], prescriptions=[])
    feeds = [t for t in bundle.all_tasks if t.task_type == TaskType.FEEDING]

    assert len(feeds) == 4
    assert [t.scheduled_time_of_day for t in feeds] == ["08:00", "11:00", "14:00", "17:00"]
    assert {t.details.volume_ml for t in feeds} == {40}
    assert {t.generated_from.source_id for t in bundle.all_tasks} == {"careplan-baby1-v2"}
    assert "2 active care plans" in caplog.text


def test_bundle_generation_is_deterministic():
    patients = [make_patient("baby1"), make_patient("baby2")]
    care_plans = [make_plan("baby1"), make_plan("baby2")]
    prescriptions = [make_rx("baby1"), make_rx("baby2")]

    first = day_bundle(patients=patients, care_plans=care_plans, prescriptions=prescriptions)
    second = day_bundle(patients=patients, care_plans=care_plans, prescriptions=prescriptions)

    assert [t.id for t in first.all_tasks] == [t.id for t in second.all_tasks]
    assert first.all_tasks == second.all_tasks
    assert [r.to_dict() for r in first.reminders] == [r.to_dict() for r in second.reminders]
    assert first.stats == second.stats


def test_role_views():
    service = ShiftTaskService()
    tasks = day_bundle(service).all_tasks

    assert service.filter_tasks_for_role(tasks, "nurse") == tasks
    hca = service.filter_tasks_for_role(tasks, StaffRole.HCA)
    assert {t.task_type for t in hca} == {TaskType.VITAL_SIGNS}
    doctor = service.filter_tasks_for_role(tasks, "doctor")
    assert [t.task_type for t in doctor] == [TaskType.MEDICATION]
    assert service.filter_tasks_for_role(tasks, "anp") == doctor

    # No urgent work and no clock, so nothing for the unit manager
    assert service.filter_tasks_for_role(tasks, "unit_manager") == []


def test_role_views_are_subsets_and_idempotent():
    service = ShiftTaskService()
    tasks = day_bundle(service).all_tasks
    now = datetime(2026, 1, 15, 13, 0)

    for role in StaffRole:
        view = service.filter_tasks_for_role(tasks, role, CompletionLog(), now)
        assert all(t in tasks for t in view)
        assert service.filter_tasks_for_role(view, role, CompletionLog(), now) == view


def test_unit_manager_sees_overdue():
    service = ShiftTaskService()
    tasks = day_bundle(service).all_tasks
    log = CompletionLog()
    now = datetime(2026, 1, 15, 13, 0)

    # Feeds 08, 11; obs 08, 12; caffeine 10 have all closed their windows
    assert len(service.filter_tasks_for_role(tasks, "unit_manager", log, now)) == 5

    log.complete(tasks[0].id, "nurse-a", datetime(2026, 1, 15, 8, 5))
    assert len(service.filter_tasks_for_role(tasks, "unit_manager", log, now)) == 4


def test_unknown_role():
    with pytest.raises(ValueError):
        ShiftTaskService().filter_tasks_for_role([], "porter")


def test_upcoming_and_overdue():
    service = ShiftTaskService()
    tasks = day_bundle(service).all_tasks
    log = CompletionLog()

    upcoming = service.get_upcoming_tasks(tasks, log, datetime(2026, 1, 15, 10, 45))
    assert [t.scheduled_at for t in upcoming] == [datetime(2026, 1, 15, 11, 0)]

    overdue = service.get_overdue_tasks(tasks, log, datetime(2026, 1, 15, 13, 0))
    assert len(overdue) == 5

    for task in overdue:
        log.complete(task.id, "nurse-a", datetime(2026, 1, 15, 13, 0))
    assert service.get_overdue_tasks(tasks, log, datetime(2026, 1, 15, 13, 0)) == []


def test_cluster_tasks():
    service = ShiftTaskService()
    tasks = day_bundle(service).all_tasks

    clusters = service.cluster_tasks(tasks, 30)
    first = clusters["baby1-2026-01-15T08:00:00"]
    assert {t.task_type for t in first} == {TaskType.FEEDING, TaskType.VITAL_SIGNS}
    assert len(clusters) == 7
    assert sum(len(c) for c in clusters.values()) == len(tasks)

    # 10:00, 11:00 and 12:00 chain at a 60 minute window
    wide = service.cluster_tasks(tasks, 60)
    assert len(wide) == 4
    assert len(wide["baby1-2026-01-15T10:00:00"]) == 3


def test_clusters_never_mix_patients():
    service = ShiftTaskService()
    tasks = day_bundle(
        service,
        patients=[make_patient("baby1"), make_patient("baby2")],
        care_plans=[make_plan("baby1"), make_plan("baby2")],
        prescriptions=[make_rx("baby1"), make_rx("baby2")],
    ).all_tasks

    for cluster in service.care_rounds(tasks, 30):
        assert {t.patient_id for t in cluster.tasks} == {cluster.patient_id}

    rounds = service.care_rounds(tasks, 30)
    assert [c.start for c in rounds] == sorted(c.start for c in rounds)


def test_pre_generate_upcoming_shifts():
    service = ShiftTaskService()
    args = ([make_patient()], [make_plan()], [make_rx()])

    bundles = service.pre_generate_upcoming_shifts(*args, generated_by="system", now=datetime(2026, 1, 15, 9, 0))
    assert [b.shift_id for b in bundles] == [
        "shift-day-2026-01-15",
        "shift-night-2026-01-15",
        "shift-day-2026-01-16",
        "shift-night-2026-01-16",
    ]

    # 03:00 belongs to the night shift that started the previous evening
    early = service.pre_generate_upcoming_shifts(
        *args, generated_by="system", now=datetime(2026, 1, 16, 3, 0), hours_ahead=12,
    )
    assert [b.shift_id for b in early] == ["shift-night-2026-01-15"]


def test_custom_reminder_leads():
    config = UnitConfig()
    config.shifts.reminder_lead_minutes["routine"] = 5
    bundle = day_bundle(ShiftTaskService(config))

    feed = bundle.all_tasks[0]
    reminder = next(r for r in bundle.reminders if r.task_id == feed.id)
    assert reminder.remind_at == feed.scheduled_at - timedelta(minutes=5)
