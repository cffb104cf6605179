"""Tests for unit configuration defaults and environment overrides."""

import sys
from datetime import date, datetime
from pathlib import Path

import pytest

# Add repo root to path for imports
ROOT = Path(__file__).parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from common.unit_config import DEFAULT_UNIT_CONFIG, ShiftDefinition, UnitConfig


def test_defaults():
    config = UnitConfig()

    assert config.feeding.standard_volume_ml_per_kg_per_day == 150
    assert config.feeding.default_frequency_hours == 3
    assert config.ng_removal.oral_percentage_threshold == 95
    assert config.ng_removal.minimum_consecutive_feeds == 8
    assert not config.ng_removal.allow_ng_top_ups
    assert config.discharge.weight_gate.minimum_weight_grams == 1800
    assert config.discharge.respiratory_gate.episode_free_days == 5
    assert config.discharge.feeding_gate.oral_percentage_target == 100
    assert config.episodes.episodes_per_shift == 10
    assert config.shifts.reminder_lead_minutes["critical"] == 60


def test_instances_do_not_share_state():
    first = UnitConfig()
    second = UnitConfig()

    first.shifts.reminder_lead_minutes["routine"] = 1
    first.line_thresholds.clear()

    assert second.shifts.reminder_lead_minutes["routine"] == 15
    assert second.get_line_threshold("PICC") is not None
    assert DEFAULT_UNIT_CONFIG.get_line_threshold("PICC") is not None


def test_shift_durations():
    config = UnitConfig()

    assert config.shifts.get_shift("day").duration_hours == 12
    assert config.shifts.get_shift("night").duration_hours == 12
    assert config.shifts.get_shift("long_day").duration_hours == 14
    assert ShiftDefinition("twilight", 22, 6).duration_hours == 8

    with pytest.raises(ValueError):
        config.shifts.get_shift("twilight")


def test_shift_times_on_date():
    shifts = UnitConfig().shifts

    assert shifts.get_shift("day").times_on(date(2026, 1, 15)) == (
        datetime(2026, 1, 15, 8, 0), datetime(2026, 1, 15, 20, 0),
    )
    assert shifts.get_shift("night").times_on(date(2026, 1, 15)) == (
        datetime(2026, 1, 15, 20, 0), datetime(2026, 1, 16, 8, 0),
    )
    assert ShiftDefinition("twilight", 22, 6).times_on(datetime(2026, 1, 31, 23, 15)) == (
        datetime(2026, 1, 31, 22, 0), datetime(2026, 2, 1, 6, 0),
    )


def test_task_windows():
    shifts = UnitConfig().shifts

    assert shifts.window_for("procedure") == 60
    assert shifts.window_for("feeding") == 30
    assert shifts.window_for("skin_care") == shifts.default_window_minutes


def test_threshold_lookup():
    config = UnitConfig()

    picc = config.get_line_threshold("PICC")
    assert picc.warning_hours == 240
    assert picc.critical_hours == 336
    assert config.get_line_threshold("unknown") is None

    ng = config.get_tube_threshold("NG")
    assert ng.change_hours == 72
    assert ng.ph_warning == 5.5
    assert ng.ph_critical == 6.0
    assert config.get_tube_threshold("gastrostomy") is None


def test_from_env(monkeypatch):
    monkeypatch.setenv("NICU_UNIT_ID", "rvi-nicu")
    monkeypatch.setenv("NICU_UNIT_NAME", "Ward 35")
    monkeypatch.setenv("NICU_MIN_DISCHARGE_WEIGHT_G", "2000")
    monkeypatch.setenv("NICU_EPISODE_FREE_DAYS", "7")
    monkeypatch.setenv("NICU_ORAL_THRESHOLD_PCT", "90")
    monkeypatch.setenv("NICU_MIN_CONSECUTIVE_FEEDS", "6")
    monkeypatch.setenv("NICU_FEED_ML_PER_KG_DAY", "165")

    config = UnitConfig.from_env()

    assert config.unit_id == "rvi-nicu"
    assert config.unit_name == "Ward 35"
    assert config.discharge.weight_gate.minimum_weight_grams == 2000
    assert config.discharge.respiratory_gate.episode_free_days == 7
    assert config.episodes.episode_free_days == 7
    assert config.ng_removal.oral_percentage_threshold == 90
    assert config.ng_removal.minimum_consecutive_feeds == 6
    assert config.feeding.standard_volume_ml_per_kg_per_day == 165


def test_from_env_rejects_bad_values(monkeypatch):
    monkeypatch.setenv("NICU_ORAL_THRESHOLD_PCT", "120")
    with pytest.raises(ValueError):
        UnitConfig.from_env()

    monkeypatch.setenv("NICU_ORAL_THRESHOLD_PCT", "95")
    monkeypatch.setenv("NICU_MIN_CONSECUTIVE_FEEDS", "0")
    with pytest.raises(ValueError):
        UnitConfig.from_env()


def test_validate_shifts():
    config = UnitConfig()
    config.shifts.shifts["broken"] = ShiftDefinition("broken", 9, 9)

    with pytest.raises(ValueError):
        config.validate()


def test_to_dict():
    data = UnitConfig().to_dict()

    assert data["unit_id"] == "default"
    assert data["minimum_discharge_weight_grams"] == 1800
    assert data["shifts"]["night"] == {"start_hour": 20, "end_hour": 8}


def test_log_level_from_env(monkeypatch):
    monkeypatch.setenv("NICU_LOG_LEVEL", "debug")
    assert UnitConfig.from_env().log_level == "debug"

    monkeypatch.setenv("NICU_LOG_LEVEL", "chatty")
    with pytest.raises(ValueError):
        UnitConfig.from_env()
