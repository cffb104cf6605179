"""Shift task generation for the NICU.

Expands care plans and prescriptions into nursing tasks, classifies their
status at read time, and builds shift bundles, role views and care rounds.
"""

from .screening import ScreeningReminder, generate_screening_reminders
from .shift_planner import ShiftPlanner
from .shift_tasks import ShiftTaskService, StaffRole, format_reminder_message
from .task_generator import InvalidScheduleError, TaskGenerator, generate_all_tasks, make_task_id
from .task_status import (
    classify_status,
    completion_rate,
    format_task_time,
    group_tasks_by_time_window,
    next_task,
    status_for,
    task_summary,
    task_variance_minutes,
)

__all__ = [
    "InvalidScheduleError",
    "ScreeningReminder",
    "ShiftPlanner",
    "ShiftTaskService",
    "StaffRole",
    "TaskGenerator",
    "classify_status",
    "completion_rate",
    "format_reminder_message",
    "format_task_time",
    "generate_all_tasks",
    "generate_screening_reminders",
    "group_tasks_by_time_window",
    "make_task_id",
    "next_task",
    "status_for",
    "task_summary",
    "task_variance_minutes",
]
