"""Dashboard routes."""

from .discharge_readiness import discharge_readiness_bp
from .shift_tasks import shift_tasks_bp

__all__ = [
    "discharge_readiness_bp",
    "shift_tasks_bp",
]
