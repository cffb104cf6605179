"""Flask application factory for the NICU dashboard API."""

import logging
from datetime import datetime

from flask import Flask

from common.clinical_data import DemoClinicalData, build_demo_data
from common.nursing_tasks import CompletionLog
from common.unit_config import UnitConfig
from task_src import ShiftPlanner, ShiftTaskService

from .routes import discharge_readiness_bp, shift_tasks_bp

logger = logging.getLogger(__name__)


def create_app(
    config: UnitConfig | None = None,
    data: DemoClinicalData | None = None,
    now: datetime | None = None,
) -> Flask:
    """Build the dashboard app.

    Args:
        config: Unit configuration (defaults to UnitConfig.from_env())
        data: Clinical data provider (defaults to the demo data set)
        now: Fixed clock for demos and tests; None uses the wall clock

    Returns:
        Configured Flask app
    """
    app = Flask(__name__)

    unit_config = config or UnitConfig.from_env()
    app.config["UNIT_CONFIG"] = unit_config
    app.config["FIXED_NOW"] = now

    app.clinical_data = data if data is not None else build_demo_data(now)
    app.completion_log = CompletionLog()
    app.shift_planner = ShiftPlanner(ShiftTaskService(unit_config), app.completion_log)

    app.register_blueprint(shift_tasks_bp)
    app.register_blueprint(discharge_readiness_bp)

    logger.info(f"Dashboard ready for {unit_config.unit_name} ({len(app.clinical_data.patients)} patients)")
    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    create_app().run(debug=True)
