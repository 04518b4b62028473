from __future__ import annotations

import logging
from typing import Dict, Tuple

from flask import Flask, Response, jsonify, request

from project_staffing import engine
from project_staffing.engine import SimulationResult, UnstaffableProjectError
from project_staffing.io_utils import config_from_dict, format_report, instance_from_dict
from project_staffing.models import Assignment, SimulationConfig
from project_staffing.recommendations import RecommendationEngine

logger = logging.getLogger(__name__)


def _assignment_to_dict(assignment: Assignment) -> Dict[str, object]:
    project = assignment.project
    return {
        "project": project.name,
        "start_day": assignment.start_day,
        "end_day": assignment.end_day,
        "earned_score": project.earned_score(assignment.start_day),
        "roles": [
            {"skill": role.skill, "level": role.level, "worker": name}
            for role, name in assignment.bindings()
        ],
    }


def _result_to_dict(result: SimulationResult) -> Dict[str, object]:
    return {
        "completed": [_assignment_to_dict(item) for item in result.completed],
        "unstaffed": result.unstaffed,
        "total_score": result.total_score,
        "days_elapsed": result.days_elapsed,
        "recommendations": RecommendationEngine(result.unstaffed, result.workers).analyze(),
    }


def _load_request() -> Tuple[list, list, SimulationConfig, bool]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("request body must be a JSON object")
    workers, projects = instance_from_dict(data.get("instance"))
    cfg = config_from_dict(data.get("config") or {})
    strict = data.get("strict", False)
    if not isinstance(strict, bool):
        raise ValueError("strict must be a boolean")
    return workers, projects, cfg, strict


def _run_simulation() -> Tuple[SimulationResult | None, Tuple[Response, int] | None]:
    try:
        workers, projects, cfg, strict = _load_request()
    except ValueError as exc:
        return None, (jsonify({"error": str(exc)}), 400)
    try:
        result = engine.simulate(workers, projects, cfg, strict=strict)
    except UnstaffableProjectError as exc:
        return None, (jsonify({"error": str(exc), "project": exc.project.name}), 422)
    logger.info(
        "simulated %d project(s): %d completed, %d unstaffed",
        len(projects),
        len(result.completed),
        len(result.unstaffed),
    )
    return result, None


def create_app() -> Flask:
    app = Flask(__name__)

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    @app.post("/api/simulate")
    def simulate():
        result, error = _run_simulation()
        if error is not None:
            return error
        return jsonify(_result_to_dict(result))

    @app.post("/api/simulate/report")
    def simulate_report():
        result, error = _run_simulation()
        if error is not None:
            return error
        return Response(format_report(result.completed), mimetype="text/plain")

    return app


if __name__ == "__main__":
    create_app().run(debug=False)
