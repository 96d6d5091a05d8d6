#!/usr/bin/env python3
"""FeatureSmith - HTTP surface for the feature pipeline."""

import logging
import os
import re

from flask import Flask, abort, current_app, jsonify, request, send_from_directory

from config.defaults import get_setting
from core.artifacts import resolve_path
from core.errors import ExternalServiceError, ParseError
from core.events import EventLog, log_subscriber
from core.orchestrator import Orchestrator
from utils.preview import render_preview_page

logger = logging.getLogger(__name__)

_COMPONENT_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def _services():
    return current_app.extensions["featuresmith"]


def _json_body():
    """Request JSON as a dict; any other body counts as no input."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message, details="", status=400, **extra):
    body = {"error": message, "details": details}
    body.update(extra)
    return jsonify(body), status


def _preview_url(result):
    """Preview link for the first component written by this run, if any."""
    for update in result.get("fileUpdates", []):
        if update["success"] and update["type"] == "component":
            name = os.path.splitext(os.path.basename(update["artifactPath"]))[0]
            return f"/preview/{name}"
    return None


def create_app(orchestrator=None, event_log=None):
    """Build the Flask app around one explicitly constructed orchestrator."""
    app = Flask(__name__)
    event_log = event_log or EventLog(maxlen=get_setting("event_log_size"))
    orchestrator = orchestrator or Orchestrator()
    orchestrator.channel.subscribe(event_log)
    orchestrator.channel.subscribe(log_subscriber)
    app.extensions["featuresmith"] = {"orchestrator": orchestrator, "event_log": event_log}

    @app.route("/api/health")
    def api_health():
        orch = _services()["orchestrator"]
        return jsonify({
            "status": "ok",
            "artifacts": len(orch.context_store),
            "patterns": len(orch.pattern_store),
        })

    @app.route("/api/generate", methods=["POST"])
    def api_generate():
        """Run the whole pipeline for {"featureRequest": "..."}."""
        data = _json_body()
        feature_request = data.get("featureRequest")
        if not isinstance(feature_request, str) or not feature_request.strip():
            return _error("Feature request is required", "Body must contain a non-empty featureRequest")

        services = _services()
        try:
            result = services["orchestrator"].process_feature_request(feature_request.strip())
        except Exception as e:
            logger.exception("Unhandled pipeline error")
            logs = [ev["payload"].get("message", "") for ev in services["event_log"].recent()]
            return _error("Internal server error", str(e), status=500, logs=logs)

        preview = _preview_url(result)
        if preview:
            result["previewUrl"] = preview
        return jsonify(result)

    @app.route("/api/plan", methods=["POST"])
    def api_plan():
        """Dry run: plan only, nothing written."""
        data = _json_body()
        feature_request = data.get("featureRequest")
        if not isinstance(feature_request, str) or not feature_request.strip():
            return _error("Feature request is required", "Body must contain a non-empty featureRequest")
        try:
            plan = _services()["orchestrator"].plan_only(feature_request.strip())
        except ParseError as e:
            return _error("Planning failed", str(e), status=422)
        except ExternalServiceError as e:
            return _error("Planning failed", str(e), status=502)
        return jsonify({"plan": plan.to_dict(), "dryRun": True})

    @app.route("/api/history")
    def api_history():
        return jsonify([task.to_dict() for task in _services()["orchestrator"].history()])

    @app.route("/api/tasks/<task_id>")
    def api_task(task_id):
        task = _services()["orchestrator"].get_task(task_id)
        if task is None:
            return _error("Task not found", task_id, status=404)
        return jsonify(task.to_dict())

    @app.route("/api/artifacts")
    def api_artifacts():
        artifacts = _services()["orchestrator"].context_store.list_all()
        return jsonify([{"path": path, "timestamp": ts} for path, ts in artifacts])

    @app.route("/api/logs")
    def api_logs():
        limit = request.args.get("limit", type=int)
        return jsonify({"logs": _services()["event_log"].recent(limit)})

    @app.route("/preview/<component>")
    def preview(component):
        if not _COMPONENT_NAME_RE.match(component):
            abort(404)
        store = _services()["orchestrator"].artifact_store
        source_path = resolve_path(component)
        if not store.exists(source_path):
            jsx_path = resolve_path(f"{component}.jsx")
            if not store.exists(jsx_path):
                return f"Component {component} not found", 404
            source_path = jsx_path
        css_path = resolve_path(f"{component}.css")
        stylesheet = f"/{css_path}" if store.exists(css_path) else None
        return render_preview_page(component, store.read(source_path), stylesheet)

    @app.route("/components/<path:filename>")
    def components(filename):
        root = _services()["orchestrator"].artifact_store.root
        return send_from_directory(os.path.join(root, "components"), filename)

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 5001))
    app = create_app()
    loaded = app.extensions["featuresmith"]["orchestrator"].initialize()
    print(f"FeatureSmith running at http://localhost:{port} ({loaded} artifact(s) loaded)")
    app.run(debug=False, port=port, threaded=True)
