"""Web server for Slack events."""

import logging
from typing import Any, Dict

from flask import Flask, jsonify, request

from .slack_app import SlackApp

logger = logging.getLogger(__name__)


def create_web_server(slack_app: SlackApp) -> Flask:
    """Create Flask web server receiving Slack Events API callbacks."""

    app = Flask(__name__)

    @app.route("/", methods=["GET"])
    def root() -> Any:
        """Root endpoint."""
        return jsonify({"service": "prdigest", "status": "running"})

    @app.route("/health", methods=["GET"])
    def health_check() -> Any:
        """Health check endpoint."""
        service = slack_app.router.service

        async def snapshot() -> Dict[str, int]:
            return service.status()

        # Bot state is only read on the bot loop
        try:
            counts = slack_app.runtime.call(snapshot(), timeout=5)
        except Exception as e:
            logger.error(f"Health check failed: {e!r}")
            return jsonify({"status": "unhealthy", "service": "prdigest"}), 503

        return jsonify({"status": "healthy", "service": "prdigest", **counts})

    @app.route("/slack/events", methods=["POST"])
    def handle_events() -> Any:
        """Handle Slack events."""
        body = request.get_data(as_text=True)
        if not slack_app.verify_slack_request(dict(request.headers), body):
            return jsonify({"status": "error", "message": "invalid signature"}), 401

        payload = request.get_json(silent=True) or {}

        # Handle URL verification
        if payload.get("type") == "url_verification":
            return jsonify({"challenge": payload.get("challenge")})

        # Slack retries events it thinks timed out; the first delivery is
        # already being handled.
        if request.headers.get("X-Slack-Retry-Num"):
            return jsonify({"status": "ok", "retry": True})

        try:
            event = payload.get("event") or {}
            slack_app.handle_message_event(event)
            return jsonify({"status": "ok"})
        except Exception as e:
            logger.error(f"Error handling event: {e}")
            return jsonify({"status": "error", "message": str(e)}), 500

    return app
