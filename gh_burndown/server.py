"""HTTP boundary: JSON chart endpoint, stored chart files and the optional Slack app."""

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from flask import Flask, abort, jsonify, request, send_from_directory

from .core.orchestrator import BurndownOrchestrator, OrchestratorError
from .core.phase1_environment import setup_environment
from .core.types import EnvironmentConfig

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[EnvironmentConfig] = None,
    orchestrator_factory: Optional[Callable[[], BurndownOrchestrator]] = None,
) -> Flask:
    config = config or setup_environment()
    if orchestrator_factory is None:
        def orchestrator_factory() -> BurndownOrchestrator:
            return BurndownOrchestrator(config=config, enable_logging=config.burndown_log)

    app = Flask(__name__, static_folder=None)
    output_dir = Path(config.output_dir).resolve()
    frontend_dir = Path(config.frontend_dist).resolve()

    @app.get("/burndown")
    def burndown():
        orchestrator = orchestrator_factory()
        try:
            identifier = orchestrator.run(
                request.args.get("project-id"),
                token=request.args.get("token"),
                end_date=request.args.get("end-date"),
                sprint_label=request.args.get("sprint-label"),
                tz_name=request.args.get("tz"),
            )
        except OrchestratorError as e:
            return jsonify({"error": e.message}), e.status_code

        return jsonify({"burndownChart": orchestrator.chart_url(identifier)})

    @app.get("/burndown/<path:filename>")
    def burndown_file(filename: str):
        return send_from_directory(output_dir, filename)

    @app.get("/")
    @app.get("/<path:filename>")
    def frontend(filename: str = "index.html"):
        if not frontend_dir.is_dir():
            abort(404)
        if not (frontend_dir / filename).is_file():
            filename = "index.html"
        return send_from_directory(frontend_dir, filename)

    if config.slack_enabled:
        _mount_slack(app, config, orchestrator_factory)

    return app


def _mount_slack(app: Flask, config: EnvironmentConfig, orchestrator_factory) -> None:
    from slack_bolt import App
    from slack_bolt.adapter.flask import SlackRequestHandler

    from .commands import register_commands

    bolt_app = App(
        token=config.slack_bot_token,
        signing_secret=config.slack_signing_secret,
        process_before_response=True,
    )
    register_commands(bolt_app, orchestrator_factory)
    handler = SlackRequestHandler(bolt_app)

    @app.post("/slack/events")
    def slack_events():
        return handler.handle(request)

    logger.info("Slack /burndown command enabled at /slack/events")


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "3000")))


if __name__ == "__main__":
    main()
