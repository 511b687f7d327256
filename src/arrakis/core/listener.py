# src/arrakis/core/listener.py
import dataclasses
import logging

from flask import Flask, jsonify

from arrakis.core.controller import AdaptivePollingController

logger = logging.getLogger(__name__)


def create_app(controller: AdaptivePollingController) -> Flask:
    """Build a small HTTP control surface for a running controller."""
    app = Flask(__name__)

    @app.route('/', methods=['GET'])
    def status():
        payload = dataclasses.asdict(controller.snapshot())
        payload["stats"] = {**controller.stats.summary(), **controller.stats.recent_summary()}
        return jsonify(payload), 200

    @app.route('/enable', methods=['POST'])
    def enable():
        controller.enable()
        logger.info("Adaptive polling enabled via control endpoint")
        return jsonify({"enabled": controller.is_enabled()}), 200

    @app.route('/disable', methods=['POST'])
    def disable():
        controller.disable()
        logger.info("Adaptive polling disabled via control endpoint")
        return jsonify({"enabled": controller.is_enabled()}), 200

    @app.route('/reset', methods=['POST'])
    def reset():
        controller.reset()
        return jsonify({"average": controller.average}), 200

    return app


def run_server(controller: AdaptivePollingController, host='127.0.0.1', port=2048):
    app = create_app(controller)
    app.run(host=host, port=port)
