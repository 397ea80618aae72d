"""HTTP intake for jobs."""

from flask import Flask, jsonify, request
from pydantic import ValidationError

from .errors import DuplicateJobError, QueueFullError
from .logging_config import get_logger
from .models import Job
from .service import JobRelay

logger = get_logger("jobrelay.api")


def create_app(relay: JobRelay) -> Flask:
    app = Flask("jobrelay")
    app.config["RELAY"] = relay

    @app.route("/jobs", methods=["POST"])
    def submit_job():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            logger.warning("Rejected job with invalid JSON body")
            return jsonify({"error": "invalid JSON body"}), 400

        try:
            job = Job(**payload)
        except ValidationError as e:
            details = e.errors(include_url=False, include_context=False)
            logger.warning("Rejected invalid job", errors=details)
            return jsonify({"error": "invalid job", "details": details}), 400

        try:
            relay.accept(job)
        except DuplicateJobError:
            return jsonify({"message": "job is already pending", "uid": job.uid}), 409
        except QueueFullError:
            return jsonify({"message": "no free workers, try again later", "uid": job.uid}), 503

        return jsonify({"message": "job accepted", "uid": job.uid}), 202

    return app
