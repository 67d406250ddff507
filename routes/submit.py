"""Submission API routes."""

from __future__ import annotations

from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from catalog.state import CatalogState
from content_api.client import ContentAPIError
from routes.api_utils import APIError, BadRequestError, handle_api_errors
from submissions.service import SubmissionService
from submissions.validation import SubmissionError, ValidationError

submit_blueprint = Blueprint("submit", __name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the submission endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"submit routes missing context value: {key}")
    return _context[key]


def _get_service() -> SubmissionService:
    factory: Callable[[], SubmissionService] = _ctx("get_submission_service")
    return factory()


@submit_blueprint.after_request
def _apply_cors(response):
    if request.path == "/api/submit":
        for header, value in CORS_HEADERS.items():
            response.headers[header] = value
    return response


@submit_blueprint.route("/api/submit", methods=["POST", "OPTIONS"])
@handle_api_errors
def api_submit():
    if request.method == "OPTIONS":
        return "", 204

    try:
        payload = request.get_json(silent=True)
    except RequestEntityTooLarge as exc:
        raise APIError("file too large", status_code=413) from exc
    try:
        result = _get_service().submit(payload)
    except ValidationError as exc:
        raise BadRequestError(str(exc)) from exc
    except SubmissionError as exc:
        raise APIError(str(exc), status_code=exc.status_code) from exc
    except ContentAPIError as exc:
        raise APIError(str(exc), status_code=500) from exc
    except Exception as exc:
        raise APIError(str(exc) or "Internal error", status_code=500) from exc
    return jsonify(result)


@submit_blueprint.route("/api/submit/options")
@handle_api_errors
def api_submit_options():
    state: CatalogState = _ctx("catalog_state")
    return jsonify({"options": state.submit_options()})


__all__ = ["CORS_HEADERS", "configure", "submit_blueprint"]
