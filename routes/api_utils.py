"""Shared helpers for API routes (error handling and logging)."""

from __future__ import annotations

import json
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException

P = ParamSpec("P")
R = TypeVar("R")


class APIError(Exception):
    """Base class for API errors that includes an HTTP status code."""

    status_code: int = 500
    message: str = "An unexpected error occurred."

    def __init__(
        self,
        message: str | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict[str, str]:
        return {"error": self.message}


class BadRequestError(APIError):
    status_code = 400
    message = "Invalid request."


class NotFoundError(APIError):
    status_code = 404
    message = "Resource not found."


def _summarize_json(payload: Any) -> Any:
    """Describe a submit body without echoing field values or image data."""

    if not isinstance(payload, dict):
        return type(payload).__name__
    summary: dict[str, Any] = {"collection": payload.get("collection")}
    fields = payload.get("fields")
    if isinstance(fields, dict):
        summary["fields"] = sorted(str(key) for key in fields)
    image = payload.get("image")
    if isinstance(image, dict):
        summary["image"] = {
            "filename": image.get("filename"),
            "base64_chars": len(str(image.get("dataBase64") or "")),
        }
    return summary


def _request_context(status_code: int) -> str:
    context: dict[str, Any] = {
        "route": request.path,
        "method": request.method,
        "status_code": status_code,
        "view_args": dict(request.view_args or {}),
        "args": request.args.to_dict(flat=False),
    }
    try:
        payload = request.get_json(silent=True)
    except HTTPException:
        payload = None
    if payload is not None:
        context["json"] = _summarize_json(payload)
    return json.dumps(context, ensure_ascii=False, default=str)


def _log_api_error(exc: Exception, *, status_code: int, expected: bool) -> None:
    context = _request_context(status_code)
    if expected and status_code < 500:
        current_app.logger.warning("API error (%s): %s | context=%s", status_code, exc, context)
    elif expected:
        current_app.logger.error(
            "API error (%s): %s | context=%s", status_code, exc, context, exc_info=exc
        )
    else:
        current_app.logger.exception("Unhandled API error: %s | context=%s", exc, context)


def handle_api_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Turn API errors raised by a view into ``{"error": ...}`` JSON responses."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[misc]
        try:
            return func(*args, **kwargs)
        except APIError as exc:
            _log_api_error(exc, status_code=exc.status_code, expected=True)
            return jsonify(exc.to_dict()), exc.status_code
        except HTTPException as exc:
            status_code = exc.code or 500
            _log_api_error(exc, status_code=status_code, expected=True)
            return jsonify({"error": exc.description or str(exc)}), status_code
        except Exception as exc:  # pragma: no cover
            _log_api_error(exc, status_code=500, expected=False)
            return jsonify({"error": "Internal server error"}), 500

    return wrapper


__all__ = [
    "APIError",
    "BadRequestError",
    "NotFoundError",
    "handle_api_errors",
]
