"""Liveness and echo endpoints."""

from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from helpers import now_utc_iso

utility_blueprint = Blueprint("utility", __name__)


@utility_blueprint.route("/api/ping")
def api_ping():
    response = jsonify({"ok": True, "now": now_utc_iso()})
    response.headers["Cache-Control"] = "no-store"
    return response


@utility_blueprint.route("/api/echo", methods=["POST"])
def api_echo():
    body = request.get_data(as_text=True)
    return Response(
        body or "{}",
        mimetype="application/json",
        headers={"Cache-Control": "no-store"},
    )


__all__ = ["utility_blueprint"]
