"""Catalog browsing API routes."""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Mapping

from flask import Blueprint, jsonify, request

from catalog.columns import GAMES, CollectionSchema, get_schema
from catalog.details import game_details
from catalog.loader import CatalogLoadError
from catalog.query import CatalogQuery, run_query
from catalog.spotlight import SpotlightError, build_spotlight, load_definitions
from catalog.state import CatalogState
from routes.api_utils import APIError, NotFoundError, handle_api_errors

catalog_blueprint = Blueprint("catalog", __name__)

_context: dict[str, Any] = {}


def configure(context: Mapping[str, Any]) -> None:
    """Provide shared state required by the catalog endpoints."""
    _context.update(context)


def _ctx(key: str) -> Any:
    if key not in _context:
        raise RuntimeError(f"catalog routes missing context value: {key}")
    return _context[key]


def _state() -> CatalogState:
    return _ctx("catalog_state")


def _now() -> datetime:
    clock: Callable[[], datetime] = _context.get("now") or datetime.now
    return clock()


def _today() -> date:
    return _now().date()


def _resolve_schema(collection: str) -> CollectionSchema:
    schema = get_schema(collection)
    if schema is None:
        raise NotFoundError(f"Unknown collection: {collection}")
    return schema


def _load_error(exc: CatalogLoadError) -> APIError:
    return APIError(str(exc), status_code=500)


@catalog_blueprint.route("/api/<collection>")
@handle_api_errors
def api_collection(collection: str):
    schema = _resolve_schema(collection)
    try:
        df = _state().get_frame(schema)
    except CatalogLoadError as exc:
        raise _load_error(exc) from exc
    query = CatalogQuery.from_args(request.args, schema)
    page = run_query(df, schema, query, page_size=_ctx("page_size"), now=_now())
    return jsonify(page.to_dict())


@catalog_blueprint.route("/api/<collection>/filters")
@handle_api_errors
def api_collection_filters(collection: str):
    schema = _resolve_schema(collection)
    try:
        options = _state().filter_options(schema)
    except CatalogLoadError as exc:
        raise _load_error(exc) from exc
    return jsonify(
        {
            "collection": schema.name,
            "filters": options,
            "sort_options": list(schema.sort_options),
        }
    )


@catalog_blueprint.route("/api/games/<int(signed=True):idx>")
@handle_api_errors
def api_game_details(idx: int):
    try:
        df = _state().get_frame(GAMES)
    except CatalogLoadError as exc:
        raise _load_error(exc) from exc
    if idx < 0 or idx >= len(df):
        raise NotFoundError("Game not found.")
    row = df.iloc[idx].to_dict()
    return jsonify(game_details(row, report_email=_ctx("report_email")))


@catalog_blueprint.route("/api/spotlight")
@handle_api_errors
def api_spotlight():
    spotlight_path: Path = _ctx("get_spotlight_path")()
    try:
        definitions = load_definitions(spotlight_path)
        df = _state().raw_games()
        payload = build_spotlight(
            definitions, df, request.args.get("key") or None, today=_today()
        )
    except CatalogLoadError as exc:
        raise _load_error(exc) from exc
    except SpotlightError as exc:
        raise APIError(str(exc), status_code=500) from exc
    return jsonify(payload)


__all__ = ["catalog_blueprint", "configure"]
