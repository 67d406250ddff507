"""Curated spotlight pages built from ``spotlight.json`` and the games CSV."""

from __future__ import annotations

import json
import logging
import math
import os
import re
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd
from markupsafe import escape

from helpers import normalize_str, parse_leading_number, slugify

from .columns import GAMES
from .query import INDEX_COLUMN, serialize_row

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 16

_LINK_RE = re.compile(r"\[([^\]]+)\]\((https?://[^\s)]+)\)")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")


class SpotlightError(RuntimeError):
    """Raised when the spotlight definitions cannot be used."""


def load_definitions(path: str | os.PathLike[str]) -> list[dict[str, Any]]:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise SpotlightError(f"Spotlight file {Path(path).name} is missing.") from exc
    except (OSError, ValueError) as exc:
        raise SpotlightError(f"Failed to load {Path(path).name}.") from exc
    if not isinstance(payload, list):
        raise SpotlightError("Spotlight definitions must be a list.")
    return [entry for entry in payload if isinstance(entry, Mapping)]


def iso_week(day: date | None = None) -> int:
    return (day or date.today()).isocalendar()[1]


def choose_definition(
    definitions: Sequence[Mapping[str, Any]],
    key: str | None = None,
    *,
    today: date | None = None,
) -> Mapping[str, Any]:
    """Pick the requested definition, else this week's cycling entry, else the first."""

    if not definitions:
        raise SpotlightError("No spotlight definitions configured.")
    if key:
        for definition in definitions:
            if definition.get("key") == key:
                return definition
        return definitions[0]
    cyclers = [definition for definition in definitions if definition.get("cycle")]
    if cyclers:
        return cyclers[iso_week(today) % len(cyclers)]
    return definitions[0]


def game_key(row: Mapping[str, Any]) -> str:
    title = row.get("Game Title") or row.get("Title") or row.get("title") or ""
    designer = row.get("Designer") or row.get("designer") or ""
    return f"game_{slugify(title)}__{slugify(designer)}"


def _lowered(row: Mapping[str, Any], column: str) -> str:
    return normalize_str(row.get(column)).lower()


def _apply_where(
    rows: list[dict[str, Any]], clauses: Sequence[Sequence[Any]]
) -> list[dict[str, Any]]:
    pool = rows
    for clause in clauses:
        if len(clause) < 3:
            continue
        column, op, value = str(clause[0]), clause[1], clause[2]
        needle = normalize_str(value).lower()
        if op == "includes":
            pool = [row for row in pool if needle in _lowered(row, column)]
        elif op == "equals":
            pool = [row for row in pool if _lowered(row, column) == needle]
        elif op == "regex":
            try:
                pattern = re.compile(str(value or ""), re.IGNORECASE)
            except re.error as exc:
                raise SpotlightError(f"Invalid spotlight pattern for {column}: {exc}") from exc
            pool = [row for row in pool if pattern.search(str(row.get(column) or ""))]
    return pool


def _added_timestamp(value: Any) -> float:
    text = normalize_str(value)
    if not text:
        return -math.inf
    stamp = pd.to_datetime(text, errors="coerce", utc=True)
    if pd.isna(stamp):
        return -math.inf
    return stamp.timestamp()


def _sort_pool(pool: list[dict[str, Any]], sort: str) -> list[dict[str, Any]]:
    # sorted() is stable, so ties keep CSV order.
    if sort == "downloads_desc":
        return sorted(pool, key=lambda row: -parse_leading_number(row.get("Downloads")))
    if sort == "rating_desc":
        return sorted(
            pool,
            key=lambda row: (
                -parse_leading_number(row.get("RatingAvg")),
                -parse_leading_number(row.get("RatingCount")),
            ),
        )
    if sort == "recent_desc":
        return sorted(pool, key=lambda row: -_added_timestamp(row.get("Date Added")))
    return pool


def select_games(definition: Mapping[str, Any], df: pd.DataFrame) -> list[dict[str, Any]]:
    """Curated picks first, then query matches, deduplicated and capped at the limit."""

    rows = df.to_dict("records") if not df.empty else []
    picked: list[dict[str, Any]] = []
    seen: set[str] = set()

    def push(row: dict[str, Any]) -> None:
        key = game_key(row)
        if key not in seen:
            seen.add(key)
            picked.append(row)

    for curated in definition.get("curated") or []:
        title = normalize_str(curated.get("title")).lower()
        designer = normalize_str(curated.get("designer")).lower()
        for row in rows:
            if _lowered(row, "Game Title") == title and _lowered(row, "Designer") == designer:
                push(row)
                break

    select = definition.get("select") or {}
    if select.get("mode") == "query":
        pool = _apply_where(rows, select.get("where") or [])
        for row in _sort_pool(pool, str(select.get("sort") or "")):
            push(row)

    limit = select.get("limit") or DEFAULT_LIMIT
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = DEFAULT_LIMIT
    return picked[:limit]


def intro_html(markdown: Any) -> str:
    """Render the small markdown subset used by spotlight intros."""

    text = normalize_str(markdown) if markdown is not None else ""
    if not text:
        return ""
    html = str(escape(text))
    html = _LINK_RE.sub(r'<a href="\2" target="_blank" rel="noopener">\1</a>', html)
    html = _BOLD_RE.sub(r"<strong>\1</strong>", html)
    html = _ITALIC_RE.sub(r"<em>\1</em>", html)
    return html.replace("\n", "<br />")


def _canonical_items(rows: list[dict[str, Any]], columns: Sequence[str]) -> list[dict[str, Any]]:
    header_map = GAMES.build_header_map(columns)
    items = []
    for row in rows:
        canonical: dict[str, Any] = GAMES.remap_row(row, header_map)
        canonical[INDEX_COLUMN] = row.get(INDEX_COLUMN, 0)
        items.append(serialize_row(canonical, GAMES))
    return items


def build_spotlight(
    definitions: Sequence[Mapping[str, Any]],
    df: pd.DataFrame,
    key: str | None = None,
    *,
    today: date | None = None,
) -> dict[str, Any]:
    current = choose_definition(definitions, key, today=today)
    picks = select_games(current, df)
    count = len(picks)
    return {
        "key": current.get("key", ""),
        "title": current.get("title", ""),
        "hero": current.get("hero", ""),
        "alt": current.get("alt") or current.get("title") or "Spotlight image",
        "credit": current.get("credit", ""),
        "intro_html": intro_html(current.get("intro")),
        "definitions": [
            {"key": definition.get("key", ""), "title": definition.get("title", "")}
            for definition in definitions
        ],
        "items": _canonical_items(picks, [str(column) for column in df.columns]),
        "meta": f"{count} featured game{'' if count == 1 else 's'}",
    }


__all__ = [
    "DEFAULT_LIMIT",
    "SpotlightError",
    "build_spotlight",
    "choose_definition",
    "game_key",
    "intro_html",
    "iso_week",
    "load_definitions",
    "select_games",
]
