"""Single-game detail payloads."""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

from helpers import normalize_str

from .columns import GAMES
from .images import image_url_for
from .query import INDEX_COLUMN

REPORT_TEMPLATE = """Hello PnPFinder team,

One or more download links appear broken.

Game: {title}
ID: {id}
Link 1: {link1}
Link 2: {link2}

(Please include any details here.)"""


def byline(row: Mapping[str, Any]) -> str:
    parts = [normalize_str(row.get("Designer")), normalize_str(row.get("Publisher"))]
    return " • ".join(part for part in parts if part)


def report_mailto(
    title: str, game_id: Any, link1: str, link2: str, *, email: str
) -> str:
    """Build the ``mailto:`` URL used to report broken download links."""

    subject = quote(f"Dead link report: {title}", safe="")
    body = quote(
        REPORT_TEMPLATE.format(
            title=title,
            id=game_id,
            link1=link1 or "(none)",
            link2=link2 or "(none)",
        ),
        safe="",
    )
    return f"mailto:{email}?subject={subject}&body={body}"


def game_details(row: Mapping[str, Any], *, report_email: str) -> dict[str, Any]:
    game_id = int(row.get(INDEX_COLUMN, 0))
    title = normalize_str(row.get("Game Title"))
    primary = normalize_str(row.get("Download Link"))
    secondary = normalize_str(row.get("Secondary Download Link"))
    return {
        "id": game_id,
        "title": title,
        "byline": byline(row),
        "short_description": normalize_str(row.get("One-Sentence Short Description")),
        "overview": normalize_str(row.get("Long Description")),
        "image_url": image_url_for(row, GAMES.image_field),
        "download_link": primary,
        "secondary_download_link": secondary,
        "report_url": report_mailto(
            title or "Unknown Game", game_id, primary, secondary, email=report_email
        ),
        "fields": {column: normalize_str(row.get(column)) for column in GAMES.columns},
    }


__all__ = ["REPORT_TEMPLATE", "byline", "game_details", "report_mailto"]
