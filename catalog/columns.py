"""Canonical column sets and header alias matching for each catalog CSV."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from helpers import normalize_str


GAMES_COLUMNS: tuple[str, ...] = (
    "Game Title",
    "Designer",
    "Publisher",
    "Free or Paid",
    "Price",
    "Number of Players",
    "Playtime",
    "Age Range",
    "Theme",
    "Main Mechanism",
    "Secondary Mechanism",
    "Gameplay Complexity",
    "Gameplay Mode",
    "Game Category",
    "PnP Crafting Challenge Level",
    "One-Sentence Short Description",
    "Long Description",
    "Download Link",
    "Secondary Download Link",
    "Print Components",
    "Other Components",
    "Languages",
    "Release Year",
    "Game Image",
    "Curated Lists",
    "Report Dead Link",
)

TUTORIALS_COLUMNS: tuple[str, ...] = (
    "Component",
    "Title",
    "Creator",
    "Description",
    "Link",
    "Image",
)

RESOURCES_COLUMNS: tuple[str, ...] = (
    "Category",
    "Title",
    "Description",
    "Link",
    "Image",
    "Creator",
)

CROWDFUNDING_COLUMNS: tuple[str, ...] = (
    "Title",
    "Designer/Publisher",
    "Platform",
    "Short Description",
    "Long Description",
    "Campaign Link",
    "Late Pledge Link",
    "Image",
    "Launch Date (YYYY-MM-DD)",
    "End Date (YYYY-MM-DD)",
    "Tags",
)

_CURLY_QUOTES_RE = re.compile("[\u2018\u2019\u201c\u201d]")
_NON_KEY_RE = re.compile(r"[^a-z0-9]+")
_IGNORED_HEADER_RE = re.compile(r"^(unnamed\d*|column\d+)$")


def header_key(value: Any) -> str:
    """Canonicalize a CSV header for alias matching (``"Game Title"`` -> ``gametitle``)."""

    text = normalize_str(value).lstrip("\ufeff")
    text = unicodedata.normalize("NFKC", text).strip().lower()
    text = _CURLY_QUOTES_RE.sub("'", text)
    return _NON_KEY_RE.sub("", text)


def _aliases(target: str, *keys: str) -> dict[str, str]:
    return {key: target for key in keys}


@dataclass(frozen=True)
class CollectionSchema:
    """Static description of one catalog collection and how it is browsed."""

    name: str
    noun: str
    csv_file: str
    columns: tuple[str, ...]
    title_field: str
    image_field: str
    search_fields: tuple[str, ...]
    filters: Mapping[str, str]
    sort_options: tuple[str, ...]
    aliases: Mapping[str, str] = field(default_factory=dict)
    creator_field: str | None = None

    @property
    def column_by_key(self) -> dict[str, str]:
        return {header_key(name): name for name in self.columns}

    def resolve_header(self, header: Any) -> str | None:
        """Return the canonical column ``header`` maps to, or ``None``."""

        key = header_key(header)
        if not key or _IGNORED_HEADER_RE.match(key):
            return None
        official = self.column_by_key.get(key)
        if official is not None:
            return official
        return self.aliases.get(key)

    def build_header_map(self, headers: Iterable[Any]) -> dict[str, str]:
        """Map raw CSV headers onto canonical columns, dropping unmapped ones."""

        mapping: dict[str, str] = {}
        for header in headers:
            canonical = self.resolve_header(header)
            if canonical is not None:
                mapping[str(header)] = canonical
        return mapping

    def remap_row(
        self, row: Mapping[str, Any], header_map: Mapping[str, str]
    ) -> dict[str, str]:
        out = {name: "" for name in self.columns}
        for raw_key, value in row.items():
            canonical = header_map.get(str(raw_key))
            if canonical is None:
                continue
            out[canonical] = "" if value is None else normalize_cell(value)
        return out

    def header_positions(self, headers: Sequence[Any]) -> list[str | None]:
        """Canonical column for each raw header position, ``None`` when unmapped."""

        return [self.resolve_header(header) for header in headers]

    def remap_values(
        self, values: Sequence[Any], positions: Sequence[str | None]
    ) -> dict[str, str]:
        # Later positions overwrite earlier ones, so the right-most duplicate wins.
        out = {name: "" for name in self.columns}
        for canonical, value in zip(positions, values):
            if canonical is None:
                continue
            out[canonical] = "" if value is None else normalize_cell(value)
        return out

    def noun_for(self, count: int) -> str:
        return self.noun if count == 1 else f"{self.noun}s"


def normalize_cell(value: Any) -> str:
    """Cells keep their inner text; missing values degrade to ``""``."""

    if isinstance(value, str):
        return value
    return normalize_str(value)


_IMAGE_ALIASES = ("img", "imageurl", "thumbnail", "thumb")

GAMES = CollectionSchema(
    name="games",
    noun="game",
    csv_file="games.csv",
    columns=GAMES_COLUMNS,
    title_field="Game Title",
    image_field="Game Image",
    search_fields=(
        "Game Title",
        "Designer",
        "Publisher",
        "One-Sentence Short Description",
        "Long Description",
        "Theme",
        "Main Mechanism",
        "Secondary Mechanism",
        "Curated Lists",
    ),
    filters={
        "Curated Lists": "multivalue",
        "PnP Crafting Challenge Level": "contains",
        "Number of Players": "range",
        "Playtime": "range",
        "Age Range": "range",
        "Main Mechanism": "contains",
        "Gameplay Complexity": "contains",
        "Theme": "contains",
        "Free or Paid": "freepaid",
        "Release Year": "number",
        "Languages": "multivalue",
    },
    sort_options=("relevance", "newest", "az", "release-asc"),
    aliases={
        **_aliases("Game Title", "title"),
        **_aliases("Number of Players", "players", "numberofplayers"),
        **_aliases("Playtime", "playtime", "playduration"),
        **_aliases("Age Range", "agerange", "age"),
        **_aliases("Game Category", "category", "mode", "gameplaymode"),
        **_aliases(
            "Game Image",
            "image",
            "img",
            "thumbnail",
            "thumb",
            "cover",
            "gameimage",
            "imageurl",
            "imgurl",
        ),
        **_aliases(
            "Long Description",
            "gamedescription",
            "description",
            "longdesc",
            "longdescription",
        ),
    },
    creator_field="Designer",
)

TUTORIALS = CollectionSchema(
    name="tutorials",
    noun="tutorial",
    csv_file="tutorials.csv",
    columns=TUTORIALS_COLUMNS,
    title_field="Title",
    image_field="Image",
    search_fields=("Component", "Title", "Creator", "Description"),
    filters={"Component": "exact"},
    sort_options=("relevance", "az", "creator"),
    aliases=_aliases("Image", *_IMAGE_ALIASES),
    creator_field="Creator",
)

RESOURCES = CollectionSchema(
    name="resources",
    noun="resource",
    csv_file="resources.csv",
    columns=RESOURCES_COLUMNS,
    title_field="Title",
    image_field="Image",
    search_fields=("Category", "Title", "Creator", "Description"),
    filters={"Category": "exact"},
    sort_options=("relevance", "az", "creator"),
    aliases=_aliases("Image", *_IMAGE_ALIASES),
    creator_field="Creator",
)

CROWDFUNDING = CollectionSchema(
    name="crowdfunding",
    noun="campaign",
    csv_file="crowdfunding.csv",
    columns=CROWDFUNDING_COLUMNS,
    title_field="Title",
    image_field="Image",
    search_fields=(
        "Title",
        "Designer/Publisher",
        "Platform",
        "Short Description",
        "Long Description",
        "Tags",
    ),
    filters={"Platform": "exact", "Status": "exact"},
    sort_options=("relevance", "az", "launch", "end"),
    aliases={
        **_aliases(
            "Designer/Publisher", "creator", "designer", "publisher", "designerpublisher"
        ),
        **_aliases("Campaign Link", "campaign", "link", "projectlink", "projecturl"),
        **_aliases("Late Pledge Link", "latepledge", "latepledgelink", "pledgemanager"),
        **_aliases("Launch Date (YYYY-MM-DD)", "launchdate", "launch"),
        **_aliases("End Date (YYYY-MM-DD)", "enddate", "deadline", "end"),
    },
    creator_field="Designer/Publisher",
)

SCHEMAS: dict[str, CollectionSchema] = {
    schema.name: schema for schema in (GAMES, TUTORIALS, RESOURCES, CROWDFUNDING)
}


def get_schema(name: str) -> CollectionSchema | None:
    return SCHEMAS.get(str(name or "").strip().lower())


__all__ = [
    "CROWDFUNDING",
    "CROWDFUNDING_COLUMNS",
    "CollectionSchema",
    "GAMES",
    "GAMES_COLUMNS",
    "RESOURCES",
    "RESOURCES_COLUMNS",
    "SCHEMAS",
    "TUTORIALS",
    "TUTORIALS_COLUMNS",
    "get_schema",
    "header_key",
    "normalize_cell",
]
