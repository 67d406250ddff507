"""Payload validation for catalog submissions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

SUBMITTABLE_COLLECTIONS: tuple[str, ...] = ("games", "tutorials", "resources")

GAME_REQUIRED_FIELDS: tuple[str, ...] = (
    "Game Title",
    "Free or Paid",
    "Number of Players",
    "Playtime",
    "Age Range",
    "Theme",
    "Main Mechanism",
    "Gameplay Complexity",
    "PnP Crafting Challenge Level",
    "One-Sentence Short Description",
    "Long Description",
    "Download Link",
    "Release Year",
)

SHORT_DESCRIPTION_LIMIT = 125
LONG_DESCRIPTION_LIMIT = 400
MIN_RELEASE_YEAR = 1900
MAX_RELEASE_YEAR = 2100

_YEAR_RE = re.compile(r"^[0-9]{4}$")
_HTTP_URL_RE = re.compile(r"^https?://", re.IGNORECASE)


class SubmissionError(Exception):
    """A submission that could not be stored."""

    status_code = 500


class ValidationError(SubmissionError):
    """A submission rejected before anything is written."""

    status_code = 400


class SubmissionsDisabledError(SubmissionError):
    """The repository credentials for submissions are missing."""

    status_code = 503


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content_type: str
    data_base64: str

    @classmethod
    def from_payload(cls, payload: Any) -> "ImageUpload | None":
        if not isinstance(payload, Mapping):
            return None
        data = "".join(str(payload.get("dataBase64") or "").split())
        if not data:
            return None
        return cls(
            filename=str(payload.get("filename") or ""),
            content_type=str(payload.get("contentType") or ""),
            data_base64=data,
        )

    @property
    def estimated_size(self) -> int:
        """Decoded byte count implied by the base64 length and padding."""

        padding = len(self.data_base64) - len(self.data_base64.rstrip("="))
        return max(0, len(self.data_base64) * 3 // 4 - padding)


@dataclass(frozen=True)
class Submission:
    collection: str
    fields: dict[str, Any] = field(default_factory=dict)
    image: ImageUpload | None = None


def _text(fields: Mapping[str, Any], key: str) -> str:
    value = fields.get(key)
    return "" if value is None else str(value)


def _utf16_length(text: str) -> int:
    # Browsers count UTF-16 code units, so astral characters count twice.
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def _format_megabytes(size: int) -> str:
    megabytes = size / (1024 * 1024)
    return f"{megabytes:g}MB"


def _validate_game(fields: Mapping[str, Any], image: ImageUpload | None) -> None:
    for key in GAME_REQUIRED_FIELDS:
        if not _text(fields, key).strip():
            raise ValidationError(f"Missing required field: {key}")
    if _utf16_length(_text(fields, "One-Sentence Short Description")) > SHORT_DESCRIPTION_LIMIT:
        raise ValidationError(
            f"Short description must be ≤ {SHORT_DESCRIPTION_LIMIT} characters."
        )
    if _utf16_length(_text(fields, "Long Description")) > LONG_DESCRIPTION_LIMIT:
        raise ValidationError(
            f"Long description must be ≤ {LONG_DESCRIPTION_LIMIT} characters."
        )
    year = _text(fields, "Release Year").strip()
    if not _YEAR_RE.match(year) or not MIN_RELEASE_YEAR <= int(year) <= MAX_RELEASE_YEAR:
        raise ValidationError(
            f"Release Year must be a 4-digit year between {MIN_RELEASE_YEAR} and {MAX_RELEASE_YEAR}."
        )
    if not _HTTP_URL_RE.match(_text(fields, "Download Link").strip()):
        raise ValidationError("Main Download Link must be a valid http(s) URL.")
    if image is None:
        raise ValidationError("Image is required for game submissions.")


def validate_submission(payload: Any, *, max_image_bytes: int) -> Submission:
    """Check ``payload`` and return the parsed submission.

    Checks run in a fixed order and the first failure is reported: honeypot,
    collection name, per-collection fields, then image size.
    """

    if not isinstance(payload, Mapping):
        raise ValidationError("Invalid JSON body.")
    raw_fields = payload.get("fields")
    fields: dict[str, Any] = dict(raw_fields) if isinstance(raw_fields, Mapping) else {}

    if _text(fields, "website"):
        raise ValidationError("Spam detected")

    collection = payload.get("collection")
    if collection not in SUBMITTABLE_COLLECTIONS:
        raise ValidationError("Invalid collection")

    image = ImageUpload.from_payload(payload.get("image"))
    if collection == "games":
        _validate_game(fields, image)
    elif not _text(fields, "Title").strip():
        raise ValidationError("Title is required.")

    if image is not None and image.estimated_size > max_image_bytes:
        raise ValidationError(f"Image too large (max {_format_megabytes(max_image_bytes)}).")

    return Submission(collection=str(collection), fields=fields, image=image)


__all__ = [
    "GAME_REQUIRED_FIELDS",
    "ImageUpload",
    "LONG_DESCRIPTION_LIMIT",
    "SHORT_DESCRIPTION_LIMIT",
    "SUBMITTABLE_COLLECTIONS",
    "Submission",
    "SubmissionError",
    "SubmissionsDisabledError",
    "ValidationError",
    "validate_submission",
]
