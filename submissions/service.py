"""Commit submitted rows (and their images) to the catalog repository."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
import unicodedata
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from PIL import Image, UnidentifiedImageError

from catalog.columns import SCHEMAS
from content_api.client import (
    ContentAPIError,
    GitHubContentClient,
    encode_text_base64,
)

from .validation import (
    ImageUpload,
    SubmissionError,
    SubmissionsDisabledError,
    validate_submission,
)

logger = logging.getLogger(__name__)

REPOSITORY_DATA_DIR = "data"
UPLOADS_DIR = "uploads"

_SLUG_STRIP_RE = re.compile(r"[^\w]+", re.ASCII)
_CSV_QUOTE_RE = re.compile(r'[",\r\n]')
_LINE_SPLIT_RE = re.compile(r"\r?\n")

_SNIFFED_EXTENSIONS = {"PNG": ".png", "WEBP": ".webp", "JPEG": ".jpg", "GIF": ".gif"}


def make_id(fields: Mapping[str, Any], now: datetime | None = None) -> str:
    """``<slug>-<YYYYMMDDHHMMSS>`` using the submission title and UTC time."""

    title = fields.get("Game Title") or fields.get("Title") or "entry"
    text = unicodedata.normalize("NFKD", str(title).lower())
    slug = _SLUG_STRIP_RE.sub("-", text).strip("-")
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return f"{slug or 'entry'}-{stamp:%Y%m%d%H%M%S}"


def sniff_image_extension(data: bytes) -> str | None:
    try:
        with Image.open(io.BytesIO(data)) as img:
            image_format = (img.format or "").upper()
    except (UnidentifiedImageError, OSError, ValueError):
        return None
    return _SNIFFED_EXTENSIONS.get(image_format)


def guess_ext(filename: str = "", content_type: str = "", data: bytes | None = None) -> str:
    """Pick the upload extension from the filename or MIME type, then the bytes."""

    lower = (filename or "").lower()
    mime = (content_type or "").lower()
    if lower.endswith(".png") or "png" in mime:
        return ".png"
    if lower.endswith(".webp") or "webp" in mime:
        return ".webp"
    if lower.endswith((".jpg", ".jpeg")) or "jpeg" in mime or "jpg" in mime:
        return ".jpg"
    if data:
        sniffed = sniff_image_extension(data)
        if sniffed:
            return sniffed
    return ".jpg"


def _decode_image(image: ImageUpload) -> bytes:
    try:
        return base64.b64decode(image.data_base64, validate=False)
    except (binascii.Error, ValueError):
        return b""


def csv_escape(value: Any) -> str:
    if value is None:
        return ""
    text = str(value)
    if _CSV_QUOTE_RE.search(text):
        text = '"' + text.replace('"', '""') + '"'
    return text


def make_csv_row(headers: Sequence[str], row: Mapping[str, Any]) -> str:
    return ",".join(csv_escape(row.get(header)) for header in headers) + "\n"


def parse_header_line(text: str) -> list[str]:
    first_line = _LINE_SPLIT_RE.split(text, maxsplit=1)[0] if text else ""
    first_line = first_line.lstrip("\ufeff")
    return [cell.strip().strip('"') for cell in first_line.split(",")]


def default_headers(collection: str) -> list[str]:
    return list(SCHEMAS[collection].columns)


def repository_csv_path(collection: str) -> str:
    return f"{REPOSITORY_DATA_DIR}/{SCHEMAS[collection].csv_file}"


def get_csv_headers(
    client: GitHubContentClient, path: str, fallback: Sequence[str]
) -> list[str]:
    """Header row of the CSV at ``path``, or ``fallback`` when it is missing or blank."""

    try:
        text, _sha = client.get_text(path)
    except ContentAPIError as exc:
        if not exc.is_not_found:
            raise
        logger.info("CSV %s not found; using default headers", path)
        return list(fallback)
    headers = parse_header_line(text)
    return headers if len(headers) > 1 else list(fallback)


def build_row_object(
    collection: str,
    fields: Mapping[str, Any],
    image_path: str,
    *,
    report_email: str,
) -> dict[str, str]:
    row = {header: "" for header in default_headers(collection)}
    image_url = f"/{image_path}" if image_path else ""

    if collection == "games":
        for key, value in fields.items():
            row[str(key)] = "" if value is None else str(value)
        if image_url:
            row["Game Image"] = image_url
        if not row.get("Report Dead Link"):
            row["Report Dead Link"] = report_email
        return row

    keys: Iterable[str]
    if collection == "tutorials":
        keys = ("Component", "Title", "Creator", "Description", "Link")
    else:
        keys = ("Category", "Title", "Description", "Link", "Creator")
    for key in keys:
        value = fields.get(key)
        row[key] = "" if value is None else str(value)
    if image_url:
        row["Image"] = image_url
    return row


def append_row_text(existing: str, new_row: str) -> str:
    if not existing or existing.endswith("\n"):
        return existing + new_row
    return existing + "\n" + new_row


def append_csv(
    client: GitHubContentClient,
    path: str,
    new_row: str,
    message: str,
    *,
    fallback_headers: Sequence[str],
    max_attempts: int = 3,
) -> dict[str, Any]:
    """Append ``new_row`` to the CSV at ``path``, retrying when the ``sha`` went stale."""

    attempts = max(1, int(max_attempts))
    for attempt in range(1, attempts + 1):
        try:
            existing, sha = client.get_text(path)
            text = append_row_text(existing, new_row)
        except ContentAPIError as exc:
            if not exc.is_not_found:
                raise
            sha = None
            text = ",".join(fallback_headers) + "\n" + new_row

        try:
            return client.put_file(
                path, encode_text_base64(text), message, sha=sha, lookup_sha=False
            )
        except ContentAPIError as exc:
            if exc.is_conflict and attempt < attempts:
                logger.warning(
                    "Conflict appending to %s (attempt %d/%d); re-reading", path, attempt, attempts
                )
                continue
            raise
    raise SubmissionError(f"Could not append to {path}.")  # pragma: no cover


class SubmissionService:
    """Validate a submission payload and commit it through the contents API."""

    def __init__(
        self,
        client: GitHubContentClient,
        *,
        report_email: str,
        max_image_bytes: int,
        max_attempts: int = 3,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.client = client
        self.report_email = report_email
        self.max_image_bytes = max_image_bytes
        self.max_attempts = max_attempts
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def submit(self, payload: Any) -> dict[str, Any]:
        submission = validate_submission(payload, max_image_bytes=self.max_image_bytes)
        if not self.client.configured:
            raise SubmissionsDisabledError("Submissions are not configured.")

        collection = submission.collection
        entry_id = make_id(submission.fields, self._clock())

        image_path = ""
        if submission.image is not None:
            image = submission.image
            ext = guess_ext(image.filename, image.content_type, _decode_image(image))
            image_path = f"{UPLOADS_DIR}/{collection}/{entry_id}{ext}"
            self.client.put_file(
                image_path, image.data_base64, f"Add image for {collection}:{entry_id}"
            )

        csv_path = repository_csv_path(collection)
        fallback = default_headers(collection)
        headers = get_csv_headers(self.client, csv_path, fallback)
        row = build_row_object(
            collection, submission.fields, image_path, report_email=self.report_email
        )
        append_csv(
            self.client,
            csv_path,
            make_csv_row(headers, row),
            f"Add {collection} entry: {entry_id}",
            fallback_headers=fallback,
            max_attempts=self.max_attempts,
        )
        logger.info("Stored %s submission %s", collection, entry_id)
        return {"ok": True, "id": entry_id, "imagePath": f"/{image_path}" if image_path else ""}


__all__ = [
    "SubmissionService",
    "append_csv",
    "append_row_text",
    "build_row_object",
    "csv_escape",
    "default_headers",
    "get_csv_headers",
    "guess_ext",
    "make_csv_row",
    "make_id",
    "parse_header_line",
    "repository_csv_path",
    "sniff_image_extension",
]
