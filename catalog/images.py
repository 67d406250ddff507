"""Image URL extraction and host normalization for catalog rows."""

from __future__ import annotations

import re
from typing import Any, Mapping

from helpers import MULTIVALUE_SEP, normalize_str

_HTTP_RE = re.compile(r"^https?://", re.IGNORECASE)
_DRIVE_RE = re.compile(r"drive\.google\.com/file/d/([^/]+)/")
_DROPBOX_RE = re.compile(r"^https://www\.dropbox\.com/", re.IGNORECASE)
_DROPBOX_DL_RE = re.compile(r"[?&]dl=\d")


def first_url_like(raw: Any) -> str:
    """Return the first absolute (or protocol-relative) URL in a multi-value cell."""

    text = normalize_str(raw)
    if not text:
        return ""
    parts = [part.strip().strip("'\"") for part in MULTIVALUE_SEP.split(text)]
    for part in parts:
        if _HTTP_RE.match(part):
            return part
    for part in parts:
        if part.startswith("//"):
            return "https:" + part
    # Images committed by the submission handler are site-relative.
    for part in parts:
        if part.startswith("/uploads/"):
            return part
    return ""


def normalize_image_host(url: str) -> str:
    """Rewrite share links from Google Drive and Dropbox into direct image URLs."""

    if not url:
        return ""
    if url.startswith("http://"):
        url = "https://" + url[len("http://"):]
    drive = _DRIVE_RE.search(url)
    if drive:
        return f"https://drive.google.com/uc?export=view&id={drive.group(1)}"
    if _DROPBOX_RE.match(url):
        url = url.replace("www.dropbox.com", "dl.dropboxusercontent.com", 1)
        url = _DROPBOX_DL_RE.sub("", url, count=1)
    return url


def image_url_for(row: Mapping[str, Any], field: str) -> str:
    return normalize_image_host(first_url_like(row.get(field, "")))


__all__ = ["first_url_like", "image_url_for", "normalize_image_host"]
