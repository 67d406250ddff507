"""Minimal client for the GitHub repository contents API."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from typing import Any, Callable, Mapping

from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

import config

logger = logging.getLogger(__name__)


__all__ = [
    "ContentAPIError",
    "GitHubContentClient",
    "decode_base64_text",
    "encode_text_base64",
]


class ContentAPIError(RuntimeError):
    """Non-2xx answer (or transport failure) from the contents API."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_conflict(self) -> bool:
        # A stale ``sha`` is reported as 409 or, for some paths, 422.
        return self.status in (409, 422)


def encode_text_base64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_base64_text(data: str | None) -> str:
    """Decode API ``content`` (base64 wrapped at 60 columns) as UTF-8 text."""

    if not data:
        return ""
    compact = "".join(str(data).split())
    try:
        raw = base64.b64decode(compact)
    except (binascii.Error, ValueError) as exc:
        raise ContentAPIError(f"invalid base64 content: {exc}") from exc
    return raw.decode("utf-8", errors="replace")


class GitHubContentClient:
    """Read and write single files in one repository branch."""

    def __init__(
        self,
        *,
        token: str | None = None,
        owner: str | None = None,
        repo: str | None = None,
        branch: str | None = None,
        api_url: str | None = None,
        author_name: str | None = None,
        author_email: str | None = None,
        timeout: float | None = None,
        max_retries: int = 3,
        rate_limit_wait: float = 1.0,
        request_factory: Callable[..., Any] | None = None,
        opener: Callable[..., Any] | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        self.token = (token if token is not None else config.GITHUB_TOKEN).strip()
        self.owner = (owner if owner is not None else config.GITHUB_OWNER).strip()
        self.repo = (repo if repo is not None else config.GITHUB_REPO).strip()
        self.branch = (branch or config.GITHUB_BRANCH).strip() or "main"
        self.api_url = (api_url or config.GITHUB_API_URL).rstrip("/")
        self.author_name = author_name or config.GIT_AUTHOR_NAME
        self.author_email = author_email or config.GIT_AUTHOR_EMAIL
        self.timeout = timeout if timeout and timeout > 0 else config.GITHUB_TIMEOUT_SECONDS
        self._max_retries = max(1, int(max_retries)) if max_retries else 3
        self._rate_limit_wait = rate_limit_wait if rate_limit_wait and rate_limit_wait > 0 else 1.0
        self._request_factory = request_factory or Request
        self._opener = opener or urlopen
        self._sleep = sleep or time.sleep

    @property
    def configured(self) -> bool:
        return bool(self.token and self.owner and self.repo)

    def contents_url(self, path: str) -> str:
        return (
            f"{self.api_url}/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"
            f"/contents/{quote(path, safe='')}"
        )

    def get_file(self, path: str) -> dict[str, Any]:
        """Return the API record for ``path`` (``content`` is base64, plus ``sha``)."""

        url = f"{self.contents_url(path)}?{urlencode({'ref': self.branch})}"
        payload = self._request_json("GET", url)
        if not isinstance(payload, Mapping):
            raise ContentAPIError(f"unexpected contents payload for {path}")
        return dict(payload)

    def get_text(self, path: str) -> tuple[str, str | None]:
        """Return ``(text, sha)`` for ``path``."""

        record = self.get_file(path)
        return decode_base64_text(record.get("content")), record.get("sha")

    def get_sha(self, path: str) -> str | None:
        """Current blob ``sha`` for ``path``, or ``None`` when it does not exist."""

        try:
            return self.get_file(path).get("sha")
        except ContentAPIError as exc:
            if exc.is_not_found:
                return None
            raise

    def put_file(
        self,
        path: str,
        content_base64: str,
        message: str,
        *,
        sha: str | None = None,
        lookup_sha: bool = True,
    ) -> dict[str, Any]:
        """Create or replace ``path`` with ``content_base64`` in one commit."""

        if sha is None and lookup_sha:
            sha = self.get_sha(path)
        identity = {"name": self.author_name, "email": self.author_email}
        body: dict[str, Any] = {
            "message": message,
            "content": content_base64,
            "branch": self.branch,
            "committer": identity,
            "author": identity,
        }
        if sha:
            body["sha"] = sha
        logger.info("Committing %s to %s/%s@%s", path, self.owner, self.repo, self.branch)
        payload = self._request_json("PUT", self.contents_url(path), body=body)
        return dict(payload) if isinstance(payload, Mapping) else {}

    def _build_request(self, method: str, url: str, body: Mapping[str, Any] | None) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        request = self._request_factory(url, data=data, method=method)
        request.add_header("Authorization", f"Bearer {self.token}")
        request.add_header("Accept", "application/vnd.github+json")
        request.add_header("User-Agent", self.author_name or "PnPFinder")
        if data is not None:
            request.add_header("Content-Type", "application/json")
        return request

    def _request_json(
        self, method: str, url: str, *, body: Mapping[str, Any] | None = None
    ) -> Any:
        for attempt in range(self._max_retries):
            request = self._build_request(method, url, body)
            try:
                with self._opener(request, timeout=self.timeout) as response:
                    raw = response.read()
            except HTTPError as exc:
                if exc.code == 429 and attempt + 1 < self._max_retries:
                    delay = self._retry_delay(exc)
                    logger.warning("GitHub rate limited %s %s; retrying in %.1fs", method, url, delay)
                    self._sleep(delay)
                    continue
                raise _error_from_http(exc) from exc
            except URLError as exc:
                raise ContentAPIError(f"GitHub request failed: {exc.reason}") from exc
            text = raw.decode("utf-8") if raw else ""
            try:
                return json.loads(text) if text else {}
            except ValueError as exc:
                raise ContentAPIError("invalid JSON response from GitHub") from exc
        return {}

    def _retry_delay(self, error: HTTPError) -> float:
        headers = getattr(error, "headers", None)
        if headers is not None:
            value = headers.get("Retry-After")
            if value:
                try:
                    delay = float(value)
                    if delay > 0:
                        return delay
                except (TypeError, ValueError):
                    pass
            reset = headers.get("X-RateLimit-Reset")
            if reset:
                try:
                    delay = float(reset) - time.time()
                    if delay > 0:
                        return delay
                except (TypeError, ValueError):
                    pass
        return self._rate_limit_wait


def _error_from_http(error: HTTPError) -> ContentAPIError:
    try:
        raw = error.read()
    except Exception:  # pragma: no cover - best effort to capture error body
        raw = b""
    text = raw.decode("utf-8", errors="replace").strip() if raw else ""
    if not text and error.reason:
        text = str(error.reason)
    return ContentAPIError(f"GitHub {error.code}: {text}", status=error.code, body=text)
