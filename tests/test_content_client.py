import base64
import io
import json
from email.message import Message

import pytest
from urllib.error import HTTPError, URLError

from content_api.client import (
    ContentAPIError,
    GitHubContentClient,
    decode_base64_text,
    encode_text_base64,
)


class DummyResponse:
    def __init__(self, body: bytes):
        self._body = body

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def read(self):
        return self._body


def http_error(code, body=b"", headers=None):
    message = Message()
    for key, value in (headers or {}).items():
        message[key] = value
    return HTTPError("https://api.example", code, "error", message, io.BytesIO(body))


def make_client(responses, sleeps=None, **kwargs):
    requests = []

    def fake_opener(request, timeout=None):
        requests.append(request)
        outcome = responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return DummyResponse(json.dumps(outcome).encode("utf-8"))

    client = GitHubContentClient(
        token="tkn",
        owner="pnp",
        repo="catalog",
        branch="main",
        api_url="https://api.example/",
        author_name="Bot",
        author_email="bot@example",
        opener=fake_opener,
        sleep=(sleeps.append if sleeps is not None else lambda _delay: None),
        **kwargs,
    )
    return client, requests


def test_base64_helpers_handle_wrapped_content():
    encoded = encode_text_base64("Title\nCafé\n")
    wrapped = "\n".join(encoded[i:i + 4] for i in range(0, len(encoded), 4))
    assert decode_base64_text(wrapped) == "Title\nCafé\n"
    assert decode_base64_text(None) == ""
    with pytest.raises(ContentAPIError):
        decode_base64_text("abc")


def test_configured_requires_token_owner_and_repo():
    client, _ = make_client([])
    assert client.configured
    assert not GitHubContentClient(token="", owner="a", repo="b").configured


def test_get_text_requests_branch_with_auth_headers():
    content = base64.b64encode(b"A,B\n").decode("ascii")
    client, requests = make_client([{"content": content, "sha": "abc"}])

    assert client.get_text("data/games.csv") == ("A,B\n", "abc")

    request = requests[0]
    assert request.get_method() == "GET"
    assert request.full_url == "https://api.example/repos/pnp/catalog/contents/data%2Fgames.csv?ref=main"
    assert request.get_header("Authorization") == "Bearer tkn"
    assert request.get_header("Accept") == "application/vnd.github+json"


def test_get_sha_returns_none_only_for_missing_files():
    client, _ = make_client([http_error(404, b'{"message": "Not Found"}')])
    assert client.get_sha("uploads/x.png") is None

    client, _ = make_client([http_error(500, b"boom")])
    with pytest.raises(ContentAPIError) as excinfo:
        client.get_sha("uploads/x.png")
    assert excinfo.value.status == 500
    assert str(excinfo.value) == "GitHub 500: boom"


def test_put_file_looks_up_sha_and_sends_identity():
    client, requests = make_client([{"sha": "old"}, {"content": {"sha": "new"}}])

    result = client.put_file("data/games.csv", "QQ==", "Add entry")

    assert result == {"content": {"sha": "new"}}
    put = requests[1]
    assert put.get_method() == "PUT"
    body = json.loads(put.data.decode("utf-8"))
    assert body == {
        "message": "Add entry",
        "content": "QQ==",
        "branch": "main",
        "committer": {"name": "Bot", "email": "bot@example"},
        "author": {"name": "Bot", "email": "bot@example"},
        "sha": "old",
    }


def test_put_file_without_lookup_omits_sha():
    client, requests = make_client([{}])
    client.put_file("uploads/a.png", "QQ==", "Add image", lookup_sha=False)
    assert len(requests) == 1
    assert "sha" not in json.loads(requests[0].data.decode("utf-8"))


def test_rate_limited_requests_are_retried():
    sleeps = []
    client, requests = make_client(
        [http_error(429, headers={"Retry-After": "2"}), {"sha": "abc"}], sleeps=sleeps
    )
    assert client.get_sha("data/a.csv") == "abc"
    assert sleeps == [2.0]
    assert len(requests) == 2


def test_rate_limit_gives_up_after_max_retries():
    sleeps = []
    client, _ = make_client(
        [http_error(429), http_error(429)], sleeps=sleeps, max_retries=2, rate_limit_wait=0.5
    )
    with pytest.raises(ContentAPIError) as excinfo:
        client.get_file("data/a.csv")
    assert excinfo.value.status == 429
    assert sleeps == [0.5]


def test_transport_failures_become_content_errors():
    client, _ = make_client([URLError("no route")])
    with pytest.raises(ContentAPIError) as excinfo:
        client.get_file("data/a.csv")
    assert excinfo.value.status is None
    assert "no route" in str(excinfo.value)
