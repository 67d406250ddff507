import logging

from catalog.state import SUBMIT_OPTION_FALLBACKS
from content_api.client import ContentAPIError
from routes.submit import CORS_HEADERS
from tests.app_helpers import FakeContentClient, load_app, write_csv


def tutorial_payload(**fields):
    return {"collection": "tutorials", "fields": {"Title": "Cutting Cards", **fields}}


def test_preflight_returns_cors_headers(tmp_path):
    client = load_app(tmp_path).app.test_client()
    response = client.options("/api/submit")
    assert response.status_code == 204
    for header, value in CORS_HEADERS.items():
        assert response.headers[header] == value


def test_cors_headers_only_on_submit(tmp_path):
    client = load_app(tmp_path).app.test_client()
    response = client.get("/api/ping")
    assert "Access-Control-Allow-Origin" not in response.headers


def test_invalid_json_body(tmp_path):
    module = load_app(tmp_path)
    module.content_client = FakeContentClient()
    response = module.app.test_client().post(
        "/api/submit", data="not json", content_type="text/plain"
    )
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid JSON body."}
    assert response.headers["Access-Control-Allow-Origin"] == "*"


def test_validation_errors_are_400(tmp_path):
    module = load_app(tmp_path)
    module.content_client = FakeContentClient()
    client = module.app.test_client()

    spam = client.post("/api/submit", json=tutorial_payload(website="http://spam.example"))
    assert spam.status_code == 400
    assert spam.get_json()["error"] == "Spam detected"

    game = client.post("/api/submit", json={"collection": "games", "fields": {"Game Title": "X"}})
    assert game.status_code == 400
    assert game.get_json()["error"] == "Missing required field: Free or Paid"
    assert module.content_client.puts == []


def test_submission_is_committed(tmp_path):
    module = load_app(tmp_path)
    fake = FakeContentClient({"data/tutorials.csv": "Component,Title,Creator,Description,Link,Image\n"})
    module.content_client = fake

    response = module.app.test_client().post(
        "/api/submit", json=tutorial_payload(Component="Cards", Link="https://t.example/c")
    )

    assert response.status_code == 200
    body = response.get_json()
    assert body["ok"] is True
    assert body["id"].startswith("cutting-cards-")
    assert body["imagePath"] == ""
    assert fake.files["data/tutorials.csv"].endswith(
        "Cards,Cutting Cards,,,https://t.example/c,\n"
    )


def test_unconfigured_repository_is_503(tmp_path):
    module = load_app(tmp_path)
    module.content_client = FakeContentClient(configured=False)
    response = module.app.test_client().post("/api/submit", json=tutorial_payload())
    assert response.status_code == 503
    assert response.get_json()["error"] == "Submissions are not configured."


def test_repository_failures_are_500(tmp_path):
    module = load_app(tmp_path)
    fake = FakeContentClient()
    fake.get_error = ContentAPIError("GitHub 401: Bad credentials", status=401)
    module.content_client = fake
    response = module.app.test_client().post("/api/submit", json=tutorial_payload())
    assert response.status_code == 500
    assert response.get_json()["error"] == "GitHub 401: Bad credentials"


def test_oversized_body_is_rejected(tmp_path):
    module = load_app(tmp_path)
    module.app.config["MAX_CONTENT_LENGTH"] = 64
    response = module.app.test_client().post(
        "/api/submit", json=tutorial_payload(Description="x" * 200)
    )
    assert response.status_code == 413
    assert response.get_json() == {"error": "file too large"}


def test_submit_options_from_games_csv(tmp_path, data_dir):
    write_csv(
        data_dir,
        "games.csv",
        ["Game Title", "Theme", "Free or Paid"],
        [["A", "Space", "Free"], ["B", "Horror", "$5"]],
    )
    client = load_app(tmp_path).app.test_client()
    options = client.get("/api/submit/options").get_json()["options"]
    assert options["Theme"] == ["Horror", "Space"]
    assert options["Free or Paid"] == ["Free", "Paid"]


def test_submit_options_fallback(tmp_path):
    client = load_app(tmp_path).app.test_client()
    assert client.get("/api/submit/options").get_json() == {"options": SUBMIT_OPTION_FALLBACKS}


def test_ping_and_echo(tmp_path):
    client = load_app(tmp_path).app.test_client()

    ping = client.get("/api/ping")
    assert ping.status_code == 200
    assert ping.get_json()["ok"] is True
    assert ping.get_json()["now"].endswith("Z")
    assert ping.headers["Cache-Control"] == "no-store"

    echo = client.post("/api/echo", data='{"a": 1}', content_type="application/json")
    assert echo.get_data(as_text=True) == '{"a": 1}'
    assert echo.mimetype == "application/json"
    assert echo.headers["Cache-Control"] == "no-store"

    empty = client.post("/api/echo")
    assert empty.get_data(as_text=True) == "{}"


def test_error_log_summarizes_submission_without_image_data(tmp_path, caplog):
    module = load_app(tmp_path)
    module.content_client = FakeContentClient(configured=False)
    image_data = "QUJD" * 50
    root = logging.getLogger()
    root.addHandler(caplog.handler)
    try:
        response = module.app.test_client().post(
            "/api/submit",
            json=tutorial_payload(Description="secret text")
            | {"image": {"filename": "a.png", "dataBase64": image_data}},
        )
    finally:
        root.removeHandler(caplog.handler)

    assert response.status_code == 503
    messages = "\n".join(record.getMessage() for record in caplog.records)
    assert "Submissions are not configured." in messages
    assert '"collection": "tutorials"' in messages
    assert '"base64_chars": 200' in messages
    assert image_data not in messages
    assert "secret text" not in messages
