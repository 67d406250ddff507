import json

from tests.app_helpers import load_app, write_csv

GAME_HEADERS = [
    "Game Title",
    "Designer",
    "Publisher",
    "Number of Players",
    "Release Year",
    "Download Link",
    "Secondary Download Link",
    "Game Image",
    "Gameplay Mode",
]


def write_games(data_dir):
    write_csv(
        data_dir,
        "games.csv",
        GAME_HEADERS,
        [
            ["Zeta Quest", "Ann", "Tiny Press", "1", "2019", "https://dl.example/z.pdf", "", "", "Solo"],
            ["Alpha Run", "Bo", "", "2-4", "2021", "https://dl.example/a.pdf",
             "https://mirror.example/a.pdf", "http://img.example/a.png", "Competitive"],
            ["Mid Game", "Cy", "", "3+", "", "", "", "", "Cooperative"],
        ],
    )


def test_games_listing_defaults_to_csv_order(tmp_path, data_dir):
    write_games(data_dir)
    module = load_app(tmp_path)
    client = module.app.test_client()

    response = client.get("/api/games")

    assert response.status_code == 200
    body = response.get_json()
    assert [item["fields"]["Game Title"] for item in body["items"]] == [
        "Zeta Quest",
        "Alpha Run",
        "Mid Game",
    ]
    assert body["total"] == 3
    assert body["page"] == 1
    assert body["total_pages"] == 1
    assert body["pages"] == [1]
    assert body["sort"] == "relevance"
    assert body["meta"] == "3 games • Page 1 of 1"
    assert body["items"][1]["image_url"] == "https://img.example/a.png"


def test_games_listing_filters_search_and_sort(tmp_path, data_dir):
    write_games(data_dir)
    client = load_app(tmp_path).app.test_client()

    players = client.get("/api/games", query_string={"Number of Players": "3"}).get_json()
    assert [item["id"] for item in players["items"]] == [1, 2]

    search = client.get("/api/games", query_string={"q": "ZETA"}).get_json()
    assert [item["id"] for item in search["items"]] == [0]

    newest = client.get("/api/games", query_string={"sort": "newest"}).get_json()
    assert [item["fields"]["Game Title"] for item in newest["items"]] == [
        "Alpha Run",
        "Zeta Quest",
        "Mid Game",
    ]

    az = client.get("/api/games", query_string={"sort": "az", "page": "9"}).get_json()
    assert az["page"] == 1
    assert az["items"][0]["fields"]["Game Title"] == "Alpha Run"


def test_unknown_sort_and_bad_page_fall_back(tmp_path, data_dir):
    write_games(data_dir)
    client = load_app(tmp_path).app.test_client()
    body = client.get("/api/games", query_string={"sort": "bogus", "page": "x"}).get_json()
    assert body["sort"] == "relevance"
    assert body["page"] == 1


def test_pagination_uses_page_size(tmp_path, data_dir):
    write_csv(data_dir, "tutorials.csv", ["Title"], [[f"T{i}"] for i in range(30)])
    client = load_app(tmp_path).app.test_client()
    body = client.get("/api/tutorials", query_string={"page": "2"}).get_json()
    assert body["page_size"] == 25
    assert [item["fields"]["Title"] for item in body["items"]] == [f"T{i}" for i in range(25, 30)]
    assert body["meta"] == "30 tutorials • Page 2 of 2"


def test_crowdfunding_listing_includes_status(tmp_path, data_dir):
    write_csv(
        data_dir,
        "crowdfunding.csv",
        ["Title", "Platform", "Launch Date (YYYY-MM-DD)", "End Date (YYYY-MM-DD)"],
        [
            ["Old", "Kickstarter", "2001-01-01", "2001-02-01"],
            ["Later", "Gamefound", "2999-01-01", "2999-02-01"],
        ],
    )
    client = load_app(tmp_path).app.test_client()

    body = client.get("/api/crowdfunding", query_string={"sort": "launch"}).get_json()
    assert [(item["fields"]["Title"], item["status"]) for item in body["items"]] == [
        ("Old", "Ended"),
        ("Later", "Upcoming"),
    ]
    assert body["items"][0]["status_label"] == "Ended Feb 1, 2001"

    ended = client.get("/api/crowdfunding", query_string={"Status": "Ended"}).get_json()
    assert [item["fields"]["Title"] for item in ended["items"]] == ["Old"]


def test_unknown_collection_and_missing_file(tmp_path, data_dir):
    client = load_app(tmp_path).app.test_client()

    missing = client.get("/api/nonsense")
    assert missing.status_code == 404
    assert missing.get_json()["error"] == "Unknown collection: nonsense"

    broken = client.get("/api/resources")
    assert broken.status_code == 500
    assert broken.get_json()["error"] == "Error loading resources."


def test_filters_endpoint(tmp_path, data_dir):
    write_csv(data_dir, "resources.csv", ["Category", "Title"], [["Tools", "A"], ["Paper", "B"]])
    client = load_app(tmp_path).app.test_client()
    body = client.get("/api/resources/filters").get_json()
    assert body == {
        "collection": "resources",
        "filters": {"Category": ["Paper", "Tools"]},
        "sort_options": ["relevance", "az", "creator"],
    }


def test_game_details(tmp_path, data_dir):
    write_games(data_dir)
    client = load_app(tmp_path).app.test_client()

    response = client.get("/api/games/1")
    assert response.status_code == 200
    body = response.get_json()
    assert body["id"] == 1
    assert body["title"] == "Alpha Run"
    assert body["byline"] == "Bo"
    assert body["download_link"] == "https://dl.example/a.pdf"
    assert body["secondary_download_link"] == "https://mirror.example/a.pdf"
    assert body["report_url"].startswith("mailto:")
    assert "Alpha%20Run" in body["report_url"]

    first = client.get("/api/games/0").get_json()
    assert first["byline"] == "Ann • Tiny Press"


def test_game_details_out_of_range(tmp_path, data_dir):
    write_games(data_dir)
    client = load_app(tmp_path).app.test_client()
    for idx in (3, -1):
        response = client.get(f"/api/games/{idx}")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Game not found."


def test_spotlight_endpoint(tmp_path, data_dir):
    write_games(data_dir)
    (data_dir / "spotlight.json").write_text(
        json.dumps(
            [
                {"key": "solo", "title": "Solo Picks",
                 "select": {"mode": "query", "where": [["Gameplay Mode", "includes", "solo"]]}},
                {"key": "coop", "title": "Co-op",
                 "select": {"mode": "query", "where": [["Gameplay Mode", "equals", "cooperative"]]}},
            ]
        ),
        encoding="utf-8",
    )
    client = load_app(tmp_path).app.test_client()

    body = client.get("/api/spotlight", query_string={"key": "coop"}).get_json()
    assert body["key"] == "coop"
    assert [item["fields"]["Game Title"] for item in body["items"]] == ["Mid Game"]
    assert body["meta"] == "1 featured game"
    assert body["definitions"] == [
        {"key": "solo", "title": "Solo Picks"},
        {"key": "coop", "title": "Co-op"},
    ]


def test_spotlight_without_definitions_is_an_error(tmp_path, data_dir):
    write_games(data_dir)
    client = load_app(tmp_path).app.test_client()
    response = client.get("/api/spotlight")
    assert response.status_code == 500
    assert "error" in response.get_json()
