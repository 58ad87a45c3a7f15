from core.media.cors import cors_handler, match_cors_origin


def test_match_cors_origin_wildcard_and_exact():
    assert match_cors_origin(["*"], "https://a.example") == "*"
    assert match_cors_origin(["https://a.example"], "https://a.example") == "https://a.example"
    assert match_cors_origin(["https://a.example"], "https://b.example") == ""
    assert match_cors_origin(["*"], None) == ""


def test_preflight_is_answered_when_serving():
    headers, status = cors_handler(
        "OPTIONS",
        {"Origin": "https://a.example", "Access-Control-Request-Method": "GET"},
        ["https://a.example"],
        True,
    )

    assert status == 204
    assert headers["Access-Control-Allow-Origin"] == "https://a.example"
    assert "GET" in headers["Access-Control-Allow-Methods"]


def test_get_continues_with_origin_headers():
    headers, status = cors_handler("GET", {"origin": "https://a.example"}, ["*"], True)

    assert status == 0
    assert headers["Access-Control-Allow-Origin"] == "*"


def test_not_serving_adds_no_headers():
    assert cors_handler("GET", {"Origin": "https://a.example"}, ["*"], False) == ({}, 0)
    assert cors_handler("OPTIONS", {"Origin": "https://a.example"}, ["*"], False) == ({}, 204)
