from __future__ import annotations

import base64
import json

import pytest
from starlette.requests import Request
from starlette.responses import Response

from mastocompat.api import pagination
from mastocompat.core.errors import CursorError


def _request(path="/api/v1/timelines/home", query="", scheme="https", host="social.example", port=443):
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": scheme,
        "server": (host, port),
        "path": path,
        "query_string": query.encode("ascii"),
        "headers": [(b"host", (host if port in (80, 443) else f"{host}:{port}").encode("ascii"))],
    }
    return Request(scope)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1000", 40),
        ("abc", 20),
        (15, 15),
        (None, 20),
        (0, 20),
        (-3, 20),
        ("12abc", 12),
        (40, 40),
        (41, 40),
        (True, 20),
        (2.5, 20),
    ],
)
def test_validate_limit(raw, expected):
    assert pagination.validate_limit(raw, default=20, max_limit=40) == expected


def test_validate_limit_defaults():
    assert pagination.validate_limit(None) == 40
    assert pagination.validate_limit(100) == 80


def test_build_pagination_opts():
    assert pagination.build_pagination_opts({"max_id": "abc"}, 20) == {"limit": 20, "after": "abc"}
    assert pagination.build_pagination_opts({}, 40) == {"limit": 40}
    both = pagination.build_pagination_opts({"since_id": "old", "min_id": "new", "max_id": ""}, 20)
    assert both == {"limit": 20, "before": "new"}


def test_plain_id_cursor_round_trip():
    for value in ("01HZX3K8Q6", "abc", "with spaces/and?symbols"):
        cursor = pagination.encode_plain_id_cursor(value)
        assert cursor.startswith(pagination.CURSOR_PREFIX)
        assert pagination.decode_cursor(cursor) == {"activity.id": value}


def test_plain_id_cursor_rejects_empty():
    with pytest.raises(CursorError):
        pagination.encode_plain_id_cursor("")


def test_encode_cursor_for_graphql_passes_valid_cursors_through():
    cursor = pagination.encode_plain_id_cursor("abc")
    assert pagination.encode_cursor_for_graphql(cursor) == cursor
    assert pagination.encode_cursor_for_graphql("abc") == cursor


def test_encode_cursor_for_graphql_rejects_corrupt_cursors():
    corrupt = "eyJ" + base64.urlsafe_b64encode(b"not json").decode("ascii")
    with pytest.raises(CursorError):
        pagination.encode_cursor_for_graphql(corrupt)
    with pytest.raises(CursorError):
        pagination.encode_cursor_for_graphql(None)


def test_extract_pagination_cursors_min_id_wins():
    cursors = pagination.extract_pagination_cursors({"since_id": "old", "min_id": "new"})
    assert pagination.decode_cursor(cursors["before"]) == {"activity.id": "new"}
    assert "after" not in cursors


def test_extract_pagination_cursors_drops_invalid():
    cursors = pagination.extract_pagination_cursors({"max_id": "eyJabc", "min_id": "ok"})
    assert "after" not in cursors
    assert "before" in cursors


def test_extract_limit_with_direction():
    after = {"after": "x"}
    before = {"before": "y"}
    assert pagination.extract_limit_with_direction({"limit": "5"}, after) == {"first": 5}
    assert pagination.extract_limit_with_direction({"limit": "5"}, before) == {"last": 5}
    assert pagination.extract_limit_with_direction({}, {}) == {"first": 20}


def test_build_feed_params():
    out = pagination.build_feed_params({"limit": "10", "max_id": "abc"}, {"feed_name": "my"})

    assert out["filter"] == {"feed_name": "my", "time_limit": 0}
    assert out["first"] == 10
    assert pagination.decode_cursor(out["after"]) == {"activity.id": "abc"}
    assert "before" not in out and "last" not in out


def test_encode_cursor_for_link_header():
    assert pagination.encode_cursor_for_link_header(None) is None
    encoded = pagination.encode_cursor_for_link_header("abc", "object.id")
    assert pagination.decode_cursor(encoded) == {"object.id": "abc"}
    assert pagination.encode_cursor_for_link_header(encoded) == encoded
    from_map = pagination.encode_cursor_for_link_header({("activity", "id"): "x"})
    assert pagination.decode_cursor(from_map) == {"activity.id": "x"}


def test_cursor_field_from_page_info():
    assert pagination.cursor_field_from_page_info({"cursor_fields": [(("object", "id"), "desc")]}) == "object.id"
    assert pagination.cursor_field_from_page_info({"cursor_fields": ["created_at"]}) == "created_at"
    assert pagination.cursor_field_from_page_info({}) == "activity.id"


def test_build_link_header():
    page_info = {"start_cursor": "new", "end_cursor": "old"}
    header = pagination.build_link_header("https://social.example/api/v1/timelines/home", {"limit": "5", "x": "1"}, page_info, [])

    nxt = pagination.encode_plain_id_cursor("old")
    prev = pagination.encode_plain_id_cursor("new")
    assert header == (
        f'<https://social.example/api/v1/timelines/home?limit=5&max_id={nxt}>; rel="next", '
        f'<https://social.example/api/v1/timelines/home?limit=5&min_id={prev}>; rel="prev"'
    )


def test_build_link_header_last_page_and_item_fallback():
    items = [{"id": "i01"}, {"id": "i02"}]
    header = pagination.build_link_header("https://s/x", {}, {"final_cursor": "z"}, items)

    assert 'rel="next"' not in header
    assert pagination.encode_plain_id_cursor("i01") in header
    assert pagination.build_link_header("https://s/x", {}, {}, []) is None


def test_add_link_headers_sets_expose_header():
    request = _request(query="limit=2")
    response = pagination.add_link_headers(Response(), request, {"start_cursor": "a", "end_cursor": "b"}, [])

    link = response.headers["link"]
    assert link.startswith("<https://social.example/api/v1/timelines/home?limit=2&max_id=")
    assert response.headers["access-control-expose-headers"] == "Link"


def test_request_base_url_keeps_non_standard_port():
    assert pagination.request_base_url(_request(scheme="http", host="localhost", port=4000)) == (
        "http://localhost:4000/api/v1/timelines/home"
    )
    assert pagination.request_base_url(_request()) == "https://social.example/api/v1/timelines/home"


def test_add_simple_link_headers_uses_plain_ids():
    items = [{"id": "n3"}, {"id": "n1"}]
    response = pagination.add_simple_link_headers(Response(), _request(path="/api/v1/notifications"), {}, items)

    assert response.headers["link"] == (
        '<https://social.example/api/v1/notifications?max_id=n1>; rel="next", '
        '<https://social.example/api/v1/notifications?min_id=n3>; rel="prev"'
    )


def test_no_links_no_header():
    response = pagination.add_simple_link_headers(Response(), _request(), {}, [])
    assert "link" not in response.headers


def test_cursor_wire_format_is_json():
    cursor = pagination.encode_plain_id_cursor("abc")
    assert json.loads(base64.urlsafe_b64decode(cursor)) == {"activity.id": "abc"}
