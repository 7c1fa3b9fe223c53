from __future__ import annotations

import json

import pytest

from mastocompat.api.rest_adapter import RestAdapter, extract_data, json_response
from mastocompat.core.config import CompatConfig
from mastocompat.core.errors import (
    ConstraintViolation,
    CursorError,
    DomainValidationError,
    Forbidden,
    NotFound,
    PlatformError,
    RateLimited,
    Unauthorized,
)


def _body(response):
    return json.loads(response.body)


@pytest.fixture
def adapter(config):
    return RestAdapter(config)


@pytest.fixture
def prod_adapter():
    return RestAdapter(CompatConfig(base_url="https://social.example", environment="prod"))


@pytest.mark.parametrize(
    "reason, status_code, error",
    [
        (Unauthorized(), 401, "Unauthorized"),
        ("unauthorized", 401, "Unauthorized"),
        (Forbidden(), 403, "Forbidden"),
        ("permission denied for this post", 403, "Forbidden"),
        (NotFound(), 404, "Not found"),
        (("error", "not_found"), 404, "Not found"),
        (DomainValidationError("poll expired"), 422, "Validation failed: poll expired"),
        (ConstraintViolation("key (object_id) does not exist"), 404, "Not found"),
        (ConstraintViolation("name is too long"), 422, "Validation failed: name is too long"),
        (CursorError("invalid base64 cursor"), 400, "invalid base64 cursor"),
        ("something odd", 400, "something odd"),
        (RateLimited(), 429, "Too many requests"),
        ([{"message": "nope", "code": "unauthenticated"}], 401, "nope"),
        ([{"message": "gone", "extensions": {"code": "NOT_FOUND"}}], 404, "gone"),
        ([{"message": "You are not permitted"}], 403, "Forbidden"),
        ([{"message": "bad arg"}], 400, "bad arg"),
        (RuntimeError("boom"), 500, "Internal server error"),
    ],
)
def test_classify(adapter, reason, status_code, error):
    assert adapter.classify(reason) == (status_code, {"error": error})


def test_details_only_outside_prod(adapter, prod_adapter):
    dev = adapter.error_response(PlatformError("db down"))
    assert dev.status_code == 500
    assert _body(dev)["details"] == {"type": "PlatformError", "message": "db down"}

    prod = prod_adapter.error_response(PlatformError("db down"))
    assert _body(prod) == {"error": "Internal server error"}


def test_graphql_errors_get_details_in_dev(adapter):
    errors = [{"message": "gone", "code": "not_found", "path": ["post"]}]
    body = _body(adapter.error_response(errors))
    assert body["error"] == "gone"
    assert body["details"] == errors


def test_rate_limited_carries_headers(adapter):
    response = adapter.error_response(RateLimited(3, {"Retry-After": "3"}))
    assert response.status_code == 429
    assert response.headers["retry-after"] == "3"


def test_respond_success_with_transform(adapter):
    result = {"data": {"post": {"id": "p1"}}}
    response = adapter.respond("post", result, transform=lambda d: {"id": d["id"], "ok": True})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    assert _body(response) == {"id": "p1", "ok": True}


def test_respond_partial_success_keeps_data(adapter):
    result = {"data": {"post": {"id": "p1"}}, "errors": [{"message": "boosts unavailable"}]}
    response = adapter.respond("post", result)
    assert response.status_code == 200
    assert _body(response) == {"id": "p1"}


def test_respond_errors_without_data(adapter):
    missing = {"data": None, "errors": [{"message": "not found", "code": "not_found"}]}
    assert adapter.respond("post", missing).status_code == 404
    assert adapter.respond("post", {"errors": [{"message": "bad"}]}).status_code == 400
    assert adapter.respond("post", ("error", Forbidden())).status_code == 403
    assert adapter.respond("post", NotFound()).status_code == 404
    assert adapter.respond("post", 42).status_code == 500


def test_json_response_fallback():
    response = json_response({"x": object()})
    assert response.status_code == 500
    assert _body(response) == {"error": "Internal server error"}


def test_extract_data():
    assert extract_data(None, "post") is None
    assert extract_data({"post": {"id": 1}}, "post") == {"id": 1}
    assert extract_data({"aliased": {"id": 2}}, "post") == {"id": 2}
    assert extract_data({"a": 1, "b": 2}, "post") == {"a": 1, "b": 2}
    assert extract_data([1, 2], "post") == [1, 2]
