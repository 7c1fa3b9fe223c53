from __future__ import annotations

import dataclasses
import json

import pytest

from mastocompat.api import interaction_handler
from mastocompat.api.interaction_handler import (
    BOOKMARK,
    FAVOURITE,
    INTERACTIONS,
    REBLOG,
    UNFAVOURITE,
    InteractionHandler,
)
from mastocompat.core.errors import DomainValidationError, Forbidden, PlatformError

ALICE = {"id": "u1", "character": {"username": "alice"}}
BOB = {"id": "me", "character": {"username": "bob"}}


def _activity(post_id="p1"):
    return {
        "id": "a1",
        "created_at": "2024-02-01T10:00:00Z",
        "verb": "create",
        "subject": ALICE,
        "object": {"__typename": "Post", "id": post_id, "post_content": {"html_body": "hello"}},
    }


def _body(response):
    return json.loads(response.body)


@pytest.fixture
def handler(config, platform):
    platform.objects["p1"] = _activity()
    platform.users["me"] = BOB
    return InteractionHandler(config)


def test_registry():
    assert set(INTERACTIONS) == {"favourite", "unfavourite", "reblog", "unreblog", "bookmark", "unbookmark"}
    assert INTERACTIONS["unfavourite"] is UNFAVOURITE


def test_requires_a_user(handler, platform):
    response = handler.handle("p1", None, FAVOURITE)
    assert response.status_code == 401
    assert _body(response) == {"error": "Unauthorized"}
    assert platform.calls["like"] == 0


def test_favourite_forces_flag(handler, platform):
    # the re-read still reports the old state
    platform.states["p1"] = {"favourited": False}
    response = handler.handle("p1", "me", FAVOURITE)

    body = _body(response)
    assert response.status_code == 200
    assert body["id"] == "p1"
    assert body["favourited"] is True
    assert platform.calls["like"] == 1
    assert platform.calls["read_object"] == 1


def test_unfavourite_clears_flag(handler, platform):
    platform.states["p1"] = {"favourited": True}
    assert _body(handler.handle("p1", "me", UNFAVOURITE))["favourited"] is False
    assert platform.calls["unlike"] == 1


def test_bookmark(handler, platform):
    assert _body(handler.handle("p1", "me", BOOKMARK))["bookmarked"] is True
    assert platform.calls["bookmark"] == 1


def test_reblog_answers_with_wrapper(handler, platform):
    platform.effect_result = {"id": "boost-9"}
    body = _body(handler.handle("p1", "me", REBLOG))

    assert body["id"] == "boost-9"
    assert body["uri"] == "https://social.example/post/boost-9"
    assert body["content"] == ""
    assert body["reblogged"] is True
    assert body["account"]["username"] == "bob"
    assert body["reblog"]["id"] == "p1"
    assert body["reblog"]["reblogged"] is True


def test_reblog_without_effect_result_reuses_object_id(handler, platform):
    body = _body(handler.handle("p1", "me", REBLOG))
    assert body["id"] == "p1"
    assert body["reblog"]["id"] == "p1"


def test_forbidden_is_surfaced(handler, platform):
    platform.effect_error = Forbidden()
    assert handler.handle("p1", "me", FAVOURITE).status_code == 403


def test_domain_validation_is_surfaced(handler, platform):
    platform.effect_error = DomainValidationError("already boosted")
    response = handler.handle("p1", "me", REBLOG)
    assert response.status_code == 422
    assert _body(response)["error"] == "Validation failed: already boosted"


def test_other_failures_read_as_not_found(handler, platform):
    platform.effect_error = PlatformError("constraint")
    response = handler.handle("p1", "me", FAVOURITE)
    assert response.status_code == 404
    assert platform.calls["read_object"] == 0


def test_missing_object_is_not_found(handler, platform):
    assert handler.handle("nope", "me", FAVOURITE).status_code == 404


def test_no_platform(config):
    handler = InteractionHandler(dataclasses.replace(config, platform=None))
    assert handler.handle("p1", "me", FAVOURITE).status_code == 500


def test_unexpected_effect_failure_reads_as_not_found(handler, platform):
    platform.effect_error = RuntimeError("db connection reset")
    response = handler.handle("p1", "me", FAVOURITE)

    assert response.status_code == 404
    assert _body(response) == {"error": "Not found"}
    assert platform.calls["read_object"] == 0


def test_unexpected_reread_failure_reads_as_not_found(handler, platform, monkeypatch):
    def broken_read(object_id, current_user):
        raise KeyError("object")

    monkeypatch.setattr(platform, "read_object", broken_read)
    assert handler.handle("p1", "me", BOOKMARK).status_code == 404


def test_remap_failure_reads_as_not_found(handler, monkeypatch):
    def broken_map(activity, opts):
        raise TypeError("bad row")

    monkeypatch.setattr(interaction_handler.status_mapper, "from_activity", broken_map)
    assert handler.handle("p1", "me", UNFAVOURITE).status_code == 404
