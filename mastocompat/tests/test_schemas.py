from __future__ import annotations

import pytest

from mastocompat.core import schemas
from mastocompat.core.schemas import (
    INVALID_INPUT,
    INVALID_SOURCE,
    INVALID_TYPE,
    MISSING_FIELDS,
)

ACCOUNT = {"id": "1", "username": "alice", "acct": "alice", "url": "https://x/@alice"}


@pytest.mark.parametrize(
    "module, missing",
    [
        (schemas.account, ["id"]),
        (schemas.status, ["id", "uri", "created_at", "account"]),
        (schemas.notification, ["id", "type", "created_at", "account"]),
        (schemas.conversation, ["id"]),
        (schemas.poll, ["id"]),
        (schemas.report, ["id", "created_at", "target_account"]),
        (schemas.tag, ["name", "url"]),
        (schemas.mention, ["id", "username", "acct", "url"]),
        (schemas.list, ["id"]),
        (schemas.relationship, ["id"]),
        (schemas.suggestion, ["account"]),
        (schemas.preview_card, ["url"]),
    ],
)
def test_empty_record_lists_missing_required_fields(module, missing):
    result = module.validate(module.new({}))
    assert not result.ok
    assert result.error == MISSING_FIELDS
    assert result.detail == missing


@pytest.mark.parametrize(
    "module, overrides",
    [
        (schemas.account, {"id": "1", "username": "alice", "acct": "alice", "url": "u"}),
        (
            schemas.status,
            {"id": "1", "uri": "u", "created_at": "2024-01-01T00:00:00Z", "account": ACCOUNT},
        ),
        (
            schemas.notification,
            {"id": "1", "type": "mention", "created_at": "2024-01-01T00:00:00Z", "account": ACCOUNT},
        ),
        (schemas.conversation, {"id": "1"}),
        (schemas.poll, {"id": "1"}),
        (schemas.report, {"id": "1", "created_at": "2024-01-01T00:00:00Z", "target_account": ACCOUNT}),
        (schemas.tag, {"name": "python", "url": "u"}),
        (schemas.mention, {"id": "1", "username": "a", "acct": "a", "url": "u"}),
        (schemas.list, {"id": "1"}),
        (schemas.relationship, {"id": "1"}),
        (schemas.suggestion, {"account": ACCOUNT}),
        (schemas.media_attachment, {}),
        (schemas.preview_card, {"url": "https://example.org"}),
    ],
)
def test_valid_overrides_pass(module, overrides):
    result = module.validate(module.new(overrides))
    assert result.ok
    assert result.record == module.new(overrides)


def test_defaults_follow_mastodon():
    status = schemas.status.defaults()
    assert status["visibility"] == "public"
    assert status["favourites_count"] == 0
    assert status["media_attachments"] == []
    assert schemas.account.defaults()["discoverable"] is True
    lst = schemas.list.defaults()
    assert lst["replies_policy"] == "list" and lst["exclusive"] is False
    assert schemas.suggestion.defaults()["source"] == "global"


def test_new_does_not_share_mutable_defaults():
    a = schemas.status.new({})
    a["tags"].append("x")
    assert schemas.status.new({})["tags"] == []


def test_non_mapping_is_invalid_input():
    result = schemas.account.validate(["not", "a", "record"])
    assert result.error == INVALID_INPUT
    assert result.detail == "list"


def test_notification_type_must_be_known():
    record = schemas.notification.new(
        {"id": "1", "type": "poke", "created_at": "2024-01-01T00:00:00Z", "account": ACCOUNT}
    )
    result = schemas.notification.validate(record)
    assert result.error == INVALID_TYPE
    assert result.detail == "poke"


def test_suggestion_source_must_be_known():
    result = schemas.suggestion.validate(schemas.suggestion.new({"source": "vibes", "account": ACCOUNT}))
    assert result.error == INVALID_SOURCE
    assert result.detail == "vibes"
