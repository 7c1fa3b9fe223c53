from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

from mastocompat.core.mappers import (
    conversation,
    list as list_mapper,
    media_attachment,
    mention,
    poll,
    preview_card,
    report,
    suggestion,
    tag,
)

ALICE = {"id": "u1", "character": {"username": "alice"}}
BOB = {"id": "me", "character": {"username": "bob"}}


def _message(**extra):
    message = {
        "id": "m2",
        "created_at": "2024-04-01T12:00:00Z",
        "creator": ALICE,
        "post_content": {"html_body": "psst"},
        "replied": {"thread_id": "th1"},
        "participants": [ALICE, BOB],
        "activity": {"seen": None},
    }
    message.update(extra)
    return message


# Conversations


def test_conversation_from_thread(opts):
    out = conversation.from_thread(_message(), opts)

    assert out["id"] == "th1"
    assert [a["id"] for a in out["accounts"]] == ["u1"]
    assert out["unread"] is True
    assert out["last_status"]["id"] == "m2"
    assert out["last_status"]["visibility"] == "direct"


def test_conversation_root_message_is_its_own_thread(opts):
    out = conversation.from_thread(_message(replied=None, activity={"seen": {"id": "s1"}}), opts)
    assert out["id"] == "m2"
    assert out["unread"] is False


def test_conversation_loads_participants_when_missing(opts, platform):
    platform.participants["th1"] = [ALICE]
    message = _message()
    del message["participants"]

    out = conversation.from_thread(message, opts)

    assert [a["id"] for a in out["accounts"]] == ["u1"]
    assert platform.calls["thread_participants"] == 1


def test_is_unread():
    assert conversation.is_unread(None)
    assert conversation.is_unread(False)
    assert conversation.is_unread([])
    assert not conversation.is_unread({"id": "seen"})


# Reports


def test_report_on_user(opts):
    flag = {
        "id": "f1",
        "comment": "spam!",
        "category": "spam",
        "object": {"__typename": "User", "id": "u1", "character": {"username": "alice"}},
    }
    out = report.from_flag(flag, opts)

    assert out["id"] == "f1"
    assert out["comment"] == "spam!"
    assert out["category"] == "spam"
    assert out["status_ids"] is None
    assert out["target_account"]["id"] == "u1"
    assert out["created_at"].endswith("Z")


def test_report_on_post_targets_creator(opts):
    post = {"__typename": "Post", "id": "p3", "creator": ALICE, "post_content": {"html_body": "x"}}
    flag = {"id": "01HQ0000000000000000000000", "named": {"name": "rude"}, "edge": {"object": post}}
    out = report.from_flag(flag, opts)

    assert out["status_ids"] == ["p3"]
    assert out["target_account"]["username"] == "alice"
    assert out["comment"] == "rude"
    assert out["category"] == "other"


def test_report_without_target_is_dropped(opts):
    assert report.from_flag({"id": "f2"}, opts) is None
    assert report.is_identity(SimpleNamespace(username="x"))


# Lists and suggestions


def test_list_from_circle():
    assert list_mapper.from_circle({"id": "c1", "name": "Friends"}) == {
        "id": "c1",
        "title": "Friends",
        "replies_policy": "list",
        "exclusive": False,
    }
    assert list_mapper.from_circle({"id": "c2", "named": {"name": "Work"}})["title"] == "Work"
    assert list_mapper.from_circle({"name": "no id"}) is None
    assert [c["id"] for c in list_mapper.from_circles([{"id": "c1"}, {}])] == ["c1"]


def test_suggestion_from_user(opts):
    out = suggestion.from_user(ALICE, opts.derive(skip_expensive_stats=True, source="staff"))
    assert out["source"] == "staff"
    assert out["sources"] == ["staff"]
    assert out["account"]["id"] == "u1"

    default = suggestion.from_user(ALICE, opts.derive(skip_expensive_stats=True))
    assert default["source"] == "global"

    assert suggestion.from_user(ALICE, opts.derive(skip_expensive_stats=True, source="vibes")) is None


# Tags and mentions


def test_tag_from_hashtag(opts):
    out = tag.from_hashtag({"id": "h2", "named": {"name": "#Art"}}, opts.derive(following=True))
    assert out == {
        "id": "h2",
        "name": "art",
        "url": "https://social.example/pub/tags/art",
        "history": [],
        "following": True,
    }
    assert tag.from_hashtag({"id": "h3"}, opts) is None


def test_tags_are_deduplicated(opts):
    out = tag.from_tags([{"name": "#Art"}, {"name": "art"}, {"name": "cats"}], opts)
    assert [t["name"] for t in out] == ["art", "cats"]


def test_mention_through_pointer(opts):
    tag_ = {
        "id": "t3",
        "pointer": {
            "character": {"id": "u4", "username": "dee", "canonical_uri": "https://remote.example/@dee"}
        },
    }
    assert mention.from_tag(tag_, opts) == {
        "id": "u4",
        "username": "dee",
        "acct": "dee@remote.example",
        "url": "https://remote.example/@dee",
    }


def test_mention_without_identity(opts):
    assert mention.from_tag({"id": "t4", "name": "#notamention"}, opts) is None
    assert mention.from_tag({"character": {"id": "u5"}}, opts) is None
    assert not mention.is_mention_tag({"name": "art"})


# Media and cards


def test_categorize_media_type():
    assert media_attachment.categorize_media_type("image/png") == "image"
    assert media_attachment.categorize_media_type("image/gif") == "gifv"
    assert media_attachment.categorize_media_type("video/mp4") == "video"
    assert media_attachment.categorize_media_type("audio/ogg") == "audio"
    assert media_attachment.categorize_media_type("application/pdf") == "unknown"
    assert media_attachment.categorize_media_type(None) == "unknown"


def test_parse_focus():
    assert media_attachment.parse_focus("0.5,-0.25") == {"x": 0.5, "y": -0.25}
    assert media_attachment.parse_focus("junk") == {"x": 0.0, "y": 0.0}
    assert media_attachment.parse_focus({"x": 0.1, "y": 0.2}) == {"x": 0.1, "y": 0.2}


def test_media_attachment_video():
    media = {
        "id": 42,
        "path": "https://cdn.example/v.mp4",
        "media_type": "video/mp4",
        "metadata": {"duration": 12.5, "label": "a clip", "blurhash": "LEHV6n"},
    }
    out = media_attachment.from_media(media)

    assert out["id"] == "42"
    assert out["type"] == "video"
    assert out["url"] == out["preview_url"] == "https://cdn.example/v.mp4"
    assert out["meta"] == {"duration": 12.5}
    assert out["description"] == "a clip"
    assert out["blurhash"] == "LEHV6n"


def test_media_without_url_is_dropped():
    assert media_attachment.from_media({"id": "m1"}) is None
    assert media_attachment.from_media_list([{"id": "m1"}, {"url": "https://x/y.png"}])[0]["url"] == "https://x/y.png"


def test_preview_card():
    media = {
        "path": "https://news.example/story",
        "object_count": 3,
        "metadata": {
            "facebook": {"title": "Story", "site_name": "News", "image": {"url": "https://news.example/i.jpg"}},
            "twitter": {"creator": ["@reporter"]},
        },
    }
    out = preview_card.from_media(media)

    assert out["url"] == "https://news.example/story"
    assert out["title"] == "Story"
    assert out["type"] == "link"
    assert out["provider_name"] == "News"
    assert out["author_name"] == "@reporter"
    assert out["image"] == "https://news.example/i.jpg"
    history = out["history"][0]
    assert history["uses"] == history["accounts"] == "3"
    assert int(history["day"]) % 86400 == 0
    assert preview_card.from_media({"label": "no path"}) is None


# Polls


def _question(**extra):
    q = {
        "__typename": "Question",
        "id": "q1",
        "voting_format": "multiple",
        "voting_dates": ["2024-01-01T00:00:00Z", "2024-01-02T00:00:00Z"],
        "choices": [
            {"id": "c2", "post_content": {"name": "Two"}, "votes_count": 3},
            {"id": "c1", "post_content": {"name": "One"}, "votes_count": 1},
        ],
    }
    q.update(extra)
    return q


def test_poll_from_question(opts, platform):
    platform.votes = ["c2"]
    out = poll.from_question(_question(), opts)

    assert [o["title"] for o in out["options"]] == ["One", "Two"]
    assert out["votes_count"] == 4
    assert out["expired"] is True
    assert out["expires_at"] == "2024-01-02T00:00:00Z"
    assert out["multiple"] is True
    assert out["voted"] is True
    assert out["own_votes"] == [1]
    assert platform.calls["voted_choice_ids"] == 1


def test_poll_uses_preloaded_votes(opts, platform):
    out = poll.from_question(_question(), opts.derive(user_votes=[{"edge": {"object_id": "c1"}}], votes_count=9))
    assert out["own_votes"] == [0]
    assert out["votes_count"] == 9
    assert platform.calls["voted_choice_ids"] == 0


def test_poll_anonymous_viewer(opts, platform):
    out = poll.from_question(_question(voting_format="single"), opts.derive(current_user=None))
    assert out["voted"] is False
    assert out["own_votes"] == []
    assert out["multiple"] is False
    assert platform.calls["voted_choice_ids"] == 0


def test_poll_expiry_and_detection():
    future = _question(voting_dates=["2024-01-01T00:00:00Z", "2999-01-01T00:00:00Z"])
    assert not poll.poll_expired(future)
    assert poll.poll_expired(future, now=datetime(3000, 1, 1, tzinfo=timezone.utc))
    assert not poll.poll_expired({"id": "q"})
    assert poll.is_poll(_question())
    assert poll.is_poll(SimpleNamespace(choices=[], voting_dates=[]))
    assert not poll.is_poll({"id": "x"})


def test_mention_exclusion_and_id_agree(opts):
    me_row = {"id": "t7", "character": {"id": "me", "username": "bob"}}
    zed_row = {"id": "t8", "character": {"id": "u9", "username": "zed"}}

    assert mention.from_tag(me_row, opts)["id"] == "me"
    assert [m["id"] for m in mention.from_tags([me_row, zed_row], opts.derive(current_user="me"))] == ["u9"]
