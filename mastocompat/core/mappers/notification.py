from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from mastocompat.core.helpers import (
    format_datetime,
    get_field,
    get_fields,
    render_html,
    uid,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import notification as schema
from mastocompat.core.schemas import status as status_schema

from . import account as account_mapper
from . import mention
from . import status as status_mapper

log = logging.getLogger("mastocompat.mappers")

STATUS_BEARING_TYPES = frozenset({"mention", "status", "reblog", "favourite", "poll", "update"})

_SIMPLE_VERBS = (
    ("like", "favourite"),
    ("boost", "reblog"),
    ("follow", "follow"),
    ("request", "follow_request"),
    ("flag", "admin.report"),
)


def _mentions_user(mentions: Iterable[Any], current_user: Optional[str]) -> bool:
    if not current_user:
        return False
    for item in mentions or ():
        if uid(get_field(item, "tag_id") or get_field(item, "id")) == current_user:
            return True
    return False


def map_verb_to_type(
    verb_id: Any, opts: Optional[MapOptions] = None, mentions: Optional[Iterable[Any]] = None
) -> str:
    """Mastodon notification type for a platform verb.

    create/reply become "mention" when the current user is among the post's
    mentions and "status" otherwise. Unknown verbs fall back to "status".

    """

    opts = opts or MapOptions()
    cfg = opts.config
    if verb_id is None:
        log.warning("notification_without_verb")
        return "status"
    for verb, kind in _SIMPLE_VERBS:
        if cfg.verb_is(verb_id, verb):
            return kind
    if cfg.verb_is(verb_id, "create") or cfg.verb_is(verb_id, "reply"):
        return "mention" if _mentions_user(mentions or [], opts.current_user) else "status"
    log.warning("notification_unknown_verb", extra={"verb_id": str(verb_id)})
    return "status"


def should_include_status(notification_type: str) -> bool:
    return notification_type in STATUS_BEARING_TYPES


def _subject(activity: Any, opts: MapOptions) -> Any:
    subject = get_fields(activity, ["account", "subject"])
    if subject is None:
        subject_id = uid(get_field(activity, "subject_id"))
        if subject_id and opts.subjects_by_id is not None:
            subject = opts.subjects_by_id.get(subject_id)
    return subject


def _fallback_status(activity: Any, subject: Any, opts: MapOptions) -> Optional[Dict[str, Any]]:
    """Minimal status from batch-loaded post content when the object is not a Post."""

    object_id = uid(get_field(activity, "object_id")) or uid(get_field(get_field(activity, "object"), "id"))
    post_content = get_field(activity, "object_post_content")
    if not post_content and object_id and opts.post_content_by_id is not None:
        post_content = opts.post_content_by_id.get(object_id)
    if not object_id or subject is None:
        return None

    raw_mentions: List[Any] = []
    if opts.mentions_by_object is not None:
        raw_mentions = list(opts.mentions_by_object.get(object_id) or [])
    uri = get_field(activity, "uri") or f"{opts.config.base_url}/post/{object_id}"
    record = status_schema.new(
        {
            "id": object_id,
            "created_at": format_datetime(get_field(activity, "created_at")),
            "uri": uri,
            "url": uri,
            "account": account_mapper.from_user(subject, opts.derive(skip_expensive_stats=True)),
            "content": render_html(get_fields(post_content, ["content", "html_body"]) or ""),
            "spoiler_text": get_field(post_content, "summary") or "",
            "mentions": mention.from_tags(raw_mentions, opts),
        }
    )
    return validate_and_return(record, status_schema)


def _status(activity: Any, subject: Any, opts: MapOptions) -> Optional[Dict[str, Any]]:
    obj = get_field(activity, "object")
    status_opts = opts.derive(for_notification=True)
    if status_mapper.typename(obj) == "Post":
        return status_mapper.from_post(obj, status_opts)
    if status_mapper.typename(obj) == "Boost":
        original = get_field(get_field(obj, "edge"), "object")
        if original is not None and status_mapper.typename(original) == "Post":
            return status_mapper.from_post(original, status_opts)
    return _fallback_status(activity, subject, opts)


def from_activity(activity: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    opts = opts or MapOptions()
    node = get_field(activity, "node")
    if isinstance(activity, Mapping) and node is not None:
        activity = node
    if activity is None:
        return None

    verb = get_field(activity, "verb")
    verb_id = verb if isinstance(verb, str) or verb is None else get_fields(verb, ["verb", "id"])
    object_id = uid(get_field(activity, "object_id"))
    mentions: List[Any] = []
    if object_id and opts.mentions_by_object is not None:
        mentions = list(opts.mentions_by_object.get(object_id) or [])
    kind = map_verb_to_type(verb_id, opts, mentions)

    subject = _subject(activity, opts)
    account = account_mapper.from_user(subject, opts.derive(skip_expensive_stats=True))
    status = _status(activity, subject, opts) if should_include_status(kind) else None
    if account is None and status is not None:
        status_account = status.get("account")
        if isinstance(status_account, Mapping) and status_account.get("id"):
            account = status_account

    record = schema.new(
        {
            "id": uid(get_field(activity, "id")),
            "type": kind,
            "created_at": format_datetime(get_field(activity, "created_at")),
            "account": account,
        }
    )
    if status is not None:
        record["status"] = status
    return validate_and_return(record, schema)


def from_activities(activities: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(activities, (list, tuple)):
        return []
    return [n for n in (from_activity(a, opts) for a in activities) if n is not None]
