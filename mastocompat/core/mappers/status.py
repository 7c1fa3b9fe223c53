"""Status mapper.

An activity is one of three things:

- a boost: a wrapper Status whose ``reblog`` nests the original post. The
  original is mapped with ``is_reblog`` set, and a boost of a boost is
  unwrapped exactly once, so nesting never goes deeper than one level.
- an event: handed to ``config.event_adapter`` when one is configured.
- a regular post.

Mentions and interaction flags prefer data the caller already loaded
(inline flags, batch maps) and only fall back to live gateway queries when
that data is absent. ``lightweight`` turns the live fallbacks off.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from mastocompat.core.errors import PlatformError
from mastocompat.core.helpers import (
    date_from_ulid,
    deep_struct_to_map,
    format_datetime,
    get_field,
    get_fields,
    render_html,
    strip_html_tags,
    to_int,
    uid,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import status as schema

from . import account as account_mapper
from . import media_attachment, mention, poll, preview_card, tag

log = logging.getLogger("mastocompat.mappers")

_FLAG_KEYS = ("favourited", "reblogged", "bookmarked")


def typename(obj: Any) -> Optional[str]:
    if obj is None:
        return None
    name = get_fields(obj, ["__typename", "object_type"])
    if name is None and not isinstance(obj, Mapping):
        cls = type(obj).__name__
        if cls != "SimpleNamespace":
            name = cls
    return name


def is_post(obj: Any) -> bool:
    name = typename(obj)
    if name is None:
        return get_field(obj, "post_content") is not None
    return name == "Post"


def _verb(activity: Any) -> Any:
    verb = get_field(activity, "verb")
    if verb is None or isinstance(verb, str):
        return verb
    return get_fields(verb, ["verb", "id"])


def _unwrap_edge(value: Any) -> Any:
    node = get_field(value, "node")
    if isinstance(value, Mapping) and node is not None:
        return node
    return value


def _tags(*sources: Any) -> List[Any]:
    for source in sources:
        for key in ("tags", "tagged"):
            value = get_field(source, key)
            if value:
                return list(value)
    return []


def _acl_data(*sources: Any) -> Optional[Dict[str, Any]]:
    """Collect ACL ids and grants from the first source that carries ACLs."""

    for source in sources:
        acls = get_fields(source, ["acls", "controlled"])
        if acls is None:
            continue
        if not isinstance(acls, (list, tuple)):
            acls = [acls]
        ids = set()
        grants = list(get_field(source, "grants") or [])
        for item in acls:
            acl_id = uid(get_field(item, "acl_id")) or uid(item)
            if acl_id:
                ids.add(acl_id)
            nested = get_field(get_field(item, "acl"), "grants") or get_field(item, "grants")
            if nested:
                grants.extend(nested)
        return {"ids": ids, "grants": grants}
    return None


def map_visibility(acl_data: Optional[Mapping[str, Any]], opts: MapOptions) -> str:
    """Approximate Mastodon visibility from ACL membership.

    No ACL information at all reads as public. An ACL list without any
    preset ACL is private when it grants the followers circle and direct
    otherwise. Among presets, remote-public beats public beats local.

    """

    if opts.for_conversation:
        return "direct"
    if acl_data is None:
        return "public"

    cfg = opts.config
    ids = set(acl_data.get("ids") or ())
    if not ids & (cfg.remote_public_acls | cfg.public_acls | cfg.local_acls):
        for grant in acl_data.get("grants") or ():
            target = uid(get_fields(grant, ["subject_id", "circle_id"])) or uid(get_field(grant, "subject"))
            if target == cfg.followers_circle_id:
                return "private"
        return "direct"
    if ids & cfg.remote_public_acls:
        return "public"
    if ids & cfg.public_acls:
        return "public"
    if ids & cfg.local_acls:
        return "unlisted"
    return "direct"


def _activity_context(activity: Any) -> Dict[str, Any]:
    obj = get_field(activity, "object")
    replied = get_field(activity, "replied") or get_field(obj, "replied")
    activity_id = uid(get_field(activity, "id"))
    return {
        "activity": activity,
        "id": activity_id,
        "created_at": get_field(activity, "created_at") or get_field(obj, "created_at"),
        "uri": get_field(activity, "uri") or get_field(obj, "canonical_uri"),
        "object": obj,
        "object_id": uid(get_field(activity, "object_id")) or uid(get_field(obj, "id")),
        "post_content": get_field(activity, "object_post_content") or get_field(obj, "post_content"),
        "subject": get_fields(activity, ["account", "subject"]),
        "creator": get_field(activity, "creator") or get_field(obj, "creator"),
        "verb": _verb(activity),
        "media": get_field(activity, "media") or get_field(obj, "media") or [],
        "in_reply_to_id": uid(get_field(replied, "reply_to_id")),
        "in_reply_to_account_id": uid(get_field(get_field(replied, "reply_to"), "subject_id")),
        "flags": {
            "favourited": get_field(activity, "liked_by_me"),
            "reblogged": get_field(activity, "boosted_by_me"),
            "bookmarked": get_field(activity, "bookmarked_by_me"),
        },
        "like_count": get_fields(activity, ["like_count", "favourites_count"]),
        "boost_count": get_fields(activity, ["boost_count", "reblogs_count"]),
        "replies_count": get_field(activity, "replies_count"),
        "sensitive": get_field(activity, "sensitive") or get_field(obj, "sensitive"),
        "tags": _tags(activity, obj),
        "acls": _acl_data(activity, obj),
        "poll": obj if poll.is_poll(obj) else None,
    }


def _post_context(post: Any, opts: MapOptions) -> Dict[str, Any]:
    activity = get_field(post, "activity")
    created = get_field(post, "created")
    replied = get_field(post, "replied") or get_field(activity, "replied")
    post_id = uid(get_field(post, "id"))
    return {
        "activity": activity,
        "id": post_id,
        "created_at": get_field(activity, "created_at")
        or get_field(post, "created_at")
        or date_from_ulid(post_id),
        "uri": get_field(activity, "uri")
        or get_field(post, "canonical_uri")
        or (f"{opts.config.base_url}/post/{post_id}" if post_id else None),
        "object": post,
        "object_id": post_id,
        "post_content": get_field(post, "post_content"),
        "subject": None,
        "creator": get_field(activity, "creator")
        or get_field(activity, "subject")
        or get_field(created, "creator")
        or get_field(post, "creator"),
        "verb": None,
        "media": get_field(post, "media") or get_field(activity, "media") or [],
        "in_reply_to_id": uid(get_field(replied, "reply_to_id")),
        "in_reply_to_account_id": uid(get_field(get_field(replied, "reply_to"), "subject_id")),
        "flags": {
            "favourited": get_field(post, "liked_by_me"),
            "reblogged": get_field(post, "boosted_by_me"),
            "bookmarked": get_field(post, "bookmarked_by_me"),
        },
        "like_count": get_fields(post, ["like_count", "favourites_count"]),
        "boost_count": get_fields(post, ["boost_count", "reblogs_count"]),
        "replies_count": get_field(post, "replies_count"),
        "sensitive": get_field(post, "sensitive"),
        "tags": _tags(post, activity),
        "acls": _acl_data(post, activity),
        "poll": post if poll.is_poll(post) else None,
    }


def _nested_account(user: Any, opts: MapOptions) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    nested = opts.for_nested_account().derive(skip_expensive_stats=True)
    mapped = account_mapper.from_user(user, nested)
    if mapped is None:
        return None
    return deep_struct_to_map(mapped, drop_unknown_structs=True)


def _content(ctx: Mapping[str, Any]) -> Dict[str, str]:
    post_content = ctx.get("post_content")
    raw = get_fields(post_content, ["content", "html_body"]) or ""
    html = render_html(raw)
    return {
        "html": html,
        "text": get_field(post_content, "name") or strip_html_tags(html),
        "spoiler_text": get_field(post_content, "summary") or "",
    }


def _is_link_media(media: Any) -> bool:
    media_type = get_fields(media, ["media_type", "mime_type"])
    return media_type == "link" or (isinstance(media_type, str) and media_type.startswith("text/html"))


def _mentions(object_id: Optional[str], ctx: Mapping[str, Any], opts: MapOptions) -> List[Dict[str, Any]]:
    if not object_id:
        return []
    batch = opts.mentions_by_object
    if batch is not None and object_id in batch:
        return mention.from_tags(batch[object_id] or [], opts)

    context_mentions = [t for t in ctx.get("tags") or [] if mention.is_mention_tag(t)]
    if context_mentions:
        return mention.from_tags(context_mentions, opts)

    platform = opts.platform
    if platform is None or opts.lightweight:
        return []
    try:
        return mention.from_tags(platform.list_mentions(object_id, opts.current_user), opts)
    except PlatformError:
        log.warning("mentions_query_failed", extra={"object_id": object_id}, exc_info=True)
        return []


def apply_interaction_states(
    status: Dict[str, Any], object_id: Optional[str], inline: Mapping[str, Any], opts: MapOptions
) -> Dict[str, Any]:
    """Set favourited/reblogged/bookmarked from the cheapest available source."""

    if all(isinstance(inline.get(k), bool) for k in _FLAG_KEYS):
        status.update({k: inline[k] for k in _FLAG_KEYS})
        return status

    states = opts.interaction_states
    if states is not None and object_id in states and isinstance(states[object_id], Mapping):
        found = states[object_id]
        status.update({k: bool(found.get(k, False)) for k in _FLAG_KEYS})
        return status

    platform = opts.platform
    if not (opts.current_user and object_id and platform is not None) or opts.lightweight:
        return status
    try:
        status["favourited"] = bool(platform.liked(opts.current_user, object_id))
        status["reblogged"] = bool(platform.boosted(opts.current_user, object_id))
        status["bookmarked"] = bool(platform.bookmarked(opts.current_user, object_id))
    except PlatformError:
        log.warning("interaction_state_query_failed", extra={"object_id": object_id}, exc_info=True)
    return status


def _regular_status(ctx: Mapping[str, Any], opts: MapOptions) -> Dict[str, Any]:
    account = _nested_account(ctx.get("subject") or ctx.get("creator"), opts)
    content = _content(ctx)
    object_id = ctx.get("object_id") or ctx.get("id")

    media = ctx.get("media") or []
    if not isinstance(media, (list, tuple)):
        media = [media]
    links = [m for m in media if _is_link_media(m)]
    card = preview_card.from_media(links[0]) if links else None

    question = ctx.get("poll")
    created_at = ctx.get("created_at") or date_from_ulid(object_id)
    uri = ctx.get("uri") or (f"{opts.config.base_url}/post/{object_id}" if object_id else None)

    status = schema.new(
        {
            "id": object_id,
            "created_at": format_datetime(created_at),
            "uri": uri,
            "url": uri,
            "account": account,
            "content": content["html"],
            "text": content["text"],
            "spoiler_text": content["spoiler_text"],
            "sensitive": bool(ctx.get("sensitive")) or bool(content["spoiler_text"]),
            "media_attachments": media_attachment.from_media_list(
                [m for m in media if not _is_link_media(m)], opts
            ),
            "mentions": _mentions(object_id, ctx, opts),
            "tags": tag.from_tags(ctx.get("tags") or [], opts),
            "card": card,
            "poll": poll.from_question(question, opts) if question is not None else None,
            "in_reply_to_id": ctx.get("in_reply_to_id"),
            "in_reply_to_account_id": ctx.get("in_reply_to_account_id"),
            "favourites_count": to_int(ctx.get("like_count")),
            "reblogs_count": to_int(ctx.get("boost_count")),
            "replies_count": to_int(ctx.get("replies_count")),
            "visibility": map_visibility(ctx.get("acls"), opts),
        }
    )
    return apply_interaction_states(status, object_id, ctx.get("flags") or {}, opts)


def _reblog(obj: Any, opts: MapOptions) -> Optional[Dict[str, Any]]:
    """Original post of a boost, unwrapping one nested boost at most."""

    inner_opts = opts.derive(is_reblog=True)
    if typename(obj) == "Boost":
        original = get_field(get_field(obj, "edge"), "object")
        if original is not None and is_post(original):
            return from_post(original, inner_opts)
        return None
    if obj is not None and is_post(obj):
        return from_post(obj, inner_opts)
    return None


def _boost_status(ctx: Mapping[str, Any], opts: MapOptions) -> Dict[str, Any]:
    account = _nested_account(ctx.get("subject") or ctx.get("creator"), opts)
    boost_id = ctx.get("id")
    created_at = ctx.get("created_at") or date_from_ulid(boost_id)
    uri = ctx.get("uri") or (f"{opts.config.base_url}/post/{boost_id}" if boost_id else None)
    return schema.new(
        {
            "id": boost_id,
            "created_at": format_datetime(created_at),
            "uri": uri,
            "url": uri,
            "account": account,
            "content": "",
            "reblog": _reblog(ctx.get("object"), opts),
            "reblogged": bool(account and opts.current_user and account["id"] == opts.current_user),
        }
    )


def is_boost(activity: Any, opts: MapOptions) -> bool:
    return opts.config.verb_is(_verb(activity), "boost")


def from_activity(activity: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map a feed activity (or a GraphQL ``{"node": ...}`` edge) to a Status."""

    opts = opts or MapOptions()
    activity = _unwrap_edge(activity)
    if activity is None:
        return None

    ctx = _activity_context(activity)
    if not opts.is_reblog and is_boost(activity, opts):
        return validate_and_return(_boost_status(ctx, opts), schema)

    adapter = opts.config.event_adapter
    if adapter is not None and typename(ctx.get("object")) == "Event":
        return validate_and_return(adapter(activity, opts), schema)

    return validate_and_return(_regular_status(ctx, opts), schema)


def from_post(post: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map a bare Post (no enclosing activity), e.g. the original of a boost."""

    opts = opts or MapOptions()
    post = _unwrap_edge(post)
    if post is None:
        return None
    return validate_and_return(_regular_status(_post_context(post, opts), opts), schema)


def from_activities(activities: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(activities, (list, tuple)):
        return []
    return [s for s in (from_activity(a, opts) for a in activities) if s is not None]
