from __future__ import annotations

from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import (
    get_field,
    get_in,
    normalize_hashtag,
    to_string_safe,
    validate_and_return,
)
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import tag as schema

from . import mention


def tag_url(name: str, opts: MapOptions) -> str:
    return f"{opts.config.base_url}/pub/tags/{name}"


def _name(hashtag: Any) -> Optional[str]:
    name = get_in(hashtag, ("named", "name")) or get_field(hashtag, "name")
    name = normalize_hashtag(name)
    return name or None


def is_hashtag(tag: Any) -> bool:
    """A tag names a hashtag when it has a name and no identity behind it."""

    if tag is None or mention.is_mention_tag(tag):
        return False
    return _name(tag) is not None


def from_hashtag(hashtag: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    opts = opts or MapOptions()
    name = _name(hashtag)
    if name is None:
        return None
    record = schema.new(
        {
            "name": name,
            "url": tag_url(name, opts),
            "history": [],
            "following": bool(opts.following),
            "id": to_string_safe(get_field(hashtag, "id")),
        }
    )
    return validate_and_return(record, schema)


def from_tags(tags: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    """Hashtags among a post's tags; mention tags and duplicates are skipped."""

    if not isinstance(tags, (list, tuple)):
        return []
    out: List[Dict[str, Any]] = []
    seen = set()
    for item in tags:
        if not is_hashtag(item):
            continue
        mapped = from_hashtag(item, opts)
        if mapped is None or mapped["name"] in seen:
            continue
        seen.add(mapped["name"])
        out.append(mapped)
    return out
