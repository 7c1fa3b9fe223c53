from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from mastocompat.core.helpers import get_field, get_fields, get_in, validate_and_return
from mastocompat.core.schemas import preview_card as schema

_CARD_TYPES = {"video", "photo", "rich"}


def _first(metadata: Any, *paths: tuple) -> Any:
    for path in paths:
        value = get_in(metadata, path)
        if value is not None:
            return value
    return None


def _unwrap(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _dimension(metadata: Any, key: str) -> int:
    value = _first(metadata, ("oembed", key), ("facebook", f"image:{key}"))
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        digits = ""
        for ch in value.strip():
            if not ch.isdigit():
                break
            digits += ch
        return int(digits) if digits else 0
    return 0


def _today_unix() -> str:
    now = datetime.now(timezone.utc)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return str(int(midnight.timestamp()))


def from_media(media: Any) -> Optional[Dict[str, Any]]:
    """Build a PreviewCard from a link-type Media object and its scraped metadata.

    The card is keyed on the link's path; history is a single entry for
    today carrying the link's usage count.

    """

    path = get_fields(media, ["path", "url"])
    if not isinstance(path, str) or not path:
        return None
    metadata = get_field(media, "metadata")
    card_type = get_in(metadata, ("oembed", "type"))
    uses = str(get_field(media, "object_count") or 0)

    image = _first(
        metadata,
        ("oembed", "thumbnail_url"),
        ("twitter", "image"),
        ("facebook", "image", "url"),
        ("facebook", "image"),
        ("image", "url"),
        ("image",),
    )

    record = schema.new(
        {
            "url": path,
            "title": get_field(media, "label")
            or _first(metadata, ("oembed", "title"), ("facebook", "title"), ("twitter", "title"))
            or "",
            "description": get_field(media, "description")
            or _first(metadata, ("facebook", "description"), ("twitter", "description"))
            or "",
            "type": card_type if card_type in _CARD_TYPES else "link",
            "author_name": _unwrap(
                _first(
                    metadata,
                    ("oembed", "author_name"),
                    ("twitter", "creator"),
                    ("facebook", "article:author"),
                )
            )
            or "",
            "author_url": _first(metadata, ("oembed", "author_url"), ("twitter", "creator_url"))
            or "",
            "provider_name": _first(
                metadata, ("facebook", "site_name"), ("oembed", "provider_name")
            )
            or "",
            "provider_url": get_in(metadata, ("oembed", "provider_url")) or "",
            "width": _dimension(metadata, "width"),
            "height": _dimension(metadata, "height"),
            "image": image if isinstance(image, str) else None,
            "history": [{"day": _today_unix(), "accounts": uses, "uses": uses}],
        }
    )
    return validate_and_return(record, schema)
