from __future__ import annotations

from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import get_field, get_fields, validate_and_return
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import media_attachment as schema

_TIMED_TYPES = {"video", "audio", "gifv"}


def categorize_media_type(mime: Any) -> str:
    if not isinstance(mime, str):
        return "unknown"
    if mime.startswith("image/gif"):
        return "gifv"
    if mime.startswith("image/"):
        return "image"
    if mime.startswith("video/"):
        return "video"
    if mime.startswith("audio/"):
        return "audio"
    return "unknown"


def _meta_value(metadata: Any, media: Any, key: str) -> Any:
    value = get_field(metadata, key)
    return value if value is not None else get_field(media, key)


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0


def parse_focus(focus: Any) -> Optional[Dict[str, float]]:
    """Focal point from "x,y" or a mapping with x/y."""

    if isinstance(focus, str):
        parts = focus.split(",")
        if len(parts) != 2:
            return {"x": 0.0, "y": 0.0}
        return {"x": _to_float(parts[0]), "y": _to_float(parts[1])}
    x, y = get_field(focus, "x"), get_field(focus, "y")
    if x is None or y is None:
        return None
    return {"x": x, "y": y}


def build_meta(media: Any, media_type: str) -> Dict[str, Any]:
    metadata = get_field(media, "metadata")
    meta: Dict[str, Any] = {}

    width = _meta_value(metadata, media, "width")
    height = _meta_value(metadata, media, "height")
    if width and height:
        original: Dict[str, Any] = {"width": width, "height": height, "size": f"{width}x{height}"}
        if isinstance(width, (int, float)) and isinstance(height, (int, float)) and height > 0:
            original["aspect"] = round(width / height, 6)
        else:
            original["aspect"] = None
        meta["original"] = original

    focus = _meta_value(metadata, media, "focus")
    if focus:
        meta["focus"] = parse_focus(focus)

    if media_type in _TIMED_TYPES:
        duration = _meta_value(metadata, media, "duration")
        if duration:
            meta["duration"] = duration
    return meta


def _description(media: Any) -> str:
    value = get_fields(media, ["description", "label"])
    if value is None:
        metadata = get_field(media, "metadata")
        value = get_fields(metadata, ["description", "label"])
    return value or ""


def from_media(media: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    """Map a platform Media object; media without a URL cannot be shown and is dropped."""

    if media is None:
        return None
    url = get_fields(media, ["url", "path"])
    if not url:
        return None
    media_type = categorize_media_type(get_fields(media, ["media_type", "mime_type"]))
    record = schema.new(
        {
            "id": str(get_field(media, "id") or ""),
            "type": media_type,
            "url": url,
            "preview_url": get_field(media, "preview_url") or url,
            "remote_url": get_field(media, "remote_url"),
            "text_url": None,
            "meta": build_meta(media, media_type),
            "description": _description(media),
            "blurhash": get_field(media, "blurhash")
            or get_field(get_field(media, "metadata"), "blurhash"),
        }
    )
    return validate_and_return(record, schema)


def from_media_list(media_list: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(media_list, (list, tuple)):
        return []
    return [m for m in (from_media(item, opts) for item in media_list) if m is not None]
