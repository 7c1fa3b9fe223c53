from __future__ import annotations

from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import get_field, get_in, to_string_safe, validate_and_return
from mastocompat.core.schemas import list as schema


def _title(circle: Any) -> str:
    name = get_field(circle, "name")
    if isinstance(name, str) and name:
        return name
    name = get_in(circle, ("named", "name"))
    return name if isinstance(name, str) else ""


def from_circle(circle: Any) -> Optional[Dict[str, Any]]:
    """Circles group users on the platform; Mastodon calls them lists."""

    circle_id = to_string_safe(get_field(circle, "id"))
    if circle_id is None:
        return None
    return validate_and_return(schema.new({"id": circle_id, "title": _title(circle)}), schema)


def from_circles(circles: Any) -> List[Dict[str, Any]]:
    if not isinstance(circles, (list, tuple)):
        return []
    return [item for item in (from_circle(c) for c in circles) if item is not None]
