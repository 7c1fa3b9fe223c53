from __future__ import annotations

import dataclasses
import html
import logging
import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional, Sequence
from collections.abc import Mapping
from urllib.parse import urlparse

log = logging.getLogger("mastocompat.mappers")


class NotLoaded:
    """Marker for an association the data source did not load.

    Accessors treat it exactly like a missing key.

    """

    _instance: Optional["NotLoaded"] = None

    def __new__(cls) -> "NotLoaded":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_LOADED"


NOT_LOADED = NotLoaded()

_SCALARS = (str, bytes, bytearray, int, float, bool, list, tuple, set, frozenset, Decimal)


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(p[:1].upper() + p[1:] for p in rest)


def get_field(source: Any, key: str) -> Any:
    """Read one field from a mapping or an attribute object.

    GraphQL results alias snake_case fields as camelCase, so both spellings
    are tried. Missing keys and NOT_LOADED both read as None.

    """

    if source is None or isinstance(source, (NotLoaded, *_SCALARS)):
        return None
    if isinstance(source, Mapping):
        if not source:
            return None
        value = source.get(key)
        if value is None and "_" in key:
            value = source.get(_camel(key))
    else:
        value = getattr(source, key, None)
        if value is None and "_" in key:
            value = getattr(source, _camel(key), None)
    if isinstance(value, NotLoaded):
        return None
    return value


def get_fields(source: Any, keys: Sequence[str]) -> Any:
    """Return the first non-None value among several candidate keys."""

    for key in keys:
        value = get_field(source, key)
        if value is not None:
            return value
    return None


def get_in(source: Any, path: Iterable[str]) -> Any:
    """Follow a chain of keys, stopping at the first missing hop."""

    current = source
    for key in path:
        current = get_field(current, key)
        if current is None:
            return None
    return current


def to_string_safe(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


def to_int(value: Any, default: int = 0) -> int:
    """Count-like value as an int; anything unparseable reads as the default."""

    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, int):
        return value
    try:
        if isinstance(value, (float, Decimal)):
            return int(value)
        return int(str(value).strip())
    except (TypeError, ValueError, OverflowError):
        return default


def uid(value: Any) -> Optional[str]:
    """Id of an object or mapping, or the value itself when it is an id."""

    if value is None or isinstance(value, NotLoaded):
        return None
    if isinstance(value, (str, int)):
        return str(value)
    return to_string_safe(get_field(value, "id"))


def _iso_z(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    out = dt.astimezone(timezone.utc).isoformat()
    if out.endswith("+00:00"):
        out = out[: -len("+00:00")] + "Z"
    return out


def format_datetime(value: Any) -> Optional[str]:
    """Normalize a timestamp to an ISO 8601 UTC string ending in Z.

    Naive datetimes are taken to be UTC. Strings that do not parse are
    returned unchanged; other types give None.

    """

    if value is None:
        return None
    if isinstance(value, datetime):
        return _iso_z(value)
    if isinstance(value, date):
        return _iso_z(datetime.combine(value, time.min))
    if isinstance(value, str):
        raw = value.strip()
        candidate = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return value
        return _iso_z(parsed)
    return None


_CROCKFORD = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ULID_RE = re.compile(r"^[0-9A-HJKMNP-TV-Z]{26}$")


def date_from_ulid(value: Any) -> Optional[datetime]:
    """Timestamp encoded in the first 10 characters of a ULID."""

    if not isinstance(value, str) or not _ULID_RE.match(value.upper()):
        return None
    ms = 0
    for ch in value.upper()[:10]:
        ms = ms * 32 + _CROCKFORD.index(ch)
    try:
        return datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_hashtag(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lstrip("#").lower()


def build_acct(username: Optional[str], uri: Any, config: Any) -> Optional[str]:
    """Mastodon acct: bare username for local identities, user@host otherwise."""

    if not username:
        return None
    host = urlparse(uri).hostname if isinstance(uri, str) and uri else None
    local = getattr(config, "local_domain", None)
    if host and host != local:
        return f"{username}@{host}"
    return username


_TAG_RE = re.compile(r"<[a-zA-Z/][^>]*>")
_LINK_RE = re.compile(r"\[([^\]]+)\]\((https?://[^)\s]+)\)")
_BARE_URL_RE = re.compile(r'(?<!["=>])\b(https?://[^\s<]+)')
_BOLD_RE = re.compile(r"\*\*(.+?)\*\*")
_EM_RE = re.compile(r"(?<![\w*])[*_](?!\s)(.+?)(?<!\s)[*_](?![\w*])")


def strip_html_tags(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return html.unescape(_TAG_RE.sub("", value)).strip()


def _render_inline(text: str) -> str:
    out = html.escape(text, quote=False)
    out = _LINK_RE.sub(r'<a href="\2" rel="nofollow noopener" target="_blank">\1</a>', out)
    out = _BARE_URL_RE.sub(r'<a href="\1" rel="nofollow noopener" target="_blank">\1</a>', out)
    out = _BOLD_RE.sub(r"<strong>\1</strong>", out)
    out = _EM_RE.sub(r"<em>\1</em>", out)
    return out.replace("\n", "<br>")


def render_html(text: Any) -> str:
    """Render a Markdown-ish body to the HTML Mastodon clients display.

    Supports paragraphs, line breaks, **bold**, *emphasis*, [links](url) and
    bare URLs. Text that already contains HTML is returned as-is.

    """

    if not isinstance(text, str) or not text.strip():
        return ""
    if _TAG_RE.search(text):
        return text
    paragraphs = [p.strip() for p in re.split(r"\n\s*\n", text.strip()) if p.strip()]
    return "".join(f"<p>{_render_inline(p)}</p>" for p in paragraphs)


def _is_struct(value: Any) -> bool:
    return (dataclasses.is_dataclass(value) and not isinstance(value, type)) or hasattr(
        value, "__dict__"
    )


def _struct_items(value: Any) -> Dict[str, Any]:
    if dataclasses.is_dataclass(value):
        items = {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    elif hasattr(value, "model_dump") and hasattr(type(value), "model_fields"):
        items = {name: getattr(value, name) for name in type(value).model_fields}
    else:
        items = dict(vars(value))
    return {k: v for k, v in items.items() if not str(k).startswith("_")}


def deep_struct_to_map(
    value: Any, *, filter_nils: bool = False, drop_unknown_structs: bool = False
) -> Any:
    """Recursively turn nested objects into JSON-ready plain data.

    - datetimes and dates become ISO 8601 strings
    - NOT_LOADED becomes None
    - attribute objects become dicts without their _private metadata, or
      None when drop_unknown_structs is set
    - a container that is already being converted higher up the same
      branch becomes None, so cyclic object graphs terminate

    """

    return _deep(value, filter_nils, drop_unknown_structs, set())


def _deep(value: Any, filter_nils: bool, drop_unknown: bool, path: set) -> Any:
    if value is None or isinstance(value, NotLoaded):
        return None
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return format_datetime(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")

    marker = id(value)
    if marker in path:
        return None

    if isinstance(value, Mapping):
        path.add(marker)
        try:
            out = {}
            for k, v in value.items():
                converted = _deep(v, filter_nils, drop_unknown, path)
                if filter_nils and converted is None:
                    continue
                out[str(k)] = converted
            return out
        finally:
            path.discard(marker)

    if isinstance(value, (list, tuple, set, frozenset)):
        path.add(marker)
        try:
            items = [_deep(v, filter_nils, drop_unknown, path) for v in value]
        finally:
            path.discard(marker)
        if filter_nils:
            items = [v for v in items if v is not None]
        return items

    if drop_unknown or not _is_struct(value):
        return None

    path.add(marker)
    try:
        out = {}
        for k, v in _struct_items(value).items():
            converted = _deep(v, filter_nils, drop_unknown, path)
            if filter_nils and converted is None:
                continue
            out[k] = converted
        return out
    finally:
        path.discard(marker)


def validate_and_return(entity: Any, schema: Any) -> Optional[Dict[str, Any]]:
    """Pass entity through schema.validate; None (logged) when it fails.

    Every mapper hands its output to callers through this function.

    """

    if entity is None:
        return None
    result = schema.validate(entity)
    if result.ok:
        return result.record
    log.debug(
        "schema_validation_failed",
        extra={
            "schema": getattr(schema, "__name__", repr(schema)),
            "error": result.error,
            "detail": result.detail,
            "entity_id": get_field(entity, "id"),
        },
    )
    return None
