"""Mastodon-style pagination on top of Relay-style cursors.

Mastodon clients page with ``max_id`` / ``since_id`` / ``min_id`` and follow
``Link`` headers. The platform pages with opaque ``after`` / ``before``
cursors. With a newest-first feed:

- ``max_id``   -> ``after``  + ``first`` (older items)
- ``min_id``   -> ``before`` + ``last``  (newer items, wins over since_id)
- ``since_id`` -> ``before`` + ``last``

Cursors on the wire are URL-safe base64 of a compact JSON object keyed by the
dotted sort field, e.g. ``{"activity.id": "01H..."}``. Every such cursor
starts with ``eyJ`` (the encoding of ``{"``), which is how an already-encoded
cursor is told apart from a plain id.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from urllib.parse import urlencode

from starlette.requests import Request
from starlette.responses import Response

from mastocompat.core.errors import CursorError
from mastocompat.core.helpers import get_field

log = logging.getLogger("mastocompat.pagination")

CURSOR_PREFIX = "eyJ"
DEFAULT_CURSOR_FIELD = "activity.id"

_ENCODED_RE = re.compile(r"^eyJ[A-Za-z0-9_-]+=*$")
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


def validate_limit(raw: Any, default: int = 40, max_limit: int = 80) -> int:
    """Normalize a requested page size.

    Strings are parsed by their leading integer ("20abc" is 20). Missing,
    unparseable, zero and negative values give ``default``; anything above
    ``max_limit`` is clamped to it.
    """

    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, str):
        m = _LEADING_INT_RE.match(raw)
        if not m:
            return default
        raw = int(m.group(0))
    if not isinstance(raw, int):
        return default
    if raw > max_limit:
        return max_limit
    if raw <= 0:
        return default
    return raw


def _param(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name) if params else None
    if isinstance(value, str) and value:
        return value
    return None


def build_pagination_opts(params: Mapping[str, Any], limit: int) -> Dict[str, Any]:
    """Plain (unencoded) cursor options for gateway calls that page by id."""

    opts: Dict[str, Any] = {"limit": limit}
    for name, key in (("max_id", "after"), ("since_id", "before"), ("min_id", "before")):
        value = _param(params, name)
        if value is not None:
            opts[key] = value
    return opts


def is_encoded_cursor(value: Any) -> bool:
    return isinstance(value, str) and bool(_ENCODED_RE.match(value))


def _encode(term: Mapping[str, Any]) -> str:
    raw = json.dumps(term, separators=(",", ":"), sort_keys=True).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def _field_name(field: Any) -> str:
    if isinstance(field, (list, tuple)):
        return ".".join(str(part) for part in field)
    return str(field)


def encode_plain_id_cursor(id: Any, cursor_field: Any = DEFAULT_CURSOR_FIELD) -> str:
    if not isinstance(id, str) or not id:
        raise CursorError("invalid cursor id")
    return _encode({_field_name(cursor_field): id})


def decode_cursor(cursor: str) -> Dict[str, Any]:
    """Decode a wire cursor back to its field mapping.

    Raises CursorError for anything that is not base64 of a JSON object.
    """

    if not isinstance(cursor, str):
        raise CursorError("invalid cursor format")
    padded = cursor + "=" * (-len(cursor) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
    except (binascii.Error, ValueError) as e:
        raise CursorError("invalid base64 cursor") from e
    try:
        term = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise CursorError("invalid cursor payload") from e
    if not isinstance(term, dict) or not term:
        raise CursorError("invalid cursor payload")
    return term


def validate_encoded_cursor(cursor: str) -> str:
    decode_cursor(cursor)
    return cursor


def encode_cursor_for_graphql(id: Any) -> str:
    """Cursor for a GraphQL ``after``/``before`` argument.

    An already-encoded cursor is returned unchanged if it decodes; a plain
    id is wrapped under the default cursor field.
    """

    if not isinstance(id, str) or not id:
        raise CursorError("invalid cursor format")
    if is_encoded_cursor(id):
        return validate_encoded_cursor(id)
    return encode_plain_id_cursor(id)


def encode_cursor_for_link_header(cursor: Any, cursor_field: Any = DEFAULT_CURSOR_FIELD) -> Optional[str]:
    if cursor is None or cursor == "":
        return None
    if isinstance(cursor, Mapping):
        return _encode({_field_name(k): v for k, v in cursor.items()})
    if isinstance(cursor, int) and not isinstance(cursor, bool):
        cursor = str(cursor)
    if not isinstance(cursor, str):
        return None
    if is_encoded_cursor(cursor):
        return cursor
    return encode_plain_id_cursor(cursor, cursor_field or DEFAULT_CURSOR_FIELD)


def extract_pagination_cursors(params: Mapping[str, Any]) -> Dict[str, str]:
    """Encoded ``after``/``before`` cursors; invalid ones are dropped."""

    cursors: Dict[str, str] = {}
    for name, key in (("max_id", "after"), ("min_id", "before"), ("since_id", "before")):
        value = _param(params, name)
        if value is None or key in cursors:
            continue
        try:
            cursors[key] = encode_cursor_for_graphql(value)
        except CursorError as e:
            log.info("pagination_cursor_ignored", extra={"param": name, "error": str(e)})
    return cursors


def extract_limit_with_direction(
    params: Mapping[str, Any],
    cursors: Mapping[str, Any],
    default: int = 20,
    max_limit: int = 40,
) -> Dict[str, int]:
    limit = validate_limit((params or {}).get("limit"), default=default, max_limit=max_limit)
    if "after" not in cursors and "before" in cursors:
        return {"last": limit}
    return {"first": limit}


def build_feed_params(
    params: Mapping[str, Any],
    filter: Mapping[str, Any],
    default_limit: int = 20,
    max_limit: int = 40,
) -> Dict[str, Any]:
    """Arguments for a feed query from Mastodon timeline params.

    The feed's default time window is disabled (``time_limit`` 0) since
    Mastodon clients expect to page back indefinitely.
    """

    params = params or {}
    out: Dict[str, Any] = {"filter": {**dict(filter or {}), "time_limit": 0}}
    cursors = extract_pagination_cursors(params)
    out.update(cursors)
    out.update(extract_limit_with_direction(params, cursors, default=default_limit, max_limit=max_limit))
    return out


def cursor_field_from_page_info(page_info: Any) -> str:
    fields = get_field(page_info, "cursor_fields")
    if isinstance(fields, (list, tuple)) and fields:
        first = fields[0]
        # [(field, direction), ...] or [field, ...]
        if isinstance(first, (list, tuple)) and len(first) == 2 and first[1] in ("asc", "desc"):
            return _field_name(first[0])
        return _field_name(first)
    return DEFAULT_CURSOR_FIELD


def _item_id(item: Any) -> Optional[str]:
    value = get_field(item, "id")
    return str(value) if value is not None else None


def _edge_cursors(page_info: Any, items: Sequence[Any]) -> tuple:
    start = get_field(page_info, "start_cursor")
    end = get_field(page_info, "end_cursor")
    if start is None and items:
        start = _item_id(items[0])
    if end is None and items:
        end = _item_id(items[-1])
    return start, end


def _links(base_url: str, base_params: Mapping[str, Any], next_cursor: Optional[str], prev_cursor: Optional[str]) -> List[str]:
    links = []
    if next_cursor:
        query = urlencode({**base_params, "max_id": next_cursor})
        links.append(f'<{base_url}?{query}>; rel="next"')
    if prev_cursor:
        query = urlencode({**base_params, "min_id": prev_cursor})
        links.append(f'<{base_url}?{query}>; rel="prev"')
    return links


def _base_params(params: Mapping[str, Any]) -> Dict[str, Any]:
    return {"limit": params["limit"]} if params and params.get("limit") is not None else {}


def build_link_header(
    base_url: str,
    params: Mapping[str, Any],
    page_info: Any,
    items: Sequence[Any],
    cursor_field: Any = None,
) -> Optional[str]:
    """RFC 5988 Link header value for one page, or None when there is nothing to link.

    ``next`` points past the end cursor (older items) and is left out once the
    page info reports a ``final_cursor``. ``prev`` points before the start
    cursor (newer items).
    """

    field = cursor_field or cursor_field_from_page_info(page_info)
    start, end = _edge_cursors(page_info, list(items or []))
    try:
        start = encode_cursor_for_link_header(start, field)
        end = encode_cursor_for_link_header(end, field)
    except CursorError as e:
        log.warning("link_header_cursor_failed", extra={"error": str(e)})
        return None
    if get_field(page_info, "final_cursor") is not None:
        end = None
    links = _links(base_url, _base_params(params), end, start)
    return ", ".join(links) if links else None


def request_base_url(request: Request) -> str:
    """Scheme, host, non-standard port and path of the request, without query."""

    url = request.url
    port = url.port
    standard = port is None or (url.scheme, port) in (("http", 80), ("https", 443))
    host = url.hostname or ""
    netloc = host if standard else f"{host}:{port}"
    return f"{url.scheme}://{netloc}{url.path}"


def _set_link(response: Response, value: Optional[str]) -> Response:
    if value:
        response.headers["link"] = value
        response.headers["access-control-expose-headers"] = "Link"
    return response


def add_link_headers(
    response: Response,
    request: Request,
    page_info: Any,
    items: Sequence[Any],
    cursor_field: Any = None,
) -> Response:
    value = build_link_header(
        request_base_url(request), dict(request.query_params), page_info, items, cursor_field
    )
    return _set_link(response, value)


def add_simple_link_headers(
    response: Response,
    request: Request,
    page_info: Any,
    items: Iterable[Any],
) -> Response:
    """Link headers for endpoints whose cursors are plain item ids."""

    start, end = _edge_cursors(page_info, list(items or []))
    links = _links(request_base_url(request), _base_params(dict(request.query_params)), end, start)
    return _set_link(response, ", ".join(links) if links else None)
