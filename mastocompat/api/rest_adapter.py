from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from starlette.responses import Response

from mastocompat.core.config import CompatConfig
from mastocompat.core.errors import (
    CompatError,
    ConstraintViolation,
    CursorError,
    DomainValidationError,
    Forbidden,
    NotFound,
    RateLimited,
    Unauthorized,
)
from mastocompat.core.helpers import deep_struct_to_map, get_field
from mastocompat.utils.json_safe import to_jsonable

log = logging.getLogger("mastocompat.api")

_FORBIDDEN_RE = re.compile(r"forbidden|permission denied|not permitted", re.IGNORECASE)
_MISSING_REF_RE = re.compile(r"does not exist|foreign key", re.IGNORECASE)

_INTERNAL_ERROR_BODY = b'{"error":"Internal server error"}'

_CODE_STATUS = {
    "unauthorized": 401,
    "unauthenticated": 401,
    "401": 401,
    "not_found": 404,
    "404": 404,
    "forbidden": 403,
    "403": 403,
}


def json_response(body: Any, status_code: int = 200, headers: Optional[Mapping[str, str]] = None) -> Response:
    """Encode body as JSON; a body that cannot be encoded becomes a fixed 500."""

    try:
        content = json.dumps(body, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError):
        log.error("json_encoding_failed", extra={"status_code": status_code}, exc_info=True)
        return Response(content=_INTERNAL_ERROR_BODY, status_code=500, media_type="application/json")
    return Response(
        content=content,
        status_code=status_code,
        media_type="application/json",
        headers=dict(headers or {}),
    )


def _is_error_tuple(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and value[0] == "error"


def _is_graphql_error_list(value: Any) -> bool:
    if not isinstance(value, (list, tuple)) or not value:
        return False
    first = value[0]
    return isinstance(first, Mapping) and ("message" in first or "code" in first)


def extract_data(data: Any, name: str) -> Any:
    """Pull the expected top-level field out of a GraphQL data mapping.

    A single-key mapping is unwrapped whatever the key is called, which
    tolerates aliased queries. A multi-key mapping without the key is
    returned whole.

    """

    if data is None:
        return None
    if not isinstance(data, Mapping):
        return data
    value = data.get(name)
    if value is not None:
        return value
    if len(data) == 1:
        return next(iter(data.values()))
    return data


class RestAdapter:
    """Turn GraphQL-shaped results into Mastodon HTTP responses.

    Error bodies stay minimal in production. In dev and test a "details"
    key carries a JSON-safe rendition of the underlying reason.

    """

    def __init__(self, config: Optional[CompatConfig] = None):
        self._config = config or CompatConfig()

    def respond(
        self,
        name: str,
        result: Any,
        transform: Optional[Callable[[Any], Any]] = None,
    ) -> Response:
        if isinstance(result, BaseException) or _is_error_tuple(result):
            return self.error_response(result)

        if isinstance(result, Mapping):
            errors = result.get("errors")
            if "data" in result and errors:
                extracted = extract_data(result.get("data"), name)
                if extracted is None:
                    return self.error_response(errors)
                log.warning("partial_graphql_errors", extra={"field": name, "errors": to_jsonable(errors)})
                return self.success_response(extracted, transform)
            if "data" in result:
                return self.success_response(extract_data(result.get("data"), name), transform)
            if errors:
                return self.error_response(errors)

        log.error("unexpected_graphql_response", extra={"field": name, "kind": type(result).__name__})
        return self.error_response(result)

    def success_response(
        self,
        data: Any,
        transform: Optional[Callable[[Any], Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Response:
        if transform is not None:
            data = transform(data)
        return json_response(deep_struct_to_map(data), 200, headers)

    def classify(self, reason: Any) -> Tuple[int, Dict[str, Any]]:
        """Map an error reason to (status_code, body) without details."""

        if _is_error_tuple(reason):
            reason = reason[1]

        if isinstance(reason, Unauthorized) or reason == "unauthorized":
            return 401, {"error": "Unauthorized"}
        if isinstance(reason, Forbidden) or reason == "forbidden":
            return 403, {"error": "Forbidden"}
        if isinstance(reason, NotFound) or reason == "not_found":
            return 404, {"error": "Not found"}
        if isinstance(reason, DomainValidationError):
            return 422, {"error": f"Validation failed: {reason.reason}"}
        if isinstance(reason, ConstraintViolation):
            if _MISSING_REF_RE.search(reason.message or ""):
                return 404, {"error": "Not found"}
            return 422, {"error": f"Validation failed: {reason.message}"}
        if isinstance(reason, RateLimited):
            return 429, {"error": "Too many requests"}
        if isinstance(reason, CursorError):
            return 400, {"error": str(reason) or "Invalid cursor"}
        if isinstance(reason, str):
            if _FORBIDDEN_RE.search(reason):
                return 403, {"error": "Forbidden"}
            return 400, {"error": reason}
        if isinstance(reason, CompatError) and _FORBIDDEN_RE.search(str(reason)):
            return 403, {"error": "Forbidden"}

        if _is_graphql_error_list(reason):
            first = reason[0]
            message = first.get("message") or "GraphQL error"
            if _FORBIDDEN_RE.search(str(message)):
                return 403, {"error": "Forbidden"}
            code = first.get("code") or get_field(first.get("extensions"), "code")
            return _CODE_STATUS.get(str(code).lower(), 400), {"error": message}

        return 500, {"error": "Internal server error"}

    def error_response(self, reason: Any) -> Response:
        status_code, body = self.classify(reason)
        detail_source = reason[1] if _is_error_tuple(reason) else reason
        if self._config.exposes_error_details and (
            status_code == 500 or _is_graphql_error_list(detail_source)
        ):
            body["details"] = to_jsonable(detail_source)

        if status_code >= 500:
            log.error("api_error", extra={"status_code": status_code, "reason": type(detail_source).__name__})
        else:
            log.info("api_error", extra={"status_code": status_code, "error": body.get("error")})
        headers = detail_source.headers if isinstance(detail_source, RateLimited) else None
        return json_response(body, status_code, headers)
