from __future__ import annotations

import hmac
import os
from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True, slots=True)
class Actor:
    """The platform user a bearer token acts as.

    Security notes:
    - The user id comes from the server-side token mapping only.

    """

    user_id: str


def _parse_api_tokens(raw: str) -> Dict[str, Actor]:
    """Parse MASTOCOMPAT_API_TOKENS into a token -> Actor mapping.

    Format (semicolon-separated entries):
      <TOKEN>:<USER_ID>;

    Example:
      MASTOCOMPAT_API_TOKENS="t1:01HZX3K8Q6;t2:01HZX3M2AB"

    Entries without both parts are ignored.

    """

    out: Dict[str, Actor] = {}
    for entry in (raw or "").split(";"):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":", 1)
        if len(parts) != 2:
            continue
        token, user_id = parts[0].strip(), parts[1].strip()
        if not token or not user_id:
            continue
        out[token] = Actor(user_id=user_id)
    return out


def load_auth_config() -> Dict[str, Actor]:
    return _parse_api_tokens(os.environ.get("MASTOCOMPAT_API_TOKENS", ""))


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header value."""

    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def authenticate(token: Optional[str], mapping: Dict[str, Actor]) -> Optional[Actor]:
    """Authenticate a bearer token.

    Security notes:
    - Uses constant-time comparison to reduce timing side-channels.
    - Returns None on failure.

    """

    if not token:
        return None

    # Constant-time compare: iterate all tokens.
    found: Optional[Actor] = None
    for k, actor in mapping.items():
        if hmac.compare_digest(k, token):
            found = actor
    return found
