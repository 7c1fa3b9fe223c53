from __future__ import annotations

import argparse
import json
import sys
from typing import List

from mastocompat.api.pagination import (
    DEFAULT_CURSOR_FIELD,
    decode_cursor,
    encode_plain_id_cursor,
)
from mastocompat.core.config import load_config
from mastocompat.core.errors import CursorError
from mastocompat.utils.json_safe import to_jsonable


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the compatibility API server.

    Security notes:
    - Bearer tokens come from MASTOCOMPAT_API_TOKENS only.
    - Bind to 127.0.0.1 by default (safer than 0.0.0.0).

    """

    try:
        import uvicorn
    except ImportError as e:
        print(f"error: uvicorn is required to serve the API: {e}", file=sys.stderr)
        return 2

    from mastocompat.api.server import app_from_env

    uvicorn.run(app_from_env(), host=args.host, port=int(args.port), log_level=args.log_level)
    return 0


def cmd_encode_cursor(args: argparse.Namespace) -> int:
    try:
        print(encode_plain_id_cursor(args.id, args.field))
    except CursorError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    return 0


def cmd_decode_cursor(args: argparse.Namespace) -> int:
    try:
        term = decode_cursor(args.cursor)
    except CursorError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    print(json.dumps(term, indent=2, sort_keys=True))
    return 0


def cmd_show_config(args: argparse.Namespace) -> int:
    """Print the configuration the server would start with."""

    config = load_config()
    out = {
        "base_url": config.base_url,
        "environment": config.environment,
        "local_domain": config.local_domain,
        "default_limit": config.default_limit,
        "max_limit": config.max_limit,
        "verbs": dict(config.verbs),
        "exposes_error_details": config.exposes_error_details,
    }
    print(json.dumps(to_jsonable(out), indent=2, sort_keys=True))
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    p = argparse.ArgumentParser(prog="mastocompat", description="mastocompat CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    ec = sub.add_parser("encode-cursor", help="Encode a plain id as a pagination cursor")
    ec.add_argument("id", help="Item id")
    ec.add_argument("--field", default=DEFAULT_CURSOR_FIELD, help=f"Cursor field (default: {DEFAULT_CURSOR_FIELD})")
    ec.set_defaults(func=cmd_encode_cursor)

    dc = sub.add_parser("decode-cursor", help="Decode a pagination cursor from a Link header")
    dc.add_argument("cursor", help="Encoded cursor")
    dc.set_defaults(func=cmd_decode_cursor)

    sc = sub.add_parser("show-config", help="Print the configuration read from the environment")
    sc.set_defaults(func=cmd_show_config)

    # --- API server ---
    sv = sub.add_parser("serve", help="Run the mastocompat FastAPI server")
    sv.add_argument("--host", default="127.0.0.1", help="Bind host (default: 127.0.0.1)")
    sv.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    sv.add_argument("--log-level", default="info", help="Uvicorn log level")
    sv.set_defaults(func=cmd_serve)

    return p


def main(argv: List[str] | None = None) -> int:
    """CLI entry."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
