from __future__ import annotations

from typing import Any, Dict, List, Optional

from mastocompat.core.helpers import validate_and_return
from mastocompat.core.options import MapOptions
from mastocompat.core.schemas import suggestion as schema

from . import account as account_mapper


def from_user(user: Any, opts: Optional[MapOptions] = None) -> Optional[Dict[str, Any]]:
    opts = opts or MapOptions()
    account = account_mapper.from_user(user, opts.derive(source=None, sources=None))
    if account is None:
        return None
    source = opts.source or "global"
    sources = list(opts.sources) if opts.sources is not None else [source]
    record = schema.new({"source": source, "sources": sources, "account": account})
    return validate_and_return(record, schema)


def from_users(users: Any, opts: Optional[MapOptions] = None) -> List[Dict[str, Any]]:
    if not isinstance(users, (list, tuple)):
        return []
    return [s for s in (from_user(u, opts) for u in users) if s is not None]
