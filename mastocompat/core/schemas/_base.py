from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Collection, Dict, Mapping, Optional, Sequence

MISSING_FIELDS = "missing_fields"
INVALID_TYPE = "invalid_type"
INVALID_SOURCE = "invalid_source"
INVALID_INPUT = "invalid_input"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a schema check.

    ok=False results carry an error tag and a detail: the list of missing
    fields, or the offending enumeration value.

    """

    ok: bool
    record: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    detail: Any = None


def build(defaults: Mapping[str, Any], overrides: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Shallow merge; overrides win and unknown keys are kept."""

    record = copy.deepcopy(dict(defaults))
    record.update(dict(overrides or {}))
    return record


def check_required(record: Any, required: Sequence[str]) -> ValidationResult:
    if not isinstance(record, Mapping):
        return ValidationResult(ok=False, error=INVALID_INPUT, detail=type(record).__name__)
    missing = [name for name in required if record.get(name) is None]
    if missing:
        return ValidationResult(ok=False, record=dict(record), error=MISSING_FIELDS, detail=missing)
    return ValidationResult(ok=True, record=dict(record))


def check_enum(
    result: ValidationResult, field: str, allowed: Collection[str], error: str
) -> ValidationResult:
    """Follow-up check that result.record[field] is one of allowed."""

    if not result.ok:
        return result
    value = result.record.get(field)
    if value not in allowed:
        return ValidationResult(ok=False, record=result.record, error=error, detail=value)
    return result
