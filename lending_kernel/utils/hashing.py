"""
Import-record fingerprints.

The same external loan record may arrive with its keys in another order or
its timestamps written in another offset.  Both renderings must produce the
same fingerprint, so a record is first reduced to canonical JSON (sorted
keys, no whitespace, one spelling per instant) and then hashed.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from lending_kernel.domain.due_date import to_canonical_timestamp


def _canonical_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_canonical_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        # 1.50 and 1.5 are the same amount
        return str(value.normalize())
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    raise TypeError(f"cannot canonicalize {type(value).__name__} values")


def canonicalize_json(data: Any) -> str:
    """Render ``data`` as canonical JSON; TypeError for unsupported values."""
    return json.dumps(
        data, sort_keys=True, separators=(",", ":"), default=_canonical_value
    )


def hash_payload(payload: Mapping[str, Any]) -> str:
    """SHA-256 hex digest of ``canonicalize_json(payload)``."""
    digest = hashlib.sha256(canonicalize_json(dict(payload)).encode("utf-8"))
    return digest.hexdigest()
