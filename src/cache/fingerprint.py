# src/cache/fingerprint.py — v3
"""Error-group fingerprinting.

The fingerprint is the cache key shared by the grouper and the response
cache: SHA-256 over the grouping key. Equal fingerprints imply equal
(severity, pattern) and vice versa, so the encoding must be unambiguous.
"""

from __future__ import annotations

import hashlib

from logsage.core.models import Severity

_SEPARATOR = "\x1f"


def compute_fingerprint(pattern: str, severity: Severity | None = None) -> str:
    """Hex SHA-256 over (severity, pattern), or over pattern alone.

    Args:
        pattern: Normalized message pattern.
        severity: Severity when it is part of the grouping key, else None.

    Returns:
        64-character lowercase hex digest.
    """
    if severity is None:
        payload = f"pattern{_SEPARATOR}{pattern}"
    else:
        payload = f"{Severity.parse(severity).value}{_SEPARATOR}{pattern}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def cache_key(provider: str, model: str, fingerprint: str) -> str:
    """Composite store key ``provider:model:fingerprint``."""
    return f"{provider}:{model}:{fingerprint}"
