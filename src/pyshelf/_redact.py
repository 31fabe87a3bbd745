"""Scrub request data before it reaches DEBUG logs.

Store requests carry a bearer token in the ``authorization`` header and,
in document payloads, free-text notes that can grow large. Headers keep
their auth scheme but lose the credential; payload fields named like
credentials are masked and long strings are cut.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

REDACTED = "<redacted>"

_CREDENTIAL_HEADERS = frozenset({"authorization", "proxy-authorization", "cookie", "set-cookie", "x-api-key"})
_CREDENTIAL_FIELDS = frozenset({"apitoken", "token", "accesstoken", "idtoken", "refreshtoken", "password", "apikey"})
_FIELD_SEPARATORS = re.compile(r"[-_\s]")
_MAX_DEPTH = 12


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Mask credential headers, keeping the scheme (``Bearer <redacted>``)."""
    redacted: dict[str, str] = {}
    for name, value in headers.items():
        if name.lower() not in _CREDENTIAL_HEADERS:
            redacted[name] = value
            continue
        scheme, sep, _ = value.partition(" ")
        redacted[name] = f"{scheme} {REDACTED}" if sep else REDACTED
    return redacted


def _is_credential_field(name: str) -> bool:
    return _FIELD_SEPARATORS.sub("", name).casefold() in _CREDENTIAL_FIELDS


def redact_for_log(value: Any, *, max_string: int = 256, depth: int = 0) -> Any:
    """Return a log-safe copy of a JSON-like store payload."""
    if depth > _MAX_DEPTH:
        return "<nested>"
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…(+{len(value) - max_string} chars)"
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED
            if _is_credential_field(str(key))
            else redact_for_log(item, max_string=max_string, depth=depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string, depth=depth + 1) for item in value]
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return repr(value)
