"""
X timestamp -> PostgreSQL `timestamp` conversion.

X sends `2024-05-01T12:34:56.000Z`. We store a naive UTC datetime truncated
to whole seconds; its `str()` is the store literal `2024-05-01 12:34:56`.
"""

from __future__ import annotations

import re
from datetime import datetime

_X_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")
_X_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class MalformedTimestamp(ValueError):
    def __init__(self, raw: object) -> None:
        super().__init__(f"malformed timestamp: {raw!r}")
        self.raw = raw


def normalize_timestamp(raw: str) -> datetime:
    if not isinstance(raw, str) or not _X_TIMESTAMP_RE.match(raw):
        raise MalformedTimestamp(raw)
    try:
        parsed = datetime.strptime(raw, _X_TIMESTAMP_FORMAT)
    except ValueError as e:
        # Shape matched but the calendar values didn't (month 13, Feb 30, ...).
        raise MalformedTimestamp(raw) from e
    return parsed.replace(microsecond=0)
