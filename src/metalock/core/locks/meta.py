"""Holder record written into a held lock file.

The record is a single JSON object terminated by a newline::

    {"at": "2024-05-01T10:00:00.123456+00:00", "pid": 4242,
     "intent": "compact db", "session_id": "c7f1..."}

It is informational: readers may observe a partially written record while the
holder is still writing it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from metalock.core.exceptions import MetadataReadError


@dataclass(frozen=True)
class Meta:
    """Who holds a lock, since when, and why."""

    at: datetime | None = None
    pid: int = 0
    intent: str = ""
    session_id: str = ""

    @property
    def is_empty(self) -> bool:
        return self == Meta()

    def to_dict(self) -> dict[str, Any]:
        return {
            "at": self.at.isoformat() if self.at is not None else None,
            "pid": self.pid,
            "intent": self.intent,
            "session_id": self.session_id,
        }

    def encode(self) -> bytes:
        return (json.dumps(self.to_dict()) + "\n").encode("utf-8")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Meta:
        """Build a record from decoded JSON; missing keys keep their zero value."""
        at_raw = data.get("at")
        pid = data.get("pid", 0)
        intent = data.get("intent", "")
        session_id = data.get("session_id", "")

        if isinstance(pid, bool) or not isinstance(pid, int):
            raise MetadataReadError("lock metadata has a non-integer pid", details=repr(pid))
        if not isinstance(intent, str) or not isinstance(session_id, str):
            raise MetadataReadError("lock metadata has non-string intent or session_id")

        at = None
        if at_raw is not None:
            if not isinstance(at_raw, str):
                raise MetadataReadError("lock metadata has a non-string timestamp", details=repr(at_raw))
            try:
                at = datetime.fromisoformat(at_raw)
            except ValueError as e:
                raise MetadataReadError("lock metadata has an invalid timestamp", details=at_raw) from e

        return cls(at=at, pid=pid, intent=intent, session_id=session_id)

    @classmethod
    def decode(cls, raw: bytes | str) -> Meta:
        """Decode one encoded record.

        Raises:
            MetadataReadError: Empty, truncated or malformed content
        """
        data = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        try:
            decoded = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            err = MetadataReadError("lock metadata is not valid JSON", raw=data, details=str(e))
            raise err from e

        if not isinstance(decoded, dict):
            raise MetadataReadError("lock metadata is not a JSON object", raw=data)
        try:
            return cls.from_dict(decoded)
        except MetadataReadError as e:
            e.raw = data
            raise
