"""Domain models for the user service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping


def utc_now() -> datetime:
    """Return the current UTC time truncated to MongoDB's millisecond precision."""

    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def isoformat_utc(value: datetime) -> str:
    """Format ``value`` as ISO-8601 in UTC with milliseconds and a ``Z`` suffix."""

    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class UserRecord:
    """Represents a user document stored in the ``users`` collection."""

    id: str
    name: str
    email: str
    created_at: datetime

    @staticmethod
    def from_document(document: Mapping[str, Any]) -> "UserRecord":
        created_at = document["createdAt"]
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return UserRecord(
            id=str(document["_id"]),
            name=str(document["name"]),
            email=str(document["email"]),
            created_at=created_at,
        )


__all__ = ["UserRecord", "isoformat_utc", "utc_now"]
