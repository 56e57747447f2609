"""Explicit per-application state shared by the request handlers."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from .config import Settings
from .database import DatabaseConnector
from .users import UserStore


@dataclass
class ServiceContext:
    """Bundle the settings, database session and user store of one app."""

    settings: Settings
    database: Any
    users: Any
    started_at: float = field(default_factory=time.monotonic)

    @staticmethod
    def from_settings(settings: Settings) -> "ServiceContext":
        database = DatabaseConnector(
            settings.mongodb_uri,
            server_selection_timeout_ms=settings.server_selection_timeout_ms,
        )
        return ServiceContext(settings=settings, database=database, users=UserStore(database))

    def uptime(self) -> float:
        """Seconds elapsed since the context was created."""

        return time.monotonic() - self.started_at


__all__ = ["ServiceContext"]
