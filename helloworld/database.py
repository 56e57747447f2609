"""MongoDB connection ownership for the service process."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

DEFAULT_DATABASE_NAME = "helloworld"

logger = logging.getLogger("helloworld.database")


class ConnectionState(str, Enum):
    """Lifecycle state of the shared MongoDB session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


class DatabaseConnectionError(RuntimeError):
    """Raised when the MongoDB session is unavailable or cannot be established."""


class DatabaseConnector:
    """Own a single Motor client for the lifetime of the process."""

    def __init__(
        self,
        uri: str,
        *,
        server_selection_timeout_ms: int = 30_000,
        client_factory: Callable[..., AsyncIOMotorClient[Dict[str, Any]]] = AsyncIOMotorClient,
    ) -> None:
        self._uri = uri
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client_factory = client_factory
        self._client: Optional[AsyncIOMotorClient[Dict[str, Any]]] = None
        self._database: Optional[AsyncIOMotorDatabase[Dict[str, Any]]] = None
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        """Current session state, following the driver's live topology.

        An open session whose client currently knows no reachable server is
        reported as disconnected.
        """
        if self._state is ConnectionState.CONNECTED:
            if self._client is None or not self._client.nodes:
                return ConnectionState.DISCONNECTED
        return self._state

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED

    @property
    def database(self) -> AsyncIOMotorDatabase[Dict[str, Any]]:
        # Available for the whole open session, even while the topology is empty.
        if self._database is None or self._state is not ConnectionState.CONNECTED:
            raise DatabaseConnectionError("MongoDB connection has not been established")
        return self._database

    async def connect(self) -> None:
        """Create the client and verify the server answers a ``ping``."""

        if self._client is not None:
            return

        self._state = ConnectionState.CONNECTING
        client: Optional[AsyncIOMotorClient[Dict[str, Any]]] = None
        try:
            client = self._client_factory(
                self._uri,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                tz_aware=True,
            )
            await client.admin.command("ping")
            database = client.get_default_database(default=DEFAULT_DATABASE_NAME)
        except PyMongoError as exc:
            if client is not None:
                client.close()
            self._state = ConnectionState.DISCONNECTED
            logger.error("MongoDB connection failed", extra={"error": str(exc)})
            raise DatabaseConnectionError(str(exc)) from exc

        self._client = client
        self._database = database
        self._state = ConnectionState.CONNECTED
        logger.info("Connected to MongoDB successfully", extra={"database": database.name})

    async def close(self) -> None:
        """Release the session. Calling this more than once is a no-op."""

        if self._client is None:
            return

        self._state = ConnectionState.DISCONNECTING
        client, self._client, self._database = self._client, None, None
        client.close()
        self._state = ConnectionState.DISCONNECTED
        logger.info("MongoDB connection closed")


__all__ = [
    "ConnectionState",
    "DatabaseConnectionError",
    "DatabaseConnector",
    "DEFAULT_DATABASE_NAME",
]
