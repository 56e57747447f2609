"""Process lifecycle: run the API under uvicorn and map the outcome to an exit code."""

from __future__ import annotations

import logging
import socket
from typing import List, Optional

import uvicorn

from .config import Settings
from .service import create_app

logger = logging.getLogger("helloworld.server")


class ServiceServer(uvicorn.Server):
    """uvicorn server that reports once the listener is bound."""

    def __init__(self, config: uvicorn.Config, *, environment: str) -> None:
        super().__init__(config)
        self._environment = environment

    async def startup(self, sockets: Optional[List[socket.socket]] = None) -> None:
        # The lifespan (database connect) runs first; sockets are bound after it.
        await super().startup(sockets=sockets)
        if self.started:
            logger.info(
                "Server started successfully",
                extra={"port": self.config.port, "environment": self._environment},
            )


def build_server(settings: Settings) -> ServiceServer:
    app = create_app(settings=settings)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        access_log=False,
        log_config=None,
    )
    return ServiceServer(config, environment=settings.environment)


def run_server(settings: Settings, *, server: Optional[ServiceServer] = None) -> int:
    """Serve until interrupted. Returns the process exit code."""

    if server is None:
        try:
            server = build_server(settings)
        except Exception as exc:
            logger.error("Failed to start server", exc_info=exc, extra={"error": str(exc)})
            return 1

    try:
        server.run()
    except KeyboardInterrupt:
        # uvicorn re-raises SIGINT after its own shutdown has completed.
        pass

    if not server.started:
        logger.error("Failed to start server", extra={"port": settings.port})
        return 1
    return 0


__all__ = ["ServiceServer", "build_server", "run_server"]
