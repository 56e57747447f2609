"""HTTP API for the hello-world user service."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_serializer
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_settings
from .context import ServiceContext
from .database import ConnectionState
from .middleware import build_middleware, request_url
from .models import UserRecord, isoformat_utc
from .users import StoreErrorKind, UserStoreError

logger = logging.getLogger("helloworld.service")

# Every StoreErrorKind must have an entry; create_user relies on the lookup.
_CREATE_USER_ERRORS: Dict[StoreErrorKind, Tuple[int, str]] = {
    StoreErrorKind.DUPLICATE_KEY: (status.HTTP_409_CONFLICT, "Email already exists"),
    StoreErrorKind.STORE_UNAVAILABLE: (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
    ),
}


class HelloResponse(BaseModel):
    message: str
    timestamp: str
    environment: str


class HealthResponse(BaseModel):
    status: str
    uptime: float
    mongodb: str


class UserResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., alias="_id")
    name: str
    email: str
    created_at: datetime = Field(..., alias="createdAt")

    @field_serializer("created_at")
    def _serialize_created_at(self, value: datetime) -> str:
        return isoformat_utc(value)

    @staticmethod
    def from_record(record: UserRecord) -> "UserResponse":
        return UserResponse(
            id=record.id,
            name=record.name,
            email=record.email,
            created_at=record.created_at,
        )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _is_present(value: object) -> bool:
    return isinstance(value, str) and value != ""


async def _read_json_object(request: Request) -> Dict[str, Any]:
    """Return the fields of a JSON request body.

    Bodies without a JSON content type, empty bodies and top-level arrays
    carry no fields. Malformed JSON and top-level scalars raise
    :class:`ValueError`, which the catch-all handler turns into a 500.
    """

    media_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()
    if media_type != "application/json":
        return {}
    raw = await request.body()
    if not raw.strip():
        return {}
    payload = json.loads(raw)
    if not isinstance(payload, (dict, list)):
        raise ValueError("JSON body must be an object or an array")
    return payload if isinstance(payload, dict) else {}


def get_context(request: Request) -> ServiceContext:
    return request.app.state.context


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    context: ServiceContext = app.state.context

    await context.database.connect()
    try:
        await context.users.ensure_indexes()
    except UserStoreError as exc:
        logger.warning("Could not ensure user indexes", extra={"error": str(exc)})

    try:
        yield
    finally:
        logger.info("Shutting down gracefully...")
        await context.database.close()


def register_routes(app: FastAPI) -> None:
    """Expose the JSON endpoints on the provided FastAPI application."""

    @app.get("/", response_model=HelloResponse)
    async def hello(context: ServiceContext = Depends(get_context)) -> HelloResponse:
        logger.info("Hello World endpoint accessed")
        return HelloResponse(
            message="Hello World!",
            timestamp=isoformat_utc(datetime.now(timezone.utc)),
            environment=context.settings.environment,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health(context: ServiceContext = Depends(get_context)) -> HealthResponse:
        logger.info("Health check endpoint accessed")
        connected = context.database.state is ConnectionState.CONNECTED
        return HealthResponse(
            status="OK",
            uptime=context.uptime(),
            mongodb="connected" if connected else "disconnected",
        )

    @app.post("/users", status_code=status.HTTP_201_CREATED, response_model=UserResponse)
    async def create_user(
        request: Request,
        context: ServiceContext = Depends(get_context),
    ) -> Any:
        body = await _read_json_object(request)
        name = body.get("name")
        email = body.get("email")

        if not _is_present(name) or not _is_present(email):
            logger.warning("Invalid user creation attempt", extra={"body": body})
            return _error(status.HTTP_400_BAD_REQUEST, "Name and email are required")

        try:
            user = await context.users.create(name, email)
        except UserStoreError as exc:
            status_code, message = _CREATE_USER_ERRORS[exc.kind]
            logger.error(
                "Error creating user",
                extra={"error": str(exc), "kind": exc.kind.value, "body": body},
            )
            return _error(status_code, message)

        logger.info(
            "New user created",
            extra={"user_id": user.id, "user_name": user.name, "email": user.email},
        )
        return UserResponse.from_record(user)

    @app.get("/users", response_model=List[UserResponse])
    async def list_users(context: ServiceContext = Depends(get_context)) -> Any:
        try:
            users = await context.users.list_all()
        except UserStoreError as exc:
            logger.error("Error retrieving users", extra={"error": str(exc), "kind": exc.kind.value})
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")

        logger.info("Users retrieved", extra={"count": len(users)})
        return [UserResponse.from_record(user) for user in users]


def register_error_handlers(app: FastAPI) -> None:
    """Install the not-found and catch-all handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # A known path with an unsupported method is reported as a missing route.
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            logger.warning(
                "404 - Route not found",
                extra={"url": request_url(request), "method": request.method},
            )
            return _error(status.HTTP_404_NOT_FOUND, "Route not found")
        headers: Optional[Mapping[str, str]] = getattr(exc, "headers", None)
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=dict(headers) if headers else None,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error",
            exc_info=exc,
            extra={
                "error": str(exc),
                "url": request_url(request),
                "method": request.method,
            },
        )
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Something went wrong!")


def create_app(
    *,
    settings: Settings | None = None,
    context: ServiceContext | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the user service."""

    if context is None:
        context = ServiceContext.from_settings(settings or load_settings())

    app = FastAPI(
        title="Hello World User Service",
        version="1.0.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=_lifespan,
        middleware=build_middleware(context.settings),
    )
    app.state.context = context

    register_routes(app)
    register_error_handlers(app)
    return app


__all__ = ["create_app", "get_context", "register_error_handlers", "register_routes"]
