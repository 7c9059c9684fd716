from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from exchange_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from exchange_chat.api.v1.routers import (
    health,
    live_exchange,
    messages,
    notifications,
    rooms,
    ws,
)
from exchange_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from exchange_chat.config import settings
from exchange_chat.infrastructure.bus.fanout import (
    LocalFanout,
    RedisPubSubPublisher,
    RedisPubSubSubscriber,
)
from exchange_chat.infrastructure.memory.repositories import MemoryState
from exchange_chat.infrastructure.ws.manager import ConnectionRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    if settings.FANOUT_MODE != "redis":
        app.state.publisher = LocalFanout(app.state.registry)
        yield
        return

    app.state.redis = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    logger.info("Redis connection pool created")

    subscriber = RedisPubSubSubscriber(
        app.state.redis,
        settings.REDIS_PUBSUB_CHANNEL,
        app.state.registry,
    )
    await subscriber.start()
    app.state.publisher = RedisPubSubPublisher(app.state.redis, settings.REDIS_PUBSUB_CHANNEL)

    yield

    await subscriber.stop()
    await app.state.redis.aclose()
    logger.info("Redis connection pool closed")


def create_app(state: MemoryState | None = None) -> FastAPI:
    app = FastAPI(
        title="Exchange Chat Relay Gateway",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.store = state or MemoryState()
    app.state.registry = ConnectionRegistry()
    # Replaced in lifespan when FANOUT_MODE=redis.
    app.state.publisher = LocalFanout(app.state.registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(rooms.router)
    app.include_router(messages.router)
    app.include_router(live_exchange.router)
    app.include_router(notifications.router)
    app.include_router(ws.router)

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(_req: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.detail})

    @app.exception_handler(ForbiddenError)
    async def _forbidden(_req: Request, exc: ForbiddenError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.detail})

    @app.exception_handler(ConflictError)
    async def _conflict(_req: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.detail})

    @app.exception_handler(ValidationError)
    async def _validation(_req: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": exc.detail})
