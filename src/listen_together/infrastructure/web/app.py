"""ASGI application factory: FastAPI for HTTP, socket.io for realtime."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from listen_together import __version__
from listen_together.config.container import Container, create_container
from listen_together.config.settings import Settings, get_settings
from listen_together.infrastructure.web.errors import register_error_handlers
from listen_together.infrastructure.web.routers import playback, queue, rooms

logger = logging.getLogger(__name__)


def create_api(container: Container) -> FastAPI:
    """Build the FastAPI app for a container (no socket.io wrapper)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await container.shutdown()

    container.initialize()
    api = FastAPI(title="listen-together", version=__version__, lifespan=lifespan)
    api.state.container = container

    origins = list(container.settings.server.cors_origins)
    api.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(api)

    api.include_router(rooms.router)
    api.include_router(queue.router)
    api.include_router(playback.router)

    @api.get("/health", tags=["health"])
    async def health() -> dict[str, object]:
        return {"status": "ok", "rooms": len(container.registry)}

    return api


def create_app(settings: Settings | None = None, container: Container | None = None) -> socketio.ASGIApp:
    """Build the full ASGI app: socket.io in front, FastAPI behind it."""
    container = container or create_container(settings or get_settings())
    api = create_api(container)
    return socketio.ASGIApp(container.sio, other_asgi_app=api)
