"""esystem FastAPI application entrypoints.

Each E-System service either builds its app with `create_app()` or installs the
same pieces (`register_error_handlers`, `app.state.settings`,
`app.state.peers`) into an app it already owns.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from esystem.boundary import register_error_handlers, respond
from esystem.config import Settings, get_settings, validate_settings
from esystem.peers import ServiceRegistry
from esystem.routes.auth import router as auth_router


def include_esystem_routers(app: FastAPI) -> None:
    """Install esystem routers into an existing FastAPI app."""
    app.include_router(auth_router)


def create_app(
    *,
    settings: Optional[Settings] = None,
    peers: Optional[ServiceRegistry] = None,
) -> FastAPI:
    """Create an esystem FastAPI app.

    Without arguments, settings come from the environment and peers from the
    configured base URLs.
    """
    resolved = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Validate configuration before serving
        validate_settings(resolved)
        yield

    app = FastAPI(title=f"E-System {resolved.service_name}", version="0.1.0", lifespan=lifespan)
    app.state.settings = resolved
    app.state.peers = peers if peers is not None else ServiceRegistry.from_settings(resolved)

    @app.get("/health", tags=["internal"])
    async def health(_: Request) -> JSONResponse:
        return respond(
            {
                "status": "ok",
                "service": resolved.service_name,
                "environment": resolved.environment,
            }
        )

    register_error_handlers(app)
    include_esystem_routers(app)
    return app
