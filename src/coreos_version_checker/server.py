from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from coreos_version_checker.health import HealthService
    from coreos_version_checker.poller import Poller

NO_CACHE = {"Cache-Control": "no-cache, no-store, must-revalidate"}


def create_app(service: HealthService, poller: Poller | None = None) -> FastAPI:
    """
    Build the HTTP surface. The poller (when given) is started with the application and stopped on
    shutdown; the endpoints only ever read the cached state.
    """
    logger = logging.getLogger("server")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if poller:
            poller.start()
        yield
        if poller:
            logger.info("stopping release poller")
            poller.stop(timeout=5)

    app = FastAPI(title=service.name, description=service.description, lifespan=lifespan)

    # plain (non-async) handlers run on the threadpool, so concurrent health checks read in parallel
    @app.get("/__health")
    def health() -> JSONResponse:
        body: dict[str, Any] = service.health()
        return JSONResponse(body, headers=NO_CACHE)

    @app.get("/__gtg")
    def gtg() -> PlainTextResponse:
        status = service.gtg()
        if status.good_to_go:
            return PlainTextResponse("OK", headers=NO_CACHE)
        return PlainTextResponse(status.message, status_code=503, headers=NO_CACHE)

    return app
