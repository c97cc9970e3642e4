"""
FastAPI application entry point for the gatekeeper service.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatekeeper.config import Settings, get_settings
from gatekeeper.errors import GatekeeperError, UpstreamError
from gatekeeper.routes import router

logger = logging.getLogger(__name__)


async def handle_gatekeeper_error(request: Request, exc: GatekeeperError):
    body = {"error": exc.message}
    if isinstance(exc, UpstreamError) and exc.upstream_status is not None:
        body["upstream_status"] = exc.upstream_status
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=body)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(name)s %(levelname)s %(asctime)s %(message)s",
    )

    app = FastAPI(title="Catalog Gatekeeper", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatekeeperError, handle_gatekeeper_error)
    app.include_router(router)
    return app


app = create_app()
