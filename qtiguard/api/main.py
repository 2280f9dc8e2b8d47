"""FastAPI application factory.

Assembles the API routers and maps fail-closed configuration errors to 503.
This module is the authoritative app object; qtiguard/main.py re-exports it.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from qtiguard.api.routes.detection import router as detection_router
from qtiguard.api.routes.exports import router as exports_router
from qtiguard.api.routes.health import router as health_router
from qtiguard.api.routes.validation import router as validation_router
from qtiguard.core.logging import setup_logging
from qtiguard.core.settings import get_settings
from qtiguard.llm.client import LLMCredentialsError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    yield


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    lifespan=lifespan,
)


@app.exception_handler(LLMCredentialsError)
async def _credentials_error_handler(_: Request, exc: LLMCredentialsError) -> JSONResponse:
    logger.error("Model-assisted detection misconfigured: %s", exc)
    return JSONResponse(status_code=503, content={"detail": str(exc)})


app.include_router(health_router)
app.include_router(detection_router)
app.include_router(exports_router)
app.include_router(validation_router)
