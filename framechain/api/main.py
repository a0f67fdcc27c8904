"""
FrameChain FastAPI Server

Main application entry point with ASGI server.
"""

from contextlib import asynccontextmanager
from typing import List, Tuple, Type

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from framechain import __version__
from framechain.core.exceptions import (
    ChainCancelledError, ChainLockedError, ConfigurationError, ContinuityError,
    DataIntegrityError, FrameChainError, GatewayError, GatewayTimeoutError,
    NotFoundError, ParseError,
)
from framechain.core.logging_config import LogLevel, get_logger, setup_logging

from . import health, scripts, shots
from .deps import build_services, get_services, set_services
from .models import ErrorResponse
from .settings import get_settings

logger = get_logger("api.main")

# First match wins; subclasses precede their bases
ERROR_STATUS: List[Tuple[Type[FrameChainError], int]] = [
    (NotFoundError, 404),
    (ChainLockedError, 409),
    (ChainCancelledError, 409),
    (DataIntegrityError, 422),
    (ContinuityError, 422),
    (ConfigurationError, 422),
    (GatewayTimeoutError, 504),
    (GatewayError, 502),
    (ParseError, 502),
]


def status_for(error: FrameChainError) -> int:
    for error_type, status_code in ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Starting FrameChain API...")
    owned = False
    try:
        get_services()
    except RuntimeError:
        set_services(build_services(get_settings()))
        owned = True
    yield
    if owned:
        await get_services().aclose()
        set_services(None)
    logger.info("Shutting down FrameChain API...")


app = FastAPI(
    title="FrameChain API",
    description="Continuity-aware multi-shot frame and video generation",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FrameChainError)
async def framechain_error_handler(request: Request, exc: FrameChainError):
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    body = ErrorResponse(error=type(exc).__name__, message=exc.message, details=exc.details)
    return JSONResponse(status_code=status_code, content=body.model_dump())


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(scripts.router, prefix="/api/scripts", tags=["Scripts"])
app.include_router(shots.router, prefix="/api/shots", tags=["Shots"])


def run():
    """Run the server."""
    settings = get_settings()
    setup_logging(LogLevel.from_name(settings.log_level))
    uvicorn.run(
        "framechain.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="info"
    )


if __name__ == "__main__":
    run()
