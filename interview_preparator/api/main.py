# FastAPI Application
"""
Main FastAPI application for the interview preparator backend.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import Config, get_config
from ..faults import InterviewFault
from ..infrastructure.llm import LLMError
from .dependencies import BackendServices, build_services
from .models import HealthResponse
from .routes import ApiError, router

logger = logging.getLogger("api")

# Messages for malformed bodies, matching the checks inside the handlers
VALIDATION_MESSAGES = {
    "/api/finalround/next": "Invalid history format",
    "/api/screening/submit": "Missing question or answer",
}


def create_app(config: Optional[Config] = None,
               services: Optional[BackendServices] = None) -> FastAPI:
    """Build the application. Passing services skips provider setup."""
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services(config)
        logger.info("Interview preparator API starting up...")
        yield
        logger.info("Interview preparator API shutting down...")

    app = FastAPI(
        title="Interview Preparator API",
        description="Screening and final-round interview practice backed by Vertex AI and Google Cloud speech.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)

    @app.get("/health", response_model=HealthResponse, tags=["system"], summary="Health check")
    async def health_check() -> HealthResponse:
        return HealthResponse(status="healthy", version=__version__)

    # ========================================================================
    # Exception Handlers
    # ========================================================================

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        message = VALIDATION_MESSAGES.get(request.url.path, "Invalid request")
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.errors()}")
        return JSONResponse(status_code=400, content={"error": message})

    @app.exception_handler(InterviewFault)
    async def fault_handler(request: Request, exc: InterviewFault):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(LLMError)
    async def llm_error_handler(request: Request, exc: LLMError):
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error: {exc}")
        return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})

    return app


def run_server(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False) -> None:
    """Run the backend with uvicorn."""
    import uvicorn
    config = get_config()
    uvicorn.run(
        "interview_preparator.api.main:app",
        host=host or config.server_host,
        port=port or config.server_port,
        reload=reload,
        log_level=config.log_level.lower(),
    )


app = create_app()
