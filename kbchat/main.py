"""FastAPI application entry point."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from kbchat.api.dependencies import get_cached_config
from kbchat.api.middleware import (
    ExceptionHandlerMiddleware,
    RequestLoggingMiddleware,
    app_error_handler,
    request_validation_handler,
)
from kbchat.api.routes import router as api_router
from kbchat.core.di_container import container as di_container
from kbchat.core.exceptions import AppError
from kbchat.core.logging import setup_logging

logger = structlog.get_logger()

# Seconds to wait for background side effects on shutdown
SHUTDOWN_DRAIN_TIMEOUT = 10.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    config = get_cached_config()

    setup_logging(
        log_level=config.log_level,
        json_format=not config.debug,
        log_dir=config.log_dir,
        pii_masking_enabled=config.pii_masking_enabled,
    )

    di_container.wire(modules=["kbchat.api.routes"])

    logger.info(
        "application_starting",
        app_name=config.app_name,
        llm_provider=config.llm.provider,
        llm_model=config.llm.model,
        storage_backend=config.storage.backend,
        memory_backend=config.memory.backend,
    )

    retriever = di_container.retriever()
    logger.info(
        "container_initialized",
        llm_provider=type(di_container.llm()).__name__,
        store=type(di_container.store()).__name__,
        retrieval_strategies=[strategy.name for strategy in retriever.strategies],
    )

    yield

    logger.info("application_shutting_down")
    await di_container.task_runner().drain(timeout=SHUTDOWN_DRAIN_TIMEOUT)

    di_container.unwire()

    # Close HTTP / Redis connections if needed
    for resource in {id(r): r for r in (di_container.store(), di_container.message_store())}.values():
        if hasattr(resource, "close"):
            await resource.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_cached_config()

    app = FastAPI(
        title=config.app_name,
        description="Knowledge-base grounded chatbot with streaming answers and lead capture",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(ExceptionHandlerMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        return {
            "name": config.app_name,
            "version": "0.1.0",
            "docs": "/docs",
            "health": "/api/v1/health",
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_cached_config()
    uvicorn.run(
        "kbchat.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )
