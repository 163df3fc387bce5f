"""
Supportdesk - Main Application
==============================

Retrieval-answer and ticket auto-assignment service for the support widget.

Modules:
- Retrieval: Answer widget questions from a tenant's content (RAG)
- Assignment: Pick an owner for escalated tickets

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, LLM, vector store
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from supportdesk.assignment.interfaces import assignment_router
from supportdesk.config import settings
from supportdesk.core import ApplicationException
from supportdesk.infrastructure.database import close_database, create_tables, init_database
from supportdesk.infrastructure.llm import build_llm_client
from supportdesk.infrastructure.vectorstore import MilvusChunkStore
from supportdesk.retrieval.interfaces import retrieval_router
from supportdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    ResponseTimeMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from supportdesk.shared.infrastructure.grafana import init_grafana_exporter
from supportdesk.shared.infrastructure.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Initialize LLM client
    4. Initialize Milvus chunk store (when selected)
    5. Initialize Grafana exporter

    Unavailable dependencies leave the service in degraded mode; the
    affected endpoints answer 503.

    SHUTDOWN:
    1. Close database connections
    """
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Supportdesk", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    app.state.settings = settings

    init_database()
    try:
        await create_tables()
    except Exception as e:
        logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    try:
        app.state.llm_client = build_llm_client(settings)
    except ApplicationException as e:
        logger.warning("LLM client initialization failed", extra={"error": e.message})
        app.state.llm_client = None

    app.state.chunk_store = None
    if settings.chunk_store_backend == "milvus":
        try:
            chunk_store = MilvusChunkStore()
            await chunk_store.initialize()
            app.state.chunk_store = chunk_store
        except ApplicationException as e:
            logger.warning("Vector store not available", extra={"error": e.message})

    if settings.grafana_host and settings.grafana_api_key and settings.grafana_instance_id:
        init_grafana_exporter(
            host=settings.grafana_host,
            api_key=settings.grafana_api_key,
            instance_id=settings.grafana_instance_id
        )
    else:
        logger.info("Grafana OTLP exporter not configured - metrics will not be exported")

    logger.info("Supportdesk started", extra={
        "llm_provider": settings.llm_provider,
        "chunk_store_backend": settings.chunk_store_backend
    })

    yield

    logger.info("Shutting down Supportdesk")
    await close_database()
    logger.info("Supportdesk shutdown complete")


app = FastAPI(
    title="Supportdesk API",
    description="""
    ## Support Widget Backend

    ### Retrieval

    - `POST /query` - Answer a visitor question from the tenant's content
    - `GET /query/stats/{website_id}` - Query volume and confidence for a tenant

    Answers carry a heuristic confidence; low-confidence answers on eligible
    plans are flagged for escalation into a ticket.

    ### Assignment

    - `POST /assignment/{organization_id}/tickets/{ticket_id}/auto-assign` - Assign a ticket
    - `GET /assignment/{organization_id}/workload` - Open tickets per team member
    - `GET /assignment/{organization_id}/stats` - Assignment counters
    - `GET|PUT /assignment/{organization_id}/config` - Assignment settings

    Tickets go to the member with the fewest open tickets; ties go to the
    member assigned longest ago.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Added last runs first: correlation id must be set before logging reads it
app.add_middleware(LoggingMiddleware)
app.add_middleware(ResponseTimeMiddleware)
app.add_middleware(CorrelationIDMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(retrieval_router)
app.include_router(assignment_router)


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports LLM client and chunk store availability.
    """
    llm_client = getattr(request.app.state, "llm_client", None)
    checks = {
        "llm_client": settings.llm_provider if llm_client else "not_configured",
        "chunk_store": settings.chunk_store_backend,
    }

    chunk_store = getattr(request.app.state, "chunk_store", None)
    if settings.chunk_store_backend == "milvus":
        if chunk_store is None:
            checks["chunk_store"] = "milvus (unavailable)"
        else:
            try:
                count = await chunk_store.count_chunks()
                checks["chunk_store"] = f"milvus ({count} chunks)"
            except ApplicationException as e:
                checks["chunk_store"] = f"milvus (error: {e.message})"

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "retrieval": {"prefix": "/query"},
            "assignment": {"prefix": "/assignment"}
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "supportdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower()
    )
