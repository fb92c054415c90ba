"""
Visit Compliance Engine - Main application entry point.

REST API and MCP server for CDS triggers, visit coding, diagnosis evidence,
finalize gating and billing readiness of in-home clinical visits.
"""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from compliance_engine.config.logging import configure_logging, get_logger
from compliance_engine.config.rules import load_config
from compliance_engine.config.settings import get_settings
from compliance_engine.constants import SERVICE_VERSION
from compliance_engine.mcp.server import mcp
from compliance_engine.middleware import (
    RequestContextMiddleware,
    RequestSizeLimitMiddleware,
    SecurityHeadersMiddleware,
)
from compliance_engine.routers import (
    billing_router,
    coding_router,
    health_router,
    recommendations_router,
    rules_router,
    visits_router,
)
from compliance_engine.store import cleanup_visit_store, get_visit_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    # Startup
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)
    logger.info("Starting Visit Compliance Engine", host=settings.host, port=settings.port)

    # Load rule configuration once; engines share the frozen snapshot
    config = load_config()
    logger.info(
        "Loaded rule configuration",
        trigger_rules=len(config.trigger_rules),
        evidence_rules=len(config.evidence_rules),
        plan_packs=len(config.plan_packs),
    )

    store = get_visit_store()
    logger.info("Visit store ready", backend=type(store).__name__)

    # Initialize MCP session manager for streamable-http
    mcp.streamable_http_app()
    async with mcp.session_manager.run():
        logger.info("Started MCP session manager")
        yield

    # Shutdown
    logger.info("Shutting down Visit Compliance Engine")
    await cleanup_visit_store()
    logger.info("Closed visit store")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Visit Compliance Engine",
        description="REST API and MCP server for visit compliance, coding and billing readiness",
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Add CORS middleware
    origins = settings.cors_origins.split(",") if settings.cors_origins != "*" else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # Add request size limit middleware
    app.add_middleware(RequestSizeLimitMiddleware, max_body_size=settings.max_request_body_size)

    # Outermost, so every log line carries the request id
    app.add_middleware(RequestContextMiddleware)

    # Register REST API routers
    app.include_router(health_router)
    app.include_router(rules_router)
    app.include_router(visits_router)
    app.include_router(recommendations_router)
    app.include_router(coding_router)
    app.include_router(billing_router)

    # Mount MCP server at /mcp (streamable-http transport)
    mcp.settings.streamable_http_path = "/"
    mcp_app = mcp.streamable_http_app()
    app.mount("/mcp", mcp_app)
    logger.info("Mounted MCP server at /mcp")

    return app


# Create the application instance
app = create_app()


def run():
    """
    Run the Visit Compliance Engine server.

    Starts the REST API and MCP server on the same port via uvicorn.
    MCP is available at /mcp using streamable-http transport.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    uvicorn.run(
        "compliance_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
