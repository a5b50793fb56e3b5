#!/usr/bin/env python3
"""
LeadScout Web API - FastAPI Application

Serves paginated job summaries and company profiles, and runs the
ingestion pipeline in the background whenever a request arrives and the
schedule interval has elapsed.

Usage:
    python main.py serve

Then open:
    - http://localhost:8080/api/jobs - Job summaries (port configurable in config.yaml)
    - http://localhost:8080/docs - API Documentation (Swagger UI)
"""

import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from core.app_context import AppContext
from core.config_loader import AppConfig, load_config
from .exceptions import (
    ServiceException,
    service_exception_handler,
    http_exception_handler,
    general_exception_handler
)
from .routers import (
    jobs_router,
    companies_router,
    stats_router,
    pipeline_router
)

logger = logging.getLogger(__name__)


def create_app(ctx: Optional[AppContext] = None) -> FastAPI:
    """Create the FastAPI app around a wired AppContext (built from config.yaml when omitted)."""
    if ctx is None:
        ctx = AppContext.build(load_config())

    app = FastAPI(
        title="LeadScout API",
        description="API for viewing ingested job postings and company profiles",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc"
    )
    app.state.ctx = ctx

    @app.middleware("http")
    async def pipeline_trigger_middleware(request: Request, call_next):
        # The trigger only decides and dispatches; the run itself is off-request
        if ctx.trigger is not None:
            try:
                ctx.trigger.maybe_run()
            except Exception:
                logger.exception("Pipeline trigger check failed")
        return await call_next(request)

    # Register exception handlers
    app.add_exception_handler(ServiceException, service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers
    app.include_router(jobs_router)
    app.include_router(companies_router)
    app.include_router(stats_router)
    app.include_router(pipeline_router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "leadscout-web"}

    return app


def main(config: Optional[AppConfig] = None):
    """Run the web server."""
    import uvicorn

    config = config or load_config()
    ctx = AppContext.build(config)
    app = create_app(ctx)

    logger.info(f"Starting LeadScout Web Server on {config.web.host}:{config.web.port}")
    logger.info(f"API Docs: http://{config.web.host}:{config.web.port}/docs")

    try:
        uvicorn.run(
            app,
            host=config.web.host,
            port=config.web.port,
            reload=False,
            log_level=config.logging.level.lower()
        )
    finally:
        ctx.close()


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    main()
