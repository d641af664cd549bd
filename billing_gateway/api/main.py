"""FastAPI application factory"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from billing_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from billing_gateway.api.v1 import advances, debits, reconciliation
from billing_gateway.infrastructure.database.session import SessionLocal
from billing_gateway.infrastructure.observability.logging import setup_logging
from billing_gateway.infrastructure.scheduling.debits_scheduler import DebitsScheduler, build_scheduler
from billing_gateway.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app(scheduler: Optional[DebitsScheduler] = None, start_scheduler: Optional[bool] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    The scheduler loop starts with the app (unless disabled) and is stopped on
    shutdown; the same instance serves on-demand runs.
    """
    scheduler = scheduler or build_scheduler(settings, SessionLocal)
    if start_scheduler is None:
        start_scheduler = settings.scheduler_enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            scheduler.start()
        yield
        await scheduler.stop()

    app = FastAPI(
        title="Billing Gateway",
        description="Repayment plan scheduling and debit lifecycle service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.scheduler = scheduler

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(advances.router, prefix="/v1", tags=["advances"])
    app.include_router(debits.router, prefix="/v1", tags=["debits"])
    app.include_router(reconciliation.router, prefix="/v1", tags=["reconciliation"])

    return app


app = create_app()
