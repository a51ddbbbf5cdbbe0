"""
Dashboard - API.

============================================================
RESPONSIBILITY
============================================================
Read-only REST API over the CCPI engine:

- GET /health          liveness
- GET /ccpi            latest snapshot (cached, ?refresh=true forces a run)
- GET /ccpi/history    persisted runs, newest first
- GET /ccpi/audit      tier attempts of the latest run + registry
- GET /ccpi/sources    configured sources and availability
============================================================
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from database.engine import DatabasePersistenceError

from .schemas import (
    AuditResponse,
    CCPIResponse,
    HealthResponse,
    HistoryEntry,
    HistoryResponse,
    SourcesResponse,
    build_audit_response,
    build_ccpi_response,
    build_sources_response,
)
from .services import CCPIService, create_service

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# ============================================================
# Dependencies
# ============================================================

def get_ccpi_service(request: Request) -> CCPIService:
    """Service attached to the running application."""
    service = getattr(request.app.state, "ccpi_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="CCPI service not started")
    return service


# ============================================================
# FastAPI Application
# ============================================================

def create_app(service: Optional[CCPIService] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Pre-built service (tests); the default one is
            created at startup otherwise
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.ccpi_service = service or create_service()
        app.state.ccpi_service.start()
        logger.info("CCPI API started")
        try:
            yield
        finally:
            await app.state.ccpi_service.close()
            logger.info("CCPI API stopped")

    app = FastAPI(
        title="CCPI API",
        description="Crash & Correction Prediction Index: composite market-risk indicator",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # ============================================================
    # API Endpoints
    # ============================================================

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "service": "CCPI API",
            "version": API_VERSION,
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(service: CCPIService = Depends(get_ccpi_service)):
        """Health check endpoint."""
        now = datetime.now(timezone.utc)
        latest = service.latest
        return HealthResponse(
            status="healthy",
            timestamp=now,
            version=API_VERSION,
            uptime_seconds=(now - service.started_at).total_seconds(),
            last_run=latest.timestamp if latest else None,
        )

    @app.get("/ccpi", response_model=CCPIResponse, tags=["CCPI"])
    async def get_ccpi(
        refresh: bool = Query(False, description="Force a fresh aggregation run"),
        service: CCPIService = Depends(get_ccpi_service),
    ):
        """Latest CCPI snapshot."""
        try:
            snapshot = await service.get_snapshot(force_refresh=refresh)
        except Exception as e:
            logger.error(f"Error computing CCPI: {e}")
            raise HTTPException(status_code=503, detail="CCPI run failed")
        return build_ccpi_response(snapshot, service.registry)

    @app.get("/ccpi/history", response_model=HistoryResponse, tags=["CCPI"])
    async def get_ccpi_history(
        limit: int = Query(30, ge=1, le=500),
        service: CCPIService = Depends(get_ccpi_service),
    ):
        """Persisted runs, newest first."""
        try:
            runs = service.get_history(limit)
        except DatabasePersistenceError as e:
            logger.error(f"Error reading CCPI history: {e}")
            raise HTTPException(status_code=503, detail="History unavailable")
        return HistoryResponse(count=len(runs), runs=[HistoryEntry(**run) for run in runs])

    @app.get("/ccpi/audit", response_model=AuditResponse, tags=["CCPI"])
    async def get_ccpi_audit(service: CCPIService = Depends(get_ccpi_service)):
        """Tier attempts of the latest run and the registry configuration."""
        try:
            snapshot = await service.get_snapshot()
        except Exception as e:
            logger.error(f"Error computing CCPI for audit: {e}")
            raise HTTPException(status_code=503, detail="CCPI run failed")
        return build_audit_response(snapshot, service.registry)

    @app.get("/ccpi/sources", response_model=SourcesResponse, tags=["CCPI"])
    async def get_ccpi_sources(service: CCPIService = Depends(get_ccpi_service)):
        """Configured sources and whether each is offered."""
        return build_sources_response(service.get_sources())

    return app


app = create_app()
