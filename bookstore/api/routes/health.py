"""Health & Readiness Probes - liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 unless the database answers AND the catalog
      table is queryable (a reachable but unmigrated database is not ready)
    - Readiness reports the connection pool status: purchase requests need a
      free pooled connection, so pool saturation shows up here first
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from bookstore.core.errors import DatabaseError
from bookstore.infrastructure import database
from bookstore.services.catalog_store import CatalogStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "bookstore-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check():
    """Readiness probe: database connectivity, catalog schema, pool status."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return _not_ready("database_unavailable")
    try:
        async with manager.session() as db:
            catalog_items = await CatalogStore(db).count()
    except DatabaseError as e:
        logger.error(f"Catalog not queryable: {e.message}")
        return _not_ready("schema_unavailable")
    return {
        "status": "ready",
        "checks": {
            "database": "healthy",
            "catalog_items": catalog_items,
            "pool": manager.engine.pool.status(),
        },
    }
