"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_event_store
from api.models.responses import HealthResponse
from core.config import API_VERSION
from core.exceptions import PersistenceFailure
from services.store import EventStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(store: EventStore = Depends(get_event_store)):
    """
    Health check endpoint for monitoring.

    Returns 200 if the database answers, 503 otherwise.
    """
    timestamp = datetime.now(timezone.utc).isoformat()

    try:
        await store.ping()
    except PersistenceFailure as e:
        return JSONResponse(
            status_code=503,
            content=HealthResponse(
                status="unhealthy",
                version=API_VERSION,
                database_available=False,
                timestamp=timestamp,
                error=f"Database unavailable: {e}",
            ).model_dump(),
        )

    return HealthResponse(
        status="healthy",
        version=API_VERSION,
        database_available=True,
        timestamp=timestamp,
    )
