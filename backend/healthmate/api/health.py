"""Health check endpoint."""

import time
from fastapi import APIRouter, Request

from healthmate.models.responses import HealthResponse, HealthDependency

router = APIRouter()

_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Service health with upstream HealthMate API status."""
    dependencies = {}

    # Check upstream API
    try:
        start = time.time()
        await request.app.state.gateway.ping()
        latency = (time.time() - start) * 1000
        dependencies["healthmate_api"] = HealthDependency(status="healthy", latency_ms=round(latency, 2))
    except Exception as e:
        dependencies["healthmate_api"] = HealthDependency(status="unhealthy", message=str(e) or type(e).__name__)

    # Validation runs in-process, so the service stays usable without the upstream API
    if all(d.status == "healthy" for d in dependencies.values()):
        status = "healthy"
    else:
        status = "degraded"

    return HealthResponse(
        status=status,
        uptime_seconds=round(time.time() - _start_time, 2),
        active_form_sessions=request.app.state.form_sessions.count(),
        dependencies=dependencies,
    )
