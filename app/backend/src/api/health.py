"""Health check and metrics endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.services.storage import invoice_output_dir

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    return {"status": "live"}


@router.get("/health/ready")
def readiness(session: Annotated[Session, Depends(get_session_dependency)]) -> dict[str, str]:
    """Check the database connection and that invoice PDFs can be written."""

    session.execute(text("SELECT 1"))
    output_dir = invoice_output_dir()
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.error("invoice_output_dir_unavailable", path=str(output_dir), error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"invoice output directory unavailable: {output_dir}",
        ) from exc
    return {"status": "ready", "invoice_output_dir": str(output_dir)}


@router.get("/metrics")
def metrics() -> Response:
    """Expose Prometheus metrics."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
