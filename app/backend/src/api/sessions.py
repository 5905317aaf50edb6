"""Work session endpoints."""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import WorkSession
from app.backend.src.schemas.invoice import PeriodKind
from app.backend.src.schemas.work_session import (
    HoursSummary,
    SessionCreate,
    SessionDeleteResult,
    SessionNote,
    SessionStart,
    SessionStop,
    WorkSessionRead,
)
from app.backend.src.services import work_sessions as session_service
from app.backend.src.services.errors import BillingError, ValidationError
from app.backend.src.services.export import export_sessions_csv

from .errors import http_error

router = APIRouter(prefix="/sessions", tags=["sessions"])

DbSession = Annotated[Session, Depends(get_session_dependency)]


@router.post("/start", response_model=WorkSessionRead, status_code=status.HTTP_201_CREATED)
def start_session(payload: SessionStart, session: DbSession) -> WorkSession:
    """Start a session for a client; any running session is stopped first."""

    try:
        return session_service.start_session(
            session,
            payload.client,
            description=payload.description,
            start_time=payload.start_time,
            includes_gst=payload.includes_gst,
        )
    except BillingError as exc:
        raise http_error(exc) from exc


@router.post("/stop", response_model=WorkSessionRead)
def stop_session(payload: SessionStop, session: DbSession) -> WorkSession:
    try:
        return session_service.stop_session(session, payload.end_time)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.post("", response_model=WorkSessionRead, status_code=status.HTTP_201_CREATED)
def create_session(payload: SessionCreate, session: DbSession) -> WorkSession:
    try:
        return session_service.create_session(session, payload)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=list[WorkSessionRead])
def list_sessions(
    session: DbSession,
    client: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> list[WorkSession]:
    try:
        return session_service.list_sessions(session, client, start, end, limit)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.delete("", response_model=SessionDeleteResult)
def delete_sessions(
    session: DbSession,
    confirm: bool = False,
    from_date: date | None = None,
    to_date: date | None = None,
    client: str | None = None,
) -> SessionDeleteResult:
    """Permanently delete unbilled sessions in a date range; requires ``confirm=true``."""

    try:
        if not confirm:
            raise ValidationError("deleting sessions requires confirm=true")
        return session_service.delete_sessions(session, from_date, to_date, client)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("/hours", response_model=HoursSummary)
def session_hours(
    session: DbSession,
    client: str | None = None,
    period: PeriodKind | None = None,
    anchor_date: date | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> HoursSummary:
    try:
        return session_service.summarize_hours(session, client, period, anchor_date, start, end)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("/export")
def export_sessions(
    session: DbSession,
    client: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> Response:
    """Download sessions as CSV."""

    try:
        content = export_sessions_csv(session, client, start, end)
    except BillingError as exc:
        raise http_error(exc) from exc
    return Response(
        content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="work_sessions.csv"'},
    )


@router.post("/{session_id}/notes", response_model=WorkSessionRead)
def add_note(session_id: int, payload: SessionNote, session: DbSession) -> WorkSession:
    try:
        return session_service.add_note(session, session_id, payload.note)
    except BillingError as exc:
        raise http_error(exc) from exc
