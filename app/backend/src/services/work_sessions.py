"""Service layer functions for tracking work sessions."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import Client, WorkSession
from app.backend.src.schemas.work_session import HoursSummary, SessionCreate, SessionDeleteResult
from app.backend.src.services.billing import billable_amount, session_hours, to_cents
from app.backend.src.services.clients import get_client_or_error
from app.backend.src.services.errors import NotFoundError, ValidationError
from app.backend.src.services.periods import period_range

LOGGER = structlog.get_logger(__name__)


def get_active_session(session: Session) -> WorkSession | None:
    return (
        session.query(WorkSession)
        .filter(WorkSession.end_time.is_(None))
        .order_by(WorkSession.start_time.desc())
        .first()
    )


def _new_session(
    client: Client,
    start_time: datetime,
    end_time: datetime | None,
    description: str | None,
    includes_gst: bool | None,
) -> WorkSession:
    # Rate and GST treatment are captured now so later client edits do not reprice history.
    return WorkSession(
        client_id=client.id,
        start_time=start_time,
        end_time=end_time,
        hourly_rate=client.hourly_rate if client.hourly_rate and client.hourly_rate > 0 else None,
        includes_gst=client.rates_include_gst if includes_gst is None else includes_gst,
        description=description,
    )


def start_session(
    session: Session,
    client_name: str,
    description: str | None = None,
    start_time: datetime | None = None,
    includes_gst: bool | None = None,
) -> WorkSession:
    """Start timing work for a client, stopping whatever session is running."""

    client = get_client_or_error(session, client_name)
    started_at = start_time or datetime.now()

    active = get_active_session(session)
    if active is not None:
        active.end_time = max(started_at, active.start_time)
        LOGGER.info("work_session_auto_stopped", session_id=active.id, client_id=active.client_id)

    work_session = _new_session(client, started_at, None, description, includes_gst)
    session.add(work_session)
    session.commit()
    session.refresh(work_session)
    LOGGER.info("work_session_started", session_id=work_session.id, client_name=client.name)
    return work_session


def stop_session(session: Session, end_time: datetime | None = None) -> WorkSession:
    active = get_active_session(session)
    if active is None:
        raise NotFoundError("no active work session")

    stopped_at = end_time or datetime.now()
    if stopped_at < active.start_time:
        raise ValidationError("end time is before the session started")
    active.end_time = stopped_at
    session.commit()
    session.refresh(active)
    LOGGER.info(
        "work_session_stopped",
        session_id=active.id,
        hours=str(to_cents(session_hours(active))),
    )
    return active


def create_session(session: Session, payload: SessionCreate) -> WorkSession:
    """Record a completed session with explicit start and end times."""

    client = get_client_or_error(session, payload.client)
    work_session = _new_session(
        client,
        payload.start_time,
        payload.end_time,
        payload.description,
        payload.includes_gst,
    )
    session.add(work_session)
    session.commit()
    session.refresh(work_session)
    return work_session


def list_sessions(
    session: Session,
    client_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[WorkSession]:
    query = session.query(WorkSession)
    if client_name:
        query = query.filter(WorkSession.client_id == get_client_or_error(session, client_name).id)
    if start is not None:
        query = query.filter(WorkSession.start_time >= start)
    if end is not None:
        query = query.filter(WorkSession.start_time <= end)
    query = query.order_by(WorkSession.start_time.desc(), WorkSession.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def add_note(session: Session, session_id: int, note: str) -> WorkSession:
    """Append a bullet line to the session's notes."""

    work_session = session.get(WorkSession, session_id)
    if work_session is None:
        raise NotFoundError(f"session {session_id} not found")

    line = f"- {note.strip()}"
    work_session.notes = f"{work_session.notes}\n{line}" if work_session.notes else line
    session.commit()
    session.refresh(work_session)
    return work_session


def summarize_hours(
    session: Session,
    client_name: str | None = None,
    period: str | None = None,
    anchor: date | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> HoursSummary:
    """Total completed hours and their billable value for a period or explicit range."""

    if period:
        span = period_range(period, anchor or date.today())
        start, end = span.start, span.end
        period = span.kind
    elif start is None or end is None:
        raise ValidationError("provide a period or both start and end")

    sessions = [
        item
        for item in list_sessions(session, client_name, start, end)
        if item.end_time is not None
    ]
    hours = sum((session_hours(item) for item in sessions), Decimal("0"))
    amount = sum((billable_amount(item) for item in sessions), Decimal("0"))
    return HoursSummary(
        client=client_name,
        period_type=period,
        start=start,
        end=end,
        session_count=len(sessions),
        total_hours=to_cents(hours),
        billable_amount=to_cents(amount),
    )


def delete_sessions(
    session: Session,
    from_date: date | None = None,
    to_date: date | None = None,
    client_name: str | None = None,
) -> SessionDeleteResult:
    """Delete unbilled sessions starting between ``from_date`` and ``to_date`` inclusive.

    Open ends default to the full history. Sessions already on an invoice are
    kept and counted.
    """

    start = datetime.combine(from_date or date.min, time.min)
    end = datetime.combine(to_date or date.max, time.max)
    if start > end:
        raise ValidationError("from_date is after to_date")

    candidates = list_sessions(session, client_name, start, end)
    billed = [item for item in candidates if item.invoice_id is not None]
    for item in candidates:
        if item.invoice_id is None:
            session.delete(item)
    session.commit()

    deleted = len(candidates) - len(billed)
    LOGGER.info(
        "work_sessions_deleted",
        client_name=client_name,
        from_date=from_date.isoformat() if from_date else None,
        to_date=to_date.isoformat() if to_date else None,
        deleted=deleted,
        skipped_billed=len(billed),
    )
    return SessionDeleteResult(deleted=deleted, skipped_billed=len(billed))


__all__ = [
    "add_note",
    "create_session",
    "delete_sessions",
    "get_active_session",
    "list_sessions",
    "start_session",
    "stop_session",
    "summarize_hours",
]
