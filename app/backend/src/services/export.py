"""Tabular export of work sessions."""

from __future__ import annotations

from datetime import datetime

import pandas as pd
from sqlalchemy.orm import Session, selectinload

from app.backend.src.models import WorkSession
from app.backend.src.services.billing import billable_amount, session_hours, to_cents
from app.backend.src.services.clients import get_client_or_error

EXPORT_COLUMNS = [
    "ID",
    "Client",
    "Start Time",
    "End Time",
    "Duration (minutes)",
    "Hourly Rate",
    "Billable Amount",
    "Description",
    "Notes",
    "Date",
]


def sessions_frame(
    session: Session,
    client_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> pd.DataFrame:
    """Return completed and running sessions as a dataframe, oldest first."""

    query = session.query(WorkSession).options(selectinload(WorkSession.client))
    if client_name:
        query = query.filter(WorkSession.client_id == get_client_or_error(session, client_name).id)
    if start is not None:
        query = query.filter(WorkSession.start_time >= start)
    if end is not None:
        query = query.filter(WorkSession.start_time <= end)

    rows = []
    for item in query.order_by(WorkSession.start_time.asc(), WorkSession.id.asc()).all():
        rows.append(
            {
                "ID": item.id,
                "Client": item.client.name,
                "Start Time": item.start_time.strftime("%Y-%m-%d %H:%M:%S"),
                "End Time": item.end_time.strftime("%Y-%m-%d %H:%M:%S") if item.end_time else "",
                "Duration (minutes)": int(session_hours(item) * 60),
                "Hourly Rate": f"{to_cents(item.hourly_rate or 0):.2f}",
                "Billable Amount": f"{to_cents(billable_amount(item)):.2f}",
                "Description": item.description or "",
                "Notes": item.notes or "",
                "Date": item.start_time.strftime("%Y-%m-%d"),
            }
        )
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def export_sessions_csv(
    session: Session,
    client_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> str:
    return sessions_frame(session, client_name, start, end).to_csv(index=False)


__all__ = ["EXPORT_COLUMNS", "export_sessions_csv", "sessions_frame"]
