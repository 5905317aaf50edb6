"""Tests for the client, session, expense and export services."""

from __future__ import annotations

import io
import os
import sys
from datetime import date, datetime, timedelta
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoice.db")

import pandas as pd
import pytest

from app.backend.src.db import get_engine, get_session
from app.backend.src.db.base import Base
from app.backend.src.models import Invoice, WorkSession
from app.backend.src.schemas.client import ClientCreate, ClientUpdate
from app.backend.src.schemas.expense import ExpenseCreate, ExpenseUpdate
from app.backend.src.schemas.work_session import SessionCreate
from app.backend.src.services import clients as client_service
from app.backend.src.services import expenses as expense_service
from app.backend.src.services import work_sessions as session_service
from app.backend.src.services.errors import (
    ConflictError,
    NotFoundError,
    UnknownClientError,
    ValidationError,
)
from app.backend.src.services.export import EXPORT_COLUMNS, export_sessions_csv
from app.backend.src.services.seed import seed_development_client

MONDAY = datetime(2024, 3, 4, 9, 0)


@pytest.fixture(autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():  # type: ignore[no-untyped-def]
    with get_session() as session:
        client_service.create_client(
            session, ClientCreate(name="acme", hourly_rate=Decimal("100"))
        )
        yield session


def test_duplicate_client_name_is_a_conflict(db) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ConflictError):
        client_service.create_client(db, ClientCreate(name=" acme "))


def test_unknown_client_lookup(db) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(UnknownClientError):
        client_service.get_client_or_error(db, "nobody")


def test_starting_a_session_stops_the_running_one(db) -> None:  # type: ignore[no-untyped-def]
    first = session_service.start_session(db, "acme", start_time=MONDAY)
    second = session_service.start_session(db, "acme", start_time=MONDAY + timedelta(hours=2))

    db.refresh(first)
    assert first.end_time == MONDAY + timedelta(hours=2)
    assert second.end_time is None
    assert session_service.get_active_session(db).id == second.id


def test_stop_without_active_session(db) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(NotFoundError):
        session_service.stop_session(db)


def test_stop_before_start_is_rejected(db) -> None:  # type: ignore[no-untyped-def]
    session_service.start_session(db, "acme", start_time=MONDAY)

    with pytest.raises(ValidationError):
        session_service.stop_session(db, MONDAY - timedelta(minutes=1))


def test_session_keeps_rate_after_client_rate_changes(db) -> None:  # type: ignore[no-untyped-def]
    recorded = session_service.create_session(
        db,
        SessionCreate(client="acme", start_time=MONDAY, end_time=MONDAY + timedelta(hours=1)),
    )
    client_service.update_client(db, "acme", ClientUpdate(hourly_rate=Decimal("150")))

    db.refresh(recorded)
    assert recorded.hourly_rate == Decimal("100")
    assert client_service.get_client_or_error(db, "acme").hourly_rate == Decimal("150")


def test_add_note_appends_bullets(db) -> None:  # type: ignore[no-untyped-def]
    recorded = session_service.start_session(db, "acme", start_time=MONDAY)

    session_service.add_note(db, recorded.id, "scoped the API")
    updated = session_service.add_note(db, recorded.id, " wrote tests ")

    assert updated.notes == "- scoped the API\n- wrote tests"
    with pytest.raises(NotFoundError):
        session_service.add_note(db, 999, "missing")


def test_summarize_hours_for_a_week(db) -> None:  # type: ignore[no-untyped-def]
    for offset, hours in ((0, 2), (1, 1.5)):
        start = MONDAY + timedelta(days=offset)
        session_service.create_session(
            db,
            SessionCreate(client="acme", start_time=start, end_time=start + timedelta(hours=hours)),
        )
    session_service.start_session(db, "acme", start_time=MONDAY + timedelta(days=2))

    summary = session_service.summarize_hours(db, "acme", "week", date(2024, 3, 6))

    assert summary.session_count == 2
    assert summary.total_hours == Decimal("3.50")
    assert summary.billable_amount == Decimal("350.00")
    assert summary.start == datetime(2024, 3, 4)


def test_summarize_hours_needs_a_range(db) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValidationError):
        session_service.summarize_hours(db, "acme", start=MONDAY)


def test_export_csv_columns_and_values(db) -> None:  # type: ignore[no-untyped-def]
    session_service.create_session(
        db,
        SessionCreate(
            client="acme",
            start_time=MONDAY,
            end_time=MONDAY + timedelta(minutes=90),
            description="Design review",
        ),
    )

    frame = pd.read_csv(io.StringIO(export_sessions_csv(db, "acme")))

    assert list(frame.columns) == EXPORT_COLUMNS
    row = frame.iloc[0]
    assert row["Client"] == "acme"
    assert row["Duration (minutes)"] == 90
    assert row["Billable Amount"] == pytest.approx(150.0)
    assert row["Date"] == "2024-03-04"


def test_invoiced_expense_cannot_be_edited(db) -> None:  # type: ignore[no-untyped-def]
    expense = expense_service.create_expense(
        db, ExpenseCreate(amount=Decimal("20"), client="acme", expense_date=MONDAY)
    )
    edited = expense_service.update_expense(db, expense.id, ExpenseUpdate(amount=Decimal("25")))
    assert edited.amount == Decimal("25")

    invoice = Invoice(
        client_id=expense.client_id,
        invoice_number="INV-acme-week-2024-03-04",
        period_type="week",
        period_start_date=datetime(2024, 3, 4),
        period_end_date=datetime(2024, 3, 10, 23, 59, 59, 999999),
        generated_date=MONDAY,
    )
    db.add(invoice)
    db.flush()
    edited.invoice_id = invoice.id
    db.commit()

    with pytest.raises(ConflictError):
        expense_service.update_expense(db, expense.id, ExpenseUpdate(amount=Decimal("30")))


def test_seed_is_idempotent() -> None:
    with get_session() as session:
        first = seed_development_client(session, today=MONDAY)
        session.commit()
        second = seed_development_client(session, today=MONDAY)
        session.commit()
        count = session.query(WorkSession).count()

    assert first.client_created and first.sessions_created == 3
    assert not second.client_created and second.sessions_created == 0
    assert count == 3


def test_client_names_that_sanitize_alike_are_a_conflict(db) -> None:  # type: ignore[no-untyped-def]
    client_service.create_client(db, ClientCreate(name="globex co"))

    with pytest.raises(ConflictError):
        client_service.create_client(db, ClientCreate(name="globex_co"))
    with pytest.raises(ConflictError):
        client_service.create_client(db, ClientCreate(name="acme!"))
    assert [client.name for client in client_service.list_clients(db)] == ["acme", "globex co"]


def test_delete_sessions_in_range_keeps_billed_work(db) -> None:  # type: ignore[no-untyped-def]
    recorded = []
    for offset in (0, 1, 7):
        start = MONDAY + timedelta(days=offset)
        recorded.append(
            session_service.create_session(
                db,
                SessionCreate(client="acme", start_time=start, end_time=start + timedelta(hours=1)),
            )
        )
    invoice = Invoice(
        client_id=recorded[1].client_id,
        invoice_number="INV-acme-day-2024-03-05",
        period_type="day",
        period_start_date=datetime(2024, 3, 5),
        period_end_date=datetime(2024, 3, 5, 23, 59, 59, 999999),
        generated_date=MONDAY,
    )
    db.add(invoice)
    db.flush()
    recorded[1].invoice_id = invoice.id
    db.commit()

    result = session_service.delete_sessions(db, date(2024, 3, 4), date(2024, 3, 10), "acme")

    assert result.deleted == 1
    assert result.skipped_billed == 1
    remaining = sorted(item.start_time for item in session_service.list_sessions(db, "acme"))
    assert remaining == [MONDAY + timedelta(days=1), MONDAY + timedelta(days=7)]


def test_delete_sessions_rejects_inverted_range(db) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValidationError):
        session_service.delete_sessions(db, date(2024, 3, 10), date(2024, 3, 4))
