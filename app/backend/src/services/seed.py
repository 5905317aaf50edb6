"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy.orm import Session

from app.backend.src.models import Client, Expense, WorkSession
from app.backend.src.services.periods import week_start

DEFAULT_CLIENT_NAME = "acme-corp"
DEFAULT_RATE = Decimal("120.00")


@dataclass
class SeedResult:
    """Information about the seeded client and its work."""

    client: Client
    client_created: bool
    sessions_created: int
    expenses_created: int


def seed_development_client(
    session: Session,
    *,
    client_name: str = DEFAULT_CLIENT_NAME,
    hourly_rate: Decimal = DEFAULT_RATE,
    today: datetime | None = None,
) -> SeedResult:
    """Ensure a demo client with a week of unbilled work exists.

    Work is only added when the client has no sessions yet, so repeated runs
    do not pile up duplicate hours.
    """

    client = session.query(Client).filter(Client.name == client_name).one_or_none()
    client_created = False
    if client is None:
        client = Client(
            name=client_name,
            hourly_rate=hourly_rate,
            company_name="Acme Corporation Pty Ltd",
            contact_name="Jordan Lee",
            email="accounts@acme.example",
            address_line1="1 Example Street",
            city="Melbourne",
            state="VIC",
            postal_code="3000",
            country="Australia",
        )
        session.add(client)
        session.flush()
        client_created = True

    sessions_created = 0
    expenses_created = 0
    has_sessions = session.query(WorkSession).filter(WorkSession.client_id == client.id).first()
    if has_sessions is None:
        monday = datetime.combine(week_start((today or datetime.now()).date()), datetime.min.time())
        for offset, hours, description in (
            (0, 3, "Kick-off and requirements review"),
            (1, 5, "API integration work"),
            (2, 2, "Bug fixes from QA feedback"),
        ):
            start = monday + timedelta(days=offset, hours=9)
            session.add(
                WorkSession(
                    client_id=client.id,
                    start_time=start,
                    end_time=start + timedelta(hours=hours),
                    hourly_rate=client.hourly_rate,
                    includes_gst=client.rates_include_gst,
                    description=description,
                )
            )
            sessions_created += 1
        session.add(
            Expense(
                client_id=client.id,
                amount=Decimal("45.00"),
                expense_date=monday + timedelta(days=1, hours=12),
                reference="SW-LICENSE",
                description="Test tooling licence",
            )
        )
        expenses_created += 1
        session.flush()

    return SeedResult(
        client=client,
        client_created=client_created,
        sessions_created=sessions_created,
        expenses_created=expenses_created,
    )
