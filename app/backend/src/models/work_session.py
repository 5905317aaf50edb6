"""Work session model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Boolean, DateTime, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base


class WorkSession(Base):
    """A timed block of work for one client.

    ``end_time`` is null while the session is running. ``hourly_rate`` is a
    snapshot of the client's rate when the session was created, and
    ``invoice_id`` stays null until the session is billed.
    """

    __tablename__ = "work_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    includes_gst: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    invoice_id: Mapped[int | None] = mapped_column(
        ForeignKey("invoices.id"), nullable=True, index=True
    )

    client: Mapped["Client"] = relationship("Client", back_populates="sessions")
    invoice: Mapped["Invoice | None"] = relationship("Invoice", back_populates="sessions")


__all__ = ["WorkSession"]
