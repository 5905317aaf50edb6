"""Invoice model."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.backend.src.db.base import Base


class Invoice(Base):
    """An invoice for one client over one normalized billing period."""

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint(
            "client_id",
            "period_type",
            "period_start_date",
            "period_end_date",
            name="uq_invoices_client_period",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id"), nullable=False, index=True)
    invoice_number: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    period_type: Mapped[str] = mapped_column(String(16), nullable=False)
    period_start_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_end_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    subtotal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    gst_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    generated_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    document_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    client: Mapped["Client"] = relationship("Client", back_populates="invoices")
    sessions: Mapped[list["WorkSession"]] = relationship("WorkSession", back_populates="invoice")
    expenses: Mapped[list["Expense"]] = relationship("Expense", back_populates="invoice")
    payments: Mapped[list["Payment"]] = relationship(
        "Payment",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="Payment.payment_date",
    )


__all__ = ["Invoice"]
