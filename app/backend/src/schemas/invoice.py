"""Invoice schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

PeriodKind = Literal["day", "week", "fortnight", "month"]
OutcomeStatus = Literal["created", "reused", "skipped", "failed", "cancelled"]
PaymentStatus = Literal["paid", "partially paid", "unpaid"]


class GenerateRequest(BaseModel):
    period: PeriodKind = "week"
    anchor_date: date | None = None
    client: str | None = None


class ClientOutcome(BaseModel):
    """What happened to one client during a generate run."""

    client: str
    status: OutcomeStatus
    invoice_id: int | None = None
    invoice_number: str | None = None
    subtotal: Decimal | None = None
    gst: Decimal | None = None
    total: Decimal | None = None
    document_path: str | None = None
    message: str | None = None


class GenerationReport(BaseModel):
    period_type: str
    period_start: datetime
    period_end: datetime
    generated_count: int = 0
    outcomes: list[ClientOutcome] = Field(default_factory=list)
    voided_invoice_numbers: list[str] = Field(default_factory=list)
    message: str = ""

    @property
    def failed(self) -> list[ClientOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == "failed"]


class PaymentRequest(BaseModel):
    amount: Decimal | None = None
    payment_date: datetime | None = None


class PaymentResult(BaseModel):
    invoice_id: int
    invoice_number: str
    amount: Decimal
    amount_paid: Decimal
    total_amount: Decimal
    remaining: Decimal
    payment_date: datetime
    status: Literal["partially paid", "fully paid"]


class InvoiceSummary(BaseModel):
    id: int
    invoice_number: str
    client_name: str
    period_type: str
    period_start_date: datetime
    period_end_date: datetime
    subtotal_amount: Decimal
    gst_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    balance: Decimal
    payment_date: datetime | None = None
    status: PaymentStatus
    generated_date: datetime
    document_path: str | None = None


__all__ = [
    "ClientOutcome",
    "GenerateRequest",
    "GenerationReport",
    "InvoiceSummary",
    "PaymentRequest",
    "PaymentResult",
    "PeriodKind",
]
