"""Billable amount calculation: session charges, retainer proration and GST.

Everything here is pure. Amounts stay at full ``Decimal`` precision until
:func:`to_cents` is applied for storage or display.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

import structlog

from app.backend.src.core.config import Settings, get_settings
from app.backend.src.services.periods import PERIOD_KINDS, PeriodRange

LOGGER = structlog.get_logger(__name__)

ZERO = Decimal("0")
CENTS = Decimal("0.01")
GST_RATE = Decimal("0.10")
GST_DIVISOR = Decimal("1") + GST_RATE
_MICROSECONDS_PER_HOUR = Decimal(3_600_000_000)


class BillableSession(Protocol):
    id: int | None
    start_time: datetime
    end_time: datetime | None
    hourly_rate: Decimal | None
    includes_gst: bool


class BillableExpense(Protocol):
    amount: Decimal


class RetainerClient(Protocol):
    retainer_amount: Decimal | None
    retainer_hours: Decimal | None
    retainer_basis: str | None


@dataclass(frozen=True, slots=True)
class BillingConfig:
    """Billing entity details and tax registration, injected at construction."""

    gst_registered: bool = False
    company_name: str | None = None
    abn: str | None = None
    acn: str | None = None
    bank: str | None = None
    account_name: str | None = None
    account_number: str | None = None
    bsb: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "BillingConfig":
        settings = settings or get_settings()
        return cls(
            gst_registered=settings.gst_registered,
            company_name=settings.billing_company_name,
            abn=settings.billing_abn,
            acn=settings.billing_acn,
            bank=settings.billing_bank,
            account_name=settings.billing_account_name,
            account_number=settings.billing_account_number,
            bsb=settings.billing_bsb,
        )


@dataclass(frozen=True, slots=True)
class RetainerTerms:
    amount: Decimal
    hours: Decimal
    basis: str


@dataclass(frozen=True, slots=True)
class SessionCharge:
    """How one session contributes to an invoice."""

    session: BillableSession
    hours: Decimal
    covered_hours: Decimal
    billable_hours: Decimal
    rate: Decimal
    contribution: Decimal
    exclusive_amount: Decimal
    gst_extracted: Decimal

    @property
    def fully_covered(self) -> bool:
        return self.covered_hours > ZERO and self.billable_hours == ZERO


@dataclass(frozen=True, slots=True)
class InvoiceTotals:
    """Full-precision totals for one client and period."""

    charges: tuple[SessionCharge, ...]
    retainer: RetainerTerms | None
    retainer_fee: Decimal
    session_subtotal: Decimal
    expense_total: Decimal
    subtotal: Decimal
    gst_extracted: Decimal
    gst: Decimal
    total: Decimal
    gst_registered: bool = False
    covered_hours: Decimal = field(default=ZERO)

    @property
    def is_billable(self) -> bool:
        return self.subtotal > ZERO or self.retainer_fee > ZERO

    @property
    def total_hours(self) -> Decimal:
        return sum((charge.hours for charge in self.charges), ZERO)

    def rounded(self) -> tuple[Decimal, Decimal, Decimal]:
        """Return ``(subtotal, gst, total)`` in cents, with ``total = subtotal + gst``."""

        subtotal = to_cents(self.subtotal)
        gst = to_cents(self.gst)
        return subtotal, gst, subtotal + gst


def to_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    return f"${to_cents(amount):,.2f}"


def _decimal(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def session_hours(session: BillableSession) -> Decimal:
    """Wall-clock hours of a completed session; running sessions count as zero."""

    if session.end_time is None:
        return ZERO
    elapsed = session.end_time - session.start_time
    micros = (elapsed.days * 86_400 + elapsed.seconds) * 1_000_000 + elapsed.microseconds
    if micros <= 0:
        return ZERO
    return Decimal(micros) / _MICROSECONDS_PER_HOUR


def session_rate(session: BillableSession) -> Decimal:
    rate = _decimal(session.hourly_rate)
    if session.end_time is None or rate <= ZERO:
        return ZERO
    return rate


def billable_amount(session: BillableSession) -> Decimal:
    return session_hours(session) * session_rate(session)


def retainer_terms_for(client: RetainerClient, period: str) -> RetainerTerms | None:
    """Return the client's retainer if it applies to ``period``."""

    amount = client.retainer_amount
    hours = client.retainer_hours
    basis = (client.retainer_basis or "").strip().lower()
    if amount is None or hours is None or not basis:
        return None
    amount = _decimal(amount)
    hours = _decimal(hours)
    if amount <= ZERO or hours <= ZERO or basis not in PERIOD_KINDS:
        return None
    if basis != period:
        return None
    return RetainerTerms(amount=amount, hours=hours, basis=basis)


def chronological(sessions: Iterable[BillableSession]) -> list[BillableSession]:
    return sorted(sessions, key=lambda item: (item.start_time, item.id or 0))


class BillableAmountCalculator:
    """Settles sessions and expenses for one client and one period."""

    def __init__(self, config: BillingConfig) -> None:
        self.config = config

    def split_gst(self, contribution: Decimal, includes_gst: bool) -> tuple[Decimal, Decimal]:
        """Return ``(exclusive, gst)`` for a session contribution."""

        if not (self.config.gst_registered and includes_gst):
            return contribution, ZERO
        exclusive = contribution / GST_DIVISOR
        return exclusive, contribution - exclusive

    def prorate(
        self,
        sessions: Iterable[BillableSession],
        retainer_hours: Decimal | None = None,
    ) -> list[SessionCharge]:
        """Charge sessions in chronological order, applying retainer hours first."""

        cap = retainer_hours if retainer_hours is not None and retainer_hours > ZERO else None
        cumulative = ZERO
        charges: list[SessionCharge] = []
        for session in chronological(sessions):
            hours = session_hours(session)
            rate = session_rate(session)
            if cap is None:
                covered = ZERO
            elif cumulative + hours <= cap:
                covered = hours
            elif cumulative < cap:
                covered = cap - cumulative
            else:
                covered = ZERO
            cumulative += hours

            billable_hours = hours - covered
            contribution = billable_hours * rate
            exclusive, extracted = self.split_gst(contribution, session.includes_gst)
            charges.append(
                SessionCharge(
                    session=session,
                    hours=hours,
                    covered_hours=covered,
                    billable_hours=billable_hours,
                    rate=rate,
                    contribution=contribution,
                    exclusive_amount=exclusive,
                    gst_extracted=extracted,
                )
            )
        return charges

    def settle(
        self,
        client: RetainerClient,
        sessions: Sequence[BillableSession],
        expenses: Sequence[BillableExpense],
        period: PeriodRange | str,
    ) -> InvoiceTotals:
        kind = period.kind if isinstance(period, PeriodRange) else period
        retainer = retainer_terms_for(client, kind)
        charges = self.prorate(sessions, retainer.hours if retainer else None)

        retainer_fee = retainer.amount if retainer else ZERO
        session_subtotal = sum((charge.exclusive_amount for charge in charges), ZERO)
        extracted = sum((charge.gst_extracted for charge in charges), ZERO)
        expense_total = sum((_decimal(expense.amount) for expense in expenses), ZERO)
        subtotal = session_subtotal + retainer_fee + expense_total

        if self.config.gst_registered:
            gst = GST_RATE * subtotal + extracted
        else:
            gst = ZERO

        totals = InvoiceTotals(
            charges=tuple(charges),
            retainer=retainer,
            retainer_fee=retainer_fee,
            session_subtotal=session_subtotal,
            expense_total=expense_total,
            subtotal=subtotal,
            gst_extracted=extracted,
            gst=gst,
            total=subtotal + gst,
            gst_registered=self.config.gst_registered,
            covered_hours=sum((charge.covered_hours for charge in charges), ZERO),
        )
        LOGGER.debug(
            "billing_settled",
            period=kind,
            sessions=len(charges),
            expenses=len(expenses),
            retainer=bool(retainer),
            subtotal=str(subtotal),
            gst=str(gst),
        )
        return totals


__all__ = [
    "BillableAmountCalculator",
    "BillingConfig",
    "CENTS",
    "GST_DIVISOR",
    "GST_RATE",
    "InvoiceTotals",
    "RetainerTerms",
    "SessionCharge",
    "billable_amount",
    "chronological",
    "format_money",
    "retainer_terms_for",
    "session_hours",
    "session_rate",
    "to_cents",
]
