"""Tests for session charges, retainer proration and GST."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoice.db")

import pytest

from app.backend.src.core.config import Settings
from app.backend.src.models import Client, Expense, WorkSession
from app.backend.src.services.billing import (
    BillableAmountCalculator,
    BillingConfig,
    billable_amount,
    format_money,
    retainer_terms_for,
    session_hours,
    to_cents,
)
from app.backend.src.services.periods import period_range

MONDAY = datetime(2024, 3, 4, 9, 0)
WEEK = period_range("week", MONDAY)


def make_session(
    start: datetime,
    hours: float | None,
    rate: str | None = "100",
    includes_gst: bool = False,
    session_id: int | None = None,
) -> WorkSession:
    return WorkSession(
        id=session_id,
        client_id=1,
        start_time=start,
        end_time=None if hours is None else start + timedelta(hours=hours),
        hourly_rate=None if rate is None else Decimal(rate),
        includes_gst=includes_gst,
    )


def make_client(**retainer: object) -> Client:
    return Client(id=1, name="acme", hourly_rate=Decimal("100"), **retainer)


@pytest.fixture()
def registered() -> BillableAmountCalculator:
    return BillableAmountCalculator(BillingConfig(gst_registered=True))


@pytest.fixture()
def unregistered() -> BillableAmountCalculator:
    return BillableAmountCalculator(BillingConfig(gst_registered=False))


def test_two_hour_session_with_gst_registration(registered: BillableAmountCalculator) -> None:
    totals = registered.settle(make_client(), [make_session(MONDAY, 2)], [], WEEK)

    assert totals.rounded() == (Decimal("200.00"), Decimal("20.00"), Decimal("220.00"))
    assert totals.is_billable


def test_retainer_covers_first_hours_and_fee_is_added(unregistered: BillableAmountCalculator) -> None:
    client = make_client(
        retainer_amount=Decimal("500"), retainer_hours=Decimal("10"), retainer_basis="week"
    )

    totals = unregistered.settle(client, [make_session(MONDAY, 12)], [], WEEK)

    charge = totals.charges[0]
    assert charge.covered_hours == Decimal("10")
    assert charge.billable_hours == Decimal("2")
    assert charge.contribution == Decimal("200")
    assert totals.retainer_fee == Decimal("500")
    assert totals.subtotal == Decimal("700")
    assert totals.gst == Decimal("0")
    assert totals.total == Decimal("700")


def test_retainer_ignored_when_basis_differs_from_period(unregistered: BillableAmountCalculator) -> None:
    client = make_client(
        retainer_amount=Decimal("500"), retainer_hours=Decimal("10"), retainer_basis="month"
    )

    totals = unregistered.settle(client, [make_session(MONDAY, 12)], [], WEEK)

    assert totals.retainer is None
    assert totals.subtotal == Decimal("1200")


@pytest.mark.parametrize(
    "amount,hours,basis",
    [
        (Decimal("0"), Decimal("10"), "week"),
        (Decimal("500"), Decimal("0"), "week"),
        (None, Decimal("10"), "week"),
        (Decimal("500"), Decimal("10"), None),
    ],
)
def test_incomplete_retainer_terms_are_inactive(amount, hours, basis) -> None:  # type: ignore[no-untyped-def]
    client = make_client(retainer_amount=amount, retainer_hours=hours, retainer_basis=basis)

    assert retainer_terms_for(client, "week") is None


def test_retainer_fee_is_billed_even_without_sessions(registered: BillableAmountCalculator) -> None:
    client = make_client(
        retainer_amount=Decimal("500"), retainer_hours=Decimal("10"), retainer_basis="week"
    )

    totals = registered.settle(client, [], [], WEEK)

    assert totals.is_billable
    assert totals.subtotal == Decimal("500")
    assert totals.gst == Decimal("50")


def test_proration_sorts_sessions_and_conserves_hours(unregistered: BillableAmountCalculator) -> None:
    client = make_client(
        retainer_amount=Decimal("300"), retainer_hours=Decimal("10"), retainer_basis="week"
    )
    first = make_session(MONDAY, 4, session_id=3)
    second = make_session(MONDAY + timedelta(days=1), 5, session_id=1)
    third = make_session(MONDAY + timedelta(days=2), 3, session_id=2)
    fourth = make_session(MONDAY + timedelta(days=3), 2.5, session_id=4)

    totals = unregistered.settle(client, [fourth, third, first, second], [], WEEK)

    assert [charge.session for charge in totals.charges] == [first, second, third, fourth]
    assert [charge.covered_hours for charge in totals.charges] == [
        Decimal("4"),
        Decimal("5"),
        Decimal("1"),
        Decimal("0"),
    ]
    assert totals.charges[2].billable_hours == Decimal("2")
    assert totals.charges[3].billable_hours == Decimal("2.5")
    covered = sum((charge.covered_hours for charge in totals.charges), Decimal("0"))
    billable = sum((charge.billable_hours for charge in totals.charges), Decimal("0"))
    assert covered + billable == totals.total_hours == Decimal("14.5")
    assert totals.session_subtotal == Decimal("450")


def test_sessions_with_same_start_are_ordered_by_id(unregistered: BillableAmountCalculator) -> None:
    client = make_client(
        retainer_amount=Decimal("100"), retainer_hours=Decimal("1"), retainer_basis="week"
    )
    cheap = make_session(MONDAY, 1, rate="50", session_id=1)
    dear = make_session(MONDAY, 1, rate="200", session_id=2)

    totals = unregistered.settle(client, [dear, cheap], [], WEEK)

    assert totals.charges[0].session is cheap
    assert totals.charges[0].covered_hours == Decimal("1")
    assert totals.session_subtotal == Decimal("200")


def test_gst_inclusive_session_splits_exactly(registered: BillableAmountCalculator) -> None:
    exclusive, gst = registered.split_gst(Decimal("100"), includes_gst=True)

    assert exclusive + gst == Decimal("100")
    assert to_cents(exclusive) == Decimal("90.91")
    assert to_cents(gst) == Decimal("9.09")


def test_gst_inclusive_session_adds_extracted_gst_to_flat_rate(registered: BillableAmountCalculator) -> None:
    session = make_session(MONDAY, 2, rate="110", includes_gst=True)

    totals = registered.settle(make_client(), [session], [], WEEK)

    assert totals.session_subtotal == Decimal("200")
    assert totals.gst_extracted == Decimal("20")
    assert totals.gst == Decimal("0.10") * totals.subtotal + totals.gst_extracted


def test_gst_inclusive_flag_has_no_effect_when_not_registered(
    unregistered: BillableAmountCalculator,
) -> None:
    session = make_session(MONDAY, 2, rate="110", includes_gst=True)

    totals = unregistered.settle(make_client(), [session], [], WEEK)

    assert totals.subtotal == Decimal("220")
    assert totals.gst == Decimal("0")


def test_expenses_are_added_to_subtotal_before_gst(registered: BillableAmountCalculator) -> None:
    expenses = [
        Expense(amount=Decimal("45.50"), expense_date=MONDAY),
        Expense(amount=Decimal("4.50"), expense_date=MONDAY),
    ]

    totals = registered.settle(make_client(), [make_session(MONDAY, 1)], expenses, WEEK)

    assert totals.expense_total == Decimal("50.00")
    assert totals.subtotal == Decimal("150.00")
    assert to_cents(totals.gst) == Decimal("15.00")


def test_nothing_billable_without_work_or_retainer(registered: BillableAmountCalculator) -> None:
    totals = registered.settle(make_client(), [make_session(MONDAY, 2, rate=None)], [], WEEK)

    assert not totals.is_billable


def test_running_sessions_are_never_billable() -> None:
    running = make_session(MONDAY, None)

    assert session_hours(running) == Decimal("0")
    assert billable_amount(running) == Decimal("0")


def test_non_positive_rate_bills_nothing() -> None:
    assert billable_amount(make_session(MONDAY, 3, rate="0")) == Decimal("0")
    assert billable_amount(make_session(MONDAY, 3, rate="-20")) == Decimal("0")


def test_partial_hours_are_exact() -> None:
    session = make_session(MONDAY, 1.75, rate="80")

    assert session_hours(session) == Decimal("1.75")
    assert billable_amount(session) == Decimal("140")


@pytest.mark.parametrize(
    "value,expected",
    [
        (Decimal("0.005"), Decimal("0.01")),
        (Decimal("2.675"), Decimal("2.68")),
        (Decimal("-1.005"), Decimal("-1.01")),
        (Decimal("10"), Decimal("10.00")),
    ],
)
def test_to_cents_rounds_half_up(value: Decimal, expected: Decimal) -> None:
    assert to_cents(value) == expected


def test_format_money_uses_two_decimals_and_grouping() -> None:
    assert format_money(Decimal("1234.5")) == "$1,234.50"


def test_billing_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GST_REGISTERED", "true")
    monkeypatch.setenv("BILLING_BANK", "Example Bank")
    monkeypatch.setenv("BILLING_BSB", "062-000")

    config = BillingConfig.from_settings(Settings(_env_file=None))

    assert config.gst_registered is True
    assert config.bank == "Example Bank"
    assert config.bsb == "062-000"
    assert config.account_number is None
