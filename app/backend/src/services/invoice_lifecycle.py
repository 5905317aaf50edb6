"""Invoice lifecycle: generate, regenerate, pay and list invoices.

Clients are processed one at a time. Each client's select, settle, create,
link and render steps share one storage unit of work, so a failure for one
client rolls back only that client and is reported in the run summary.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime, time
from decimal import Decimal
from time import monotonic, perf_counter

import structlog

from app.backend.src.models import Client, Expense, Invoice, Payment
from app.backend.src.schemas.invoice import (
    ClientOutcome,
    GenerationReport,
    InvoiceSummary,
    PaymentResult,
)
from app.backend.src.services.billing import (
    CENTS,
    ZERO,
    BillableAmountCalculator,
    BillingConfig,
    InvoiceTotals,
    to_cents,
)
from app.backend.src.services.billing_store import BillingStore
from app.backend.src.services.errors import (
    AlreadyPaidError,
    BillingError,
    ConsistencyError,
    InvalidAmountError,
    InvoiceNotFoundError,
    PaymentExceedsBalanceError,
    UnknownClientError,
)
from app.backend.src.services.metrics import (
    billing_run_duration_seconds,
    invoice_payments_total,
    invoices_generated_total,
)
from app.backend.src.services.pdf_generation import InvoiceDocument, InvoiceRenderer
from app.backend.src.services.periods import PeriodRange, parse_anchor_date, period_range
from app.backend.src.services.storage import sanitize_file_name

LOGGER = structlog.get_logger(__name__)

PAYMENT_TIME = time(12, 0)


def build_invoice_number(client_name: str, period: str, anchor: date) -> str:
    return sanitize_file_name(f"INV-{client_name}-{period}-{anchor:%Y-%m-%d}")


def build_invoice_filename(client_name: str, period: str, anchor: date) -> str:
    return sanitize_file_name(f"invoice_{client_name}_{period}_{anchor:%Y-%m-%d}.pdf")


def payment_status(total: Decimal, paid: Decimal) -> str:
    if paid >= total:
        return "paid"
    if paid > ZERO:
        return "partially paid"
    return "unpaid"


class InvoiceLifecycleManager:
    """Orchestrates invoice generation, voiding and payments for a billing store."""

    def __init__(
        self,
        store: BillingStore,
        renderer: InvoiceRenderer,
        config: BillingConfig,
        calculator: BillableAmountCalculator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.renderer = renderer
        self.config = config
        self.calculator = calculator or BillableAmountCalculator(config)
        self._clock = clock or datetime.now

    # Generate --------------------------------------------------------------------

    def generate(
        self,
        period: str,
        anchor: date | datetime | str | None = None,
        client_name: str | None = None,
        *,
        deadline: float | None = None,
    ) -> GenerationReport:
        """Create or reuse one invoice per eligible client for the period around ``anchor``.

        ``deadline`` is a :func:`time.monotonic` timestamp; it is checked
        between clients only, so a client that has started always completes.
        """

        started = perf_counter()
        anchor_day = parse_anchor_date(anchor, today=self._clock().date())
        span = period_range(period, anchor_day)
        logger = LOGGER.bind(period=span.kind, anchor=anchor_day.isoformat(), client=client_name)
        logger.info("invoice_generation_start", period_start=span.start.isoformat())

        clients = self._clients_in_scope(span, client_name)
        report = GenerationReport(
            period_type=span.kind,
            period_start=span.start,
            period_end=span.end,
        )
        for client in clients:
            if deadline is not None and monotonic() >= deadline:
                outcome = ClientOutcome(
                    client=client.name,
                    status="cancelled",
                    message="deadline reached before this client started",
                )
            else:
                try:
                    outcome = self._generate_for_client(client, span, anchor_day)
                except ConsistencyError:
                    raise
                except BillingError as exc:
                    logger.warning(
                        "invoice_generation_failed",
                        client_name=client.name,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                    outcome = ClientOutcome(client=client.name, status="failed", message=str(exc))
            invoices_generated_total.labels(outcome=outcome.status).inc()
            logger.info(
                "invoice_generation_client_outcome",
                client_name=client.name,
                status=outcome.status,
                invoice_number=outcome.invoice_number,
            )
            report.outcomes.append(outcome)

        report.generated_count = sum(
            1 for outcome in report.outcomes if outcome.status in {"created", "reused"}
        )
        report.message = self._compose_run_message(report)
        billing_run_duration_seconds.labels(operation="generate").observe(perf_counter() - started)
        logger.info(
            "invoice_generation_complete",
            generated=report.generated_count,
            failed=len(report.failed),
        )
        return report

    def _clients_in_scope(self, span: PeriodRange, client_name: str | None) -> list[Client]:
        if client_name:
            return [self._require_client(client_name)]
        return self.store.list_clients_with_unbilled_work(span.start, span.end)

    def _require_client(self, client_name: str) -> Client:
        client = self.store.get_client_by_name(client_name)
        if client is None:
            raise UnknownClientError(client_name)
        return client

    def _generate_for_client(self, client: Client, span: PeriodRange, anchor_day: date) -> ClientOutcome:
        with self.store.unit_of_work():
            sessions = self.store.get_unbilled_sessions(client.id, span.start, span.end)
            expenses = self.store.get_unbilled_expenses(client.id, span.start, span.end)
            existing = self.store.find_invoice(client.id, span.kind, span.start, span.end)

            if existing is not None:
                if sessions or expenses:
                    LOGGER.warning(
                        "unbilled_work_not_attached",
                        client_name=client.name,
                        invoice_number=existing.invoice_number,
                        sessions=len(sessions),
                        expenses=len(expenses),
                        hint="regenerate the period to include new work",
                    )
                linked_sessions = self.store.get_sessions_for_invoice(existing.id)
                linked_expenses = self.store.get_expenses_for_invoice(existing.id)
                totals = self.calculator.settle(client, linked_sessions, linked_expenses, span)
                path = self._render(client, existing, totals, linked_expenses, anchor_day)
                return self._outcome(client, existing, "reused", path)

            totals = self.calculator.settle(client, sessions, expenses, span)
            if not totals.is_billable:
                return ClientOutcome(
                    client=client.name,
                    status="skipped",
                    message="no billable amount for this period",
                )

            subtotal, gst, total = totals.rounded()
            invoice = self.store.create_invoice(
                Invoice(
                    client_id=client.id,
                    client=client,
                    invoice_number=build_invoice_number(client.name, span.kind, anchor_day),
                    period_type=span.kind,
                    period_start_date=span.start,
                    period_end_date=span.end,
                    subtotal_amount=subtotal,
                    gst_amount=gst,
                    total_amount=total,
                    generated_date=self._clock(),
                )
            )
            for work_session in sessions:
                self.store.link_session_to_invoice(work_session.id, invoice.id)
            for expense in expenses:
                self.store.link_expense_to_invoice(expense.id, invoice.id)

            path = self._render(client, invoice, totals, expenses, anchor_day)
            return self._outcome(client, invoice, "created", path)

    def _render(
        self,
        client: Client,
        invoice: Invoice,
        totals: InvoiceTotals,
        expenses: list[Expense],
        anchor_day: date,
    ) -> str:
        document = InvoiceDocument(
            client=client,
            invoice_number=invoice.invoice_number,
            filename=build_invoice_filename(client.name, invoice.period_type, anchor_day),
            issue_date=invoice.generated_date,
            period_type=invoice.period_type,
            period_start=invoice.period_start_date,
            period_end=invoice.period_end_date,
            charges=totals.charges,
            expenses=expenses,
            retainer_fee=totals.retainer_fee,
            retainer_hours=totals.retainer.hours if totals.retainer else None,
            subtotal=Decimal(invoice.subtotal_amount),
            gst=Decimal(invoice.gst_amount),
            total=Decimal(invoice.total_amount),
            config=self.config,
        )
        path = str(self.renderer.render(document))
        self.store.set_document_path(invoice.id, path)
        return path

    @staticmethod
    def _outcome(client: Client, invoice: Invoice, status: str, path: str) -> ClientOutcome:
        return ClientOutcome(
            client=client.name,
            status=status,
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            subtotal=Decimal(invoice.subtotal_amount),
            gst=Decimal(invoice.gst_amount),
            total=Decimal(invoice.total_amount),
            document_path=path,
        )

    @staticmethod
    def _compose_run_message(report: GenerationReport) -> str:
        failed = report.failed
        if report.generated_count and failed:
            names = ", ".join(outcome.client for outcome in failed)
            return f"Generated {report.generated_count} invoice(s). Failed: {names}."
        if report.generated_count:
            return f"Generated {report.generated_count} invoice(s)."
        if failed:
            names = ", ".join(outcome.client for outcome in failed)
            return f"No invoices were generated. Failed: {names}."
        return "No invoices were generated."

    # Regenerate ------------------------------------------------------------------

    def regenerate(
        self,
        period: str,
        anchor: date | datetime | str | None = None,
        client_name: str | None = None,
        *,
        deadline: float | None = None,
    ) -> GenerationReport:
        """Void the period's invoices and generate them again from scratch."""

        started = perf_counter()
        anchor_day = parse_anchor_date(anchor, today=self._clock().date())
        span = period_range(period, anchor_day)
        client_id = self._require_client(client_name).id if client_name else None
        logger = LOGGER.bind(period=span.kind, anchor=anchor_day.isoformat(), client=client_name)

        voided: list[str] = []
        for invoice in self.store.find_invoices_for_period(span.kind, span.start, span.end, client_id):
            self._void_invoice(invoice, voided, logger)

        billing_run_duration_seconds.labels(operation="regenerate").observe(perf_counter() - started)
        report = self.generate(span.kind, anchor_day, client_name, deadline=deadline)
        report.voided_invoice_numbers = voided
        return report

    def _void_invoice(self, invoice: Invoice, voided: list[str], logger) -> None:  # type: ignore[no-untyped-def]
        invoice_id = invoice.id
        invoice_number = invoice.invoice_number
        try:
            with self.store.unit_of_work():
                paid = self.store.sum_payments(invoice_id)
                if paid > ZERO:
                    logger.warning(
                        "voiding_invoice_with_payments",
                        invoice_number=invoice_number,
                        amount_paid=str(paid),
                    )
                sessions = self.store.clear_session_invoice_links(invoice_id)
                expenses = self.store.clear_expense_invoice_links(invoice_id)
                self.store.delete_invoice(invoice_id)
        except BillingError as exc:
            logger.error(
                "invoice_void_incomplete",
                invoice_number=invoice_number,
                voided_before_failure=voided,
                error=str(exc),
            )
            raise ConsistencyError(
                f"voiding invoice {invoice_number} did not complete; "
                "reconcile its session and expense links manually"
            ) from exc
        logger.info(
            "invoice_voided",
            invoice_number=invoice_number,
            sessions_unlinked=sessions,
            expenses_unlinked=expenses,
        )
        voided.append(invoice_number)

    # Payments ----------------------------------------------------------------------

    def default_payment_date(self) -> datetime:
        return datetime.combine(self._clock().date(), PAYMENT_TIME)

    def pay(
        self,
        invoice_id: int,
        amount: Decimal | int | float | str | None = None,
        payment_date: datetime | None = None,
    ) -> PaymentResult:
        """Record a payment; ``None`` or zero settles the remaining balance."""

        with self.store.unit_of_work():
            invoice = self.store.get_invoice_by_id(invoice_id)
            if invoice is None:
                raise InvoiceNotFoundError(invoice_id)

            total = to_cents(Decimal(invoice.total_amount))
            already_paid = self.store.sum_payments(invoice.id)
            remaining = total - already_paid
            if remaining <= ZERO:
                raise AlreadyPaidError(invoice.invoice_number)

            value = self._payment_amount(amount, remaining)
            when = payment_date or self.default_payment_date()
            self.store.append_payment(
                Payment(invoice_id=invoice.id, amount=value, payment_date=when)
            )

        amount_paid = already_paid + value
        status = "fully paid" if amount_paid >= total else "partially paid"
        invoice_payments_total.labels(status=status).inc()
        LOGGER.info(
            "invoice_payment_recorded",
            invoice_number=invoice.invoice_number,
            amount=str(value),
            amount_paid=str(amount_paid),
            status=status,
        )
        return PaymentResult(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            amount=value,
            amount_paid=amount_paid,
            total_amount=total,
            remaining=total - amount_paid,
            payment_date=when,
            status=status,
        )

    @staticmethod
    def _payment_amount(amount: Decimal | int | float | str | None, remaining: Decimal) -> Decimal:
        if amount is None:
            return remaining
        try:
            raw = amount if isinstance(amount, Decimal) else Decimal(str(amount))
        except ArithmeticError as exc:
            raise InvalidAmountError(f"invalid payment amount {amount!r}") from exc
        if not raw.is_finite():
            raise InvalidAmountError(f"invalid payment amount {amount!r}")
        if raw == ZERO:
            return remaining
        if raw < ZERO:
            raise InvalidAmountError("payment amount must be positive")
        if raw != raw.quantize(CENTS):
            raise InvalidAmountError(f"payment amount {raw} has more than two decimal places")
        if raw > remaining:
            raise PaymentExceedsBalanceError(
                f"payment {raw} exceeds remaining balance {remaining}"
            )
        return to_cents(raw)

    # Listing ------------------------------------------------------------------------

    def list_invoices(
        self,
        client_name: str | None = None,
        unpaid_only: bool = False,
        limit: int | None = 50,
    ) -> list[InvoiceSummary]:
        client_id = self._require_client(client_name).id if client_name else None
        summaries = [self._summarize(invoice) for invoice in self.store.list_invoices(client_id)]
        if unpaid_only:
            summaries = [summary for summary in summaries if summary.status != "paid"]
        if limit:
            summaries = summaries[:limit]
        return summaries

    def get_invoice(self, invoice_id: int) -> InvoiceSummary:
        invoice = self.store.get_invoice_by_id(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return self._summarize(invoice)

    def _summarize(self, invoice: Invoice) -> InvoiceSummary:
        total = to_cents(Decimal(invoice.total_amount))
        paid = self.store.sum_payments(invoice.id)
        return InvoiceSummary(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            client_name=invoice.client.name,
            period_type=invoice.period_type,
            period_start_date=invoice.period_start_date,
            period_end_date=invoice.period_end_date,
            subtotal_amount=to_cents(Decimal(invoice.subtotal_amount)),
            gst_amount=to_cents(Decimal(invoice.gst_amount)),
            total_amount=total,
            amount_paid=paid,
            balance=total - paid,
            payment_date=self.store.latest_payment_date(invoice.id),
            status=payment_status(total, paid),
            generated_date=invoice.generated_date,
            document_path=invoice.document_path,
        )


__all__ = [
    "InvoiceLifecycleManager",
    "build_invoice_filename",
    "build_invoice_number",
    "payment_status",
]
