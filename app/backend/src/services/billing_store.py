"""Persistence operations used by the invoice lifecycle."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Protocol

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.backend.src.models import Client, Expense, Invoice, Payment, WorkSession
from app.backend.src.services.billing import to_cents
from app.backend.src.services.errors import ConflictError, NotFoundError, StorageError

LOGGER = structlog.get_logger(__name__)


class BillingStore(Protocol):
    """Storage collaborator consumed by :class:`InvoiceLifecycleManager`."""

    def unit_of_work(self) -> AbstractContextManager[None]: ...

    def get_client_by_name(self, name: str) -> Client | None: ...

    def list_clients_with_unbilled_work(self, start: datetime, end: datetime) -> list[Client]: ...

    def get_unbilled_sessions(self, client_id: int, start: datetime, end: datetime) -> list[WorkSession]: ...

    def get_unbilled_expenses(self, client_id: int, start: datetime, end: datetime) -> list[Expense]: ...

    def find_invoice(
        self, client_id: int, period_type: str, start: datetime, end: datetime
    ) -> Invoice | None: ...

    def find_invoices_for_period(
        self, period_type: str, start: datetime, end: datetime, client_id: int | None = None
    ) -> list[Invoice]: ...

    def create_invoice(self, invoice: Invoice) -> Invoice: ...

    def delete_invoice(self, invoice_id: int) -> None: ...

    def set_document_path(self, invoice_id: int, path: str) -> None: ...

    def link_session_to_invoice(self, session_id: int, invoice_id: int) -> None: ...

    def clear_session_invoice_links(self, invoice_id: int) -> int: ...

    def link_expense_to_invoice(self, expense_id: int, invoice_id: int) -> None: ...

    def clear_expense_invoice_links(self, invoice_id: int) -> int: ...

    def get_sessions_for_invoice(self, invoice_id: int) -> list[WorkSession]: ...

    def get_expenses_for_invoice(self, invoice_id: int) -> list[Expense]: ...

    def get_invoice_by_id(self, invoice_id: int) -> Invoice | None: ...

    def list_invoices(self, client_id: int | None = None, limit: int | None = None) -> list[Invoice]: ...

    def append_payment(self, payment: Payment) -> Payment: ...

    def sum_payments(self, invoice_id: int) -> Decimal: ...

    def latest_payment_date(self, invoice_id: int) -> datetime | None: ...


@contextmanager
def _storage_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        LOGGER.error("storage_operation_failed", operation=operation, error=str(exc))
        raise StorageError(operation, str(exc)) from exc


class SqlAlchemyBillingStore:
    """:class:`BillingStore` backed by a SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @contextmanager
    def unit_of_work(self) -> Iterator[None]:
        """Commit on success; roll back and re-raise on any failure."""

        try:
            yield
            with _storage_errors("commit"):
                self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # Clients -------------------------------------------------------------

    def get_client_by_name(self, name: str) -> Client | None:
        with _storage_errors("get_client_by_name"):
            return self.session.query(Client).filter(Client.name == name).one_or_none()

    def list_clients_with_unbilled_work(self, start: datetime, end: datetime) -> list[Client]:
        with _storage_errors("list_clients_with_unbilled_work"):
            session_clients = select(WorkSession.client_id).where(
                WorkSession.invoice_id.is_(None),
                WorkSession.end_time.is_not(None),
                WorkSession.start_time >= start,
                WorkSession.start_time <= end,
            )
            expense_clients = select(Expense.client_id).where(
                Expense.client_id.is_not(None),
                Expense.invoice_id.is_(None),
                Expense.expense_date >= start,
                Expense.expense_date <= end,
            )
            return (
                self.session.query(Client)
                .filter(Client.id.in_(session_clients) | Client.id.in_(expense_clients))
                .order_by(Client.name.asc())
                .all()
            )

    # Unbilled work --------------------------------------------------------

    def get_unbilled_sessions(self, client_id: int, start: datetime, end: datetime) -> list[WorkSession]:
        with _storage_errors("get_unbilled_sessions"):
            return (
                self.session.query(WorkSession)
                .filter(
                    WorkSession.client_id == client_id,
                    WorkSession.invoice_id.is_(None),
                    WorkSession.end_time.is_not(None),
                    WorkSession.start_time >= start,
                    WorkSession.start_time <= end,
                )
                .order_by(WorkSession.start_time.asc(), WorkSession.id.asc())
                .all()
            )

    def get_unbilled_expenses(self, client_id: int, start: datetime, end: datetime) -> list[Expense]:
        with _storage_errors("get_unbilled_expenses"):
            return (
                self.session.query(Expense)
                .filter(
                    Expense.client_id == client_id,
                    Expense.invoice_id.is_(None),
                    Expense.expense_date >= start,
                    Expense.expense_date <= end,
                )
                .order_by(Expense.expense_date.asc(), Expense.id.asc())
                .all()
            )

    # Invoices --------------------------------------------------------------

    def find_invoice(
        self, client_id: int, period_type: str, start: datetime, end: datetime
    ) -> Invoice | None:
        with _storage_errors("find_invoice"):
            return (
                self.session.query(Invoice)
                .filter(
                    Invoice.client_id == client_id,
                    Invoice.period_type == period_type,
                    Invoice.period_start_date == start,
                    Invoice.period_end_date == end,
                )
                .one_or_none()
            )

    def find_invoices_for_period(
        self, period_type: str, start: datetime, end: datetime, client_id: int | None = None
    ) -> list[Invoice]:
        with _storage_errors("find_invoices_for_period"):
            query = self.session.query(Invoice).filter(
                Invoice.period_type == period_type,
                Invoice.period_start_date == start,
                Invoice.period_end_date == end,
            )
            if client_id is not None:
                query = query.filter(Invoice.client_id == client_id)
            return query.order_by(Invoice.id.asc()).all()

    def create_invoice(self, invoice: Invoice) -> Invoice:
        with _storage_errors("create_invoice"):
            self.session.add(invoice)
            self.session.flush()
        return invoice

    def delete_invoice(self, invoice_id: int) -> None:
        with _storage_errors("delete_invoice"):
            invoice = self.session.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError(f"invoice {invoice_id} not found")
            self.session.delete(invoice)
            self.session.flush()

    def set_document_path(self, invoice_id: int, path: str) -> None:
        with _storage_errors("set_document_path"):
            invoice = self.session.get(Invoice, invoice_id)
            if invoice is None:
                raise NotFoundError(f"invoice {invoice_id} not found")
            invoice.document_path = path
            self.session.flush()

    def get_invoice_by_id(self, invoice_id: int) -> Invoice | None:
        with _storage_errors("get_invoice_by_id"):
            return self.session.get(Invoice, invoice_id)

    def list_invoices(self, client_id: int | None = None, limit: int | None = None) -> list[Invoice]:
        with _storage_errors("list_invoices"):
            query = self.session.query(Invoice)
            if client_id is not None:
                query = query.filter(Invoice.client_id == client_id)
            query = query.order_by(Invoice.generated_date.desc(), Invoice.id.desc())
            if limit:
                query = query.limit(limit)
            return query.all()

    # Links -------------------------------------------------------------------

    def link_session_to_invoice(self, session_id: int, invoice_id: int) -> None:
        with _storage_errors("link_session_to_invoice"):
            work_session = self.session.get(WorkSession, session_id)
            if work_session is None:
                raise NotFoundError(f"session {session_id} not found")
            if work_session.invoice_id not in (None, invoice_id):
                raise ConflictError(
                    f"session {session_id} is already linked to invoice {work_session.invoice_id}"
                )
            work_session.invoice_id = invoice_id
            self.session.flush()

    def clear_session_invoice_links(self, invoice_id: int) -> int:
        with _storage_errors("clear_session_invoice_links"):
            linked = self.session.query(WorkSession).filter(WorkSession.invoice_id == invoice_id).all()
            for work_session in linked:
                work_session.invoice_id = None
            self.session.flush()
            return len(linked)

    def link_expense_to_invoice(self, expense_id: int, invoice_id: int) -> None:
        with _storage_errors("link_expense_to_invoice"):
            expense = self.session.get(Expense, expense_id)
            if expense is None:
                raise NotFoundError(f"expense {expense_id} not found")
            if expense.invoice_id not in (None, invoice_id):
                raise ConflictError(
                    f"expense {expense_id} is already linked to invoice {expense.invoice_id}"
                )
            expense.invoice_id = invoice_id
            self.session.flush()

    def clear_expense_invoice_links(self, invoice_id: int) -> int:
        with _storage_errors("clear_expense_invoice_links"):
            linked = self.session.query(Expense).filter(Expense.invoice_id == invoice_id).all()
            for expense in linked:
                expense.invoice_id = None
            self.session.flush()
            return len(linked)

    def get_sessions_for_invoice(self, invoice_id: int) -> list[WorkSession]:
        with _storage_errors("get_sessions_for_invoice"):
            return (
                self.session.query(WorkSession)
                .filter(WorkSession.invoice_id == invoice_id)
                .order_by(WorkSession.start_time.asc(), WorkSession.id.asc())
                .all()
            )

    def get_expenses_for_invoice(self, invoice_id: int) -> list[Expense]:
        with _storage_errors("get_expenses_for_invoice"):
            return (
                self.session.query(Expense)
                .filter(Expense.invoice_id == invoice_id)
                .order_by(Expense.expense_date.asc(), Expense.id.asc())
                .all()
            )

    # Payments ------------------------------------------------------------------

    def append_payment(self, payment: Payment) -> Payment:
        with _storage_errors("append_payment"):
            self.session.add(payment)
            self.session.flush()
        return payment

    def sum_payments(self, invoice_id: int) -> Decimal:
        with _storage_errors("sum_payments"):
            total = (
                self.session.query(func.coalesce(func.sum(Payment.amount), 0))
                .filter(Payment.invoice_id == invoice_id)
                .scalar()
            )
        return to_cents(Decimal(str(total)))

    def latest_payment_date(self, invoice_id: int) -> datetime | None:
        with _storage_errors("latest_payment_date"):
            return (
                self.session.query(func.max(Payment.payment_date))
                .filter(Payment.invoice_id == invoice_id)
                .scalar()
            )


__all__ = ["BillingStore", "SqlAlchemyBillingStore"]
