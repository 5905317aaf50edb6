"""Service layer functions for recording expenses."""

from __future__ import annotations

from datetime import datetime

import structlog
from sqlalchemy.orm import Session

from app.backend.src.models import Expense
from app.backend.src.schemas.expense import ExpenseCreate, ExpenseUpdate
from app.backend.src.services.clients import get_client_or_error
from app.backend.src.services.errors import ConflictError, NotFoundError

LOGGER = structlog.get_logger(__name__)


def create_expense(session: Session, payload: ExpenseCreate) -> Expense:
    client_id = get_client_or_error(session, payload.client).id if payload.client else None
    expense = Expense(
        client_id=client_id,
        amount=payload.amount,
        expense_date=payload.expense_date or datetime.now(),
        reference=payload.reference,
        description=payload.description,
    )
    session.add(expense)
    session.commit()
    session.refresh(expense)
    LOGGER.info("expense_recorded", expense_id=expense.id, amount=str(expense.amount))
    return expense


def list_expenses(
    session: Session,
    client_name: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Expense]:
    """Return expenses, optionally narrowed to one client and a date range."""

    query = session.query(Expense)
    if client_name:
        query = query.filter(Expense.client_id == get_client_or_error(session, client_name).id)
    if start is not None:
        query = query.filter(Expense.expense_date >= start)
    if end is not None:
        query = query.filter(Expense.expense_date <= end)
    return query.order_by(Expense.expense_date.desc(), Expense.id.desc()).all()


def update_expense(session: Session, expense_id: int, payload: ExpenseUpdate) -> Expense:
    """Edit an unbilled expense. Billed expenses change only through regeneration."""

    expense = session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError(f"expense {expense_id} not found")
    if expense.invoice_id is not None:
        raise ConflictError(f"expense {expense_id} is already on invoice {expense.invoice_id}")

    changes = payload.model_dump(exclude_unset=True)
    if "client" in changes:
        client_name = changes.pop("client")
        expense.client_id = get_client_or_error(session, client_name).id if client_name else None
    for field, value in changes.items():
        setattr(expense, field, value)
    session.add(expense)
    session.commit()
    session.refresh(expense)
    return expense


__all__ = ["create_expense", "list_expenses", "update_expense"]
