"""Expense endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.models import Expense
from app.backend.src.schemas.expense import ExpenseCreate, ExpenseRead, ExpenseUpdate
from app.backend.src.services import expenses as expense_service
from app.backend.src.services.errors import BillingError

from .errors import http_error

router = APIRouter(prefix="/expenses", tags=["expenses"])

DbSession = Annotated[Session, Depends(get_session_dependency)]


@router.post("", response_model=ExpenseRead, status_code=status.HTTP_201_CREATED)
def create_expense(payload: ExpenseCreate, session: DbSession) -> Expense:
    try:
        return expense_service.create_expense(session, payload)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("", response_model=list[ExpenseRead])
def list_expenses(
    session: DbSession,
    client: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
) -> list[Expense]:
    try:
        return expense_service.list_expenses(session, client, start, end)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.patch("/{expense_id}", response_model=ExpenseRead)
def update_expense(expense_id: int, payload: ExpenseUpdate, session: DbSession) -> Expense:
    """Edit an expense that has not been invoiced yet."""

    try:
        return expense_service.update_expense(session, expense_id, payload)
    except BillingError as exc:
        raise http_error(exc) from exc
