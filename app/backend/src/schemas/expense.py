"""Expense schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExpenseCreate(BaseModel):
    amount: Decimal = Field(gt=0)
    expense_date: datetime | None = None
    client: str | None = None
    reference: str | None = None
    description: str | None = None


class ExpenseUpdate(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    expense_date: datetime | None = None
    client: str | None = None
    reference: str | None = None
    description: str | None = None

    @field_validator("amount", "expense_date")
    @classmethod
    def _not_null(cls, value: object) -> object:
        # Omit the field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class ExpenseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int | None
    amount: Decimal
    expense_date: datetime
    reference: str | None
    description: str | None
    invoice_id: int | None


__all__ = ["ExpenseCreate", "ExpenseRead", "ExpenseUpdate"]
