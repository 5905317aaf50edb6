"""Client schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .invoice import PeriodKind


class ClientBillingProfile(BaseModel):
    """Contact and address details printed on invoices."""

    company_name: str | None = None
    contact_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address_line1: str | None = None
    address_line2: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    abn: str | None = None


class ClientCreate(ClientBillingProfile):
    name: str = Field(min_length=1, max_length=255)
    hourly_rate: Decimal = Field(default=Decimal("0"), ge=0)
    rates_include_gst: bool = False
    retainer_amount: Decimal | None = Field(default=None, ge=0)
    retainer_hours: Decimal | None = Field(default=None, ge=0)
    retainer_basis: PeriodKind | None = None


class ClientUpdate(ClientBillingProfile):
    """Partial update; only fields that are set are applied."""

    hourly_rate: Decimal | None = Field(default=None, ge=0)
    rates_include_gst: bool | None = None
    retainer_amount: Decimal | None = Field(default=None, ge=0)
    retainer_hours: Decimal | None = Field(default=None, ge=0)
    retainer_basis: PeriodKind | None = None

    @field_validator("hourly_rate", "rates_include_gst")
    @classmethod
    def _not_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("may be omitted but not set to null")
        return value


class ClientRead(ClientBillingProfile):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    hourly_rate: Decimal
    rates_include_gst: bool
    retainer_amount: Decimal | None
    retainer_hours: Decimal | None
    retainer_basis: str | None
    created_at: datetime | None = None


__all__ = ["ClientBillingProfile", "ClientCreate", "ClientRead", "ClientUpdate"]
