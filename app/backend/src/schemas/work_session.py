"""Work session schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .invoice import PeriodKind


class SessionStart(BaseModel):
    client: str
    description: str | None = None
    start_time: datetime | None = None
    includes_gst: bool | None = None


class SessionStop(BaseModel):
    end_time: datetime | None = None


class SessionCreate(BaseModel):
    """A session recorded after the fact with explicit times."""

    client: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    includes_gst: bool | None = None

    @model_validator(mode="after")
    def _end_after_start(self) -> "SessionCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SessionNote(BaseModel):
    note: str = Field(min_length=1)


class WorkSessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: int
    start_time: datetime
    end_time: datetime | None
    hourly_rate: Decimal | None
    includes_gst: bool
    description: str | None
    notes: str | None
    invoice_id: int | None


class HoursSummary(BaseModel):
    client: str | None
    period_type: PeriodKind | None
    start: datetime
    end: datetime
    session_count: int
    total_hours: Decimal
    billable_amount: Decimal


class SessionDeleteResult(BaseModel):
    deleted: int
    skipped_billed: int


__all__ = [
    "HoursSummary",
    "SessionCreate",
    "SessionDeleteResult",
    "SessionNote",
    "SessionStart",
    "SessionStop",
    "WorkSessionRead",
]
