"""Invoice related endpoints."""

from __future__ import annotations

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.backend.src.db import get_session_dependency
from app.backend.src.schemas.invoice import (
    GenerateRequest,
    GenerationReport,
    InvoiceSummary,
    PaymentRequest,
    PaymentResult,
)
from app.backend.src.services.billing import BillingConfig
from app.backend.src.services.billing_store import SqlAlchemyBillingStore
from app.backend.src.services.errors import BillingError
from app.backend.src.services.invoice_lifecycle import InvoiceLifecycleManager
from app.backend.src.services.pdf_generation import ReportLabInvoiceRenderer

from .errors import http_error

LOGGER = structlog.get_logger(__name__)

router = APIRouter(prefix="/invoices", tags=["invoices"])


def get_lifecycle_manager(
    session: Annotated[Session, Depends(get_session_dependency)],
) -> InvoiceLifecycleManager:
    """Build a lifecycle manager bound to the request's database session."""

    return InvoiceLifecycleManager(
        store=SqlAlchemyBillingStore(session),
        renderer=ReportLabInvoiceRenderer(),
        config=BillingConfig.from_settings(),
    )


Manager = Annotated[InvoiceLifecycleManager, Depends(get_lifecycle_manager)]


@router.post("/generate", response_model=GenerationReport)
def generate_invoices(payload: GenerateRequest, manager: Manager) -> GenerationReport:
    """Create or reuse invoices for every client with unbilled work in the period."""

    try:
        return manager.generate(payload.period, payload.anchor_date, payload.client)
    except BillingError as exc:
        LOGGER.error("invoice_generate_request_failed", error=str(exc))
        raise http_error(exc) from exc


@router.post("/regenerate", response_model=GenerationReport)
def regenerate_invoices(payload: GenerateRequest, manager: Manager) -> GenerationReport:
    """Void the period's invoices and generate them again."""

    try:
        return manager.regenerate(payload.period, payload.anchor_date, payload.client)
    except BillingError as exc:
        LOGGER.error("invoice_regenerate_request_failed", error=str(exc))
        raise http_error(exc) from exc


@router.get("", response_model=list[InvoiceSummary])
def list_invoices(
    manager: Manager,
    client: str | None = None,
    unpaid_only: bool = False,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[InvoiceSummary]:
    try:
        return manager.list_invoices(client, unpaid_only=unpaid_only, limit=limit)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.get("/{invoice_id}", response_model=InvoiceSummary)
def get_invoice(invoice_id: int, manager: Manager) -> InvoiceSummary:
    try:
        return manager.get_invoice(invoice_id)
    except BillingError as exc:
        raise http_error(exc) from exc


@router.post("/{invoice_id}/payments", response_model=PaymentResult)
def pay_invoice(invoice_id: int, payload: PaymentRequest, manager: Manager) -> PaymentResult:
    """Record a payment; omit ``amount`` or send zero to settle the balance."""

    try:
        return manager.pay(invoice_id, payload.amount, payload.payment_date)
    except BillingError as exc:
        raise http_error(exc) from exc
