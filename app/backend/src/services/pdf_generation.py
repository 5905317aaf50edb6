"""Utilities for generating invoice PDFs."""

from __future__ import annotations

import textwrap
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from time import perf_counter
from typing import Protocol

import structlog
from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.backend.src.models import Client, Expense
from app.backend.src.services.billing import (
    BillingConfig,
    SessionCharge,
    format_money,
    to_cents,
)
from app.backend.src.services.errors import RenderingError
from app.backend.src.services.metrics import pdf_generation_seconds
from app.backend.src.services.storage import save_invoice_pdf

LOGGER = structlog.get_logger(__name__)

DESCRIPTION_WIDTH = 28


@dataclass(frozen=True, slots=True)
class InvoiceDocument:
    """Everything needed to lay out one invoice."""

    client: Client
    invoice_number: str
    filename: str
    issue_date: datetime
    period_type: str
    period_start: datetime
    period_end: datetime
    charges: Sequence[SessionCharge]
    expenses: Sequence[Expense]
    retainer_fee: Decimal
    retainer_hours: Decimal | None
    subtotal: Decimal
    gst: Decimal
    total: Decimal
    config: BillingConfig = field(default_factory=BillingConfig)

    @property
    def session_total(self) -> Decimal:
        return sum((charge.contribution for charge in self.charges), Decimal("0"))

    @property
    def expense_total(self) -> Decimal:
        return sum((Decimal(expense.amount) for expense in self.expenses), Decimal("0"))


class InvoiceRenderer(Protocol):
    """Rendering collaborator: turns an :class:`InvoiceDocument` into a file."""

    def render(self, document: InvoiceDocument) -> Path: ...


def format_client_name(name: str) -> str:
    """Turn a client handle such as ``acme-corp`` into ``Acme Corp``."""

    words = name.replace("-", " ").replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def format_client_address(client: Client) -> list[str]:
    lines = [line for line in (client.address_line1, client.address_line2) if line]
    locality = " ".join(part for part in (client.city, client.state, client.postal_code) if part)
    if locality:
        lines.append(locality)
    if client.country:
        lines.append(client.country)
    return lines


def wrap_description_text(text: str | None, width: int = DESCRIPTION_WIDTH) -> list[str]:
    if not text:
        return [""]
    lines: list[str] = []
    for paragraph in text.splitlines():
        lines.extend(textwrap.wrap(paragraph, width=width) or [""])
    return lines or [""]


def _format_hours(hours: Decimal) -> str:
    total_minutes = int(to_cents(hours * 60))
    return f"{total_minutes // 60}h {total_minutes % 60:02d}m"


def render_invoice_pdf(document: InvoiceDocument) -> bytes:
    """Lay out ``document`` on A4 pages and return the PDF bytes."""

    buffer = BytesIO()
    pdf_canvas = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    margin = 50
    header_height = 110
    primary_color = HexColor("#0F172A")
    accent_color = HexColor("#6366F1")
    muted_text = HexColor("#64748B")
    light_panel = HexColor("#F8FAFC")
    table_header_color = HexColor("#EEF2FF")
    border_color = HexColor("#E2E8F0")

    client = document.client
    config = document.config
    client_label = format_client_name(client.company_name or client.name)
    issue_date = document.issue_date.strftime("%d %b %Y")
    period_label = (
        f"{document.period_start:%d %b %Y} to {document.period_end:%d %b %Y}"
    )

    def draw_brand_header() -> float:
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.rect(0, height - header_height, width, header_height, fill=1, stroke=0)

        pdf_canvas.setFont("Helvetica-Bold", 18)
        pdf_canvas.setFillColor(HexColor("#FFFFFF"))
        pdf_canvas.drawString(margin, height - 50, f"Invoice - {client_label}")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(HexColor("#CBD5F5"))
        if config.company_name:
            pdf_canvas.drawString(margin, height - 70, config.company_name)
        if config.abn:
            registration = f"ABN {config.abn}"
            if config.acn:
                registration += f" (includes ACN {config.acn})"
            pdf_canvas.drawString(margin, height - 84, registration)

        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.setFillColor(HexColor("#FFFFFF"))
        pdf_canvas.drawRightString(width - margin, height - 50, document.invoice_number)
        pdf_canvas.setFont("Helvetica", 9)
        pdf_canvas.setFillColor(HexColor("#E2E8F0"))
        pdf_canvas.drawRightString(width - margin, height - 70, f"Issue Date: {issue_date}")
        pdf_canvas.drawRightString(width - margin, height - 84, period_label)

        pdf_canvas.setFillColor(primary_color)
        return height - header_height - 30

    def draw_bill_to(top: float) -> float:
        left_x = margin + 16
        right_x = width / 2 + 16
        left_lines = [
            line
            for line in (client.contact_name, client.company_name or client_label)
            if line
        ] + format_client_address(client)
        right_lines = [
            line
            for line in (
                client.email,
                client.phone,
                f"ABN {client.abn}" if client.abn else None,
            )
            if line
        ]
        card_height = 36 + 14 * max(len(left_lines), len(right_lines), 1)

        pdf_canvas.setFillColor(light_panel)
        pdf_canvas.roundRect(margin, top - card_height, width - 2 * margin, card_height, 10, fill=1, stroke=0)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawString(left_x, top - 20, "Bill To")
        pdf_canvas.setFont("Helvetica", 10)
        pdf_canvas.setFillColor(muted_text)
        for idx, line in enumerate(left_lines):
            pdf_canvas.drawString(left_x, top - 36 - 14 * idx, line)
        for idx, line in enumerate(right_lines):
            pdf_canvas.drawString(right_x, top - 36 - 14 * idx, line)
        return top - card_height - 24

    def draw_payment_details(top: float) -> float:
        rows = [
            ("Bank", config.bank),
            ("Account Name", config.account_name),
            ("Account Number", config.account_number),
            ("BSB", config.bsb),
        ]
        rows = [(label, value) for label, value in rows if value]
        if not rows:
            return top
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.drawString(margin, top, "Payment Details")
        pdf_canvas.setFont("Helvetica", 10)
        for idx, (label, value) in enumerate(rows, start=1):
            pdf_canvas.setFillColor(muted_text)
            pdf_canvas.drawString(margin, top - 15 * idx, label)
            pdf_canvas.setFillColor(primary_color)
            pdf_canvas.drawString(margin + 110, top - 15 * idx, value)
        return top - 15 * len(rows) - 30

    def draw_totals(top: float) -> float:
        label_x = width - margin - 140
        value_x = width - margin
        lines: list[tuple[str, str]] = []
        if document.retainer_fee > 0:
            lines.append((f"Retainer ({document.period_type})", format_money(document.retainer_fee)))
        if document.charges:
            lines.append(("Session Work", format_money(document.session_total)))
        if document.expenses:
            lines.append(("Expenses", format_money(document.expense_total)))
        lines.append(("Subtotal", format_money(document.subtotal)))
        if config.gst_registered:
            lines.append(("GST (10%)", format_money(document.gst)))

        pdf_canvas.setFont("Helvetica", 10)
        y = top
        for label, value in lines:
            pdf_canvas.setFillColor(muted_text)
            pdf_canvas.drawRightString(label_x, y, label)
            pdf_canvas.setFillColor(primary_color)
            pdf_canvas.drawRightString(value_x, y, value)
            y -= 16

        pdf_canvas.setStrokeColor(border_color)
        pdf_canvas.line(label_x - 80, y + 8, value_x, y + 8)
        pdf_canvas.setFont("Helvetica-Bold", 11)
        pdf_canvas.setFillColor(muted_text)
        pdf_canvas.drawRightString(label_x, y - 10, "Total")
        pdf_canvas.setFont("Helvetica-Bold", 14)
        pdf_canvas.setFillColor(accent_color)
        pdf_canvas.drawRightString(value_x, y - 10, format_money(document.total))
        return y - 40

    session_columns = [margin + 8, margin + 110, margin + 212, margin + 280, margin + 340, width - margin - 8]

    def draw_table_header(top: float, headers: Sequence[str], columns: Sequence[float]) -> float:
        row_height = 24
        pdf_canvas.setFillColor(table_header_color)
        pdf_canvas.roundRect(margin, top - row_height, width - 2 * margin, row_height, 6, fill=1, stroke=0)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.setFont("Helvetica-Bold", 9)
        for idx, header in enumerate(headers):
            if idx == len(headers) - 1:
                pdf_canvas.drawRightString(columns[idx], top - 15, header)
            else:
                pdf_canvas.drawString(columns[idx], top - 15, header)
        pdf_canvas.setFont("Helvetica", 9)
        return top - row_height - 14

    def new_page(title: str) -> float:
        pdf_canvas.showPage()
        pdf_canvas.setFont("Helvetica-Bold", 13)
        pdf_canvas.setFillColor(primary_color)
        pdf_canvas.drawString(margin, height - 60, title)
        return height - 80

    y_position = draw_brand_header()
    y_position = draw_bill_to(y_position)
    y_position = draw_payment_details(y_position)
    draw_totals(y_position)

    if document.charges:
        title = f"Session Details ({period_label})"
        y_position = new_page(title)
        session_headers = ["Start", "End", "Duration", "Rate", "Description", "Amount"]
        y_position = draw_table_header(y_position, session_headers, session_columns)
        for charge in document.charges:
            session = charge.session
            description = wrap_description_text(getattr(session, "description", None))
            row_height = 14 * len(description) + 6
            if y_position - row_height < 70:
                y_position = new_page(title)
                y_position = draw_table_header(y_position, session_headers, session_columns)

            rate_label = "$0*" if charge.fully_covered else format_money(charge.rate)
            pdf_canvas.setFillColor(primary_color)
            pdf_canvas.drawString(session_columns[0], y_position, f"{session.start_time:%d/%m %H:%M}")
            end_label = f"{session.end_time:%d/%m %H:%M}" if session.end_time else "-"
            pdf_canvas.drawString(session_columns[1], y_position, end_label)
            pdf_canvas.drawString(session_columns[2], y_position, _format_hours(charge.hours))
            pdf_canvas.drawString(session_columns[3], y_position, rate_label)
            for idx, line in enumerate(description):
                pdf_canvas.drawString(session_columns[4], y_position - 14 * idx, line)
            pdf_canvas.drawRightString(session_columns[5], y_position, format_money(charge.contribution))
            y_position -= row_height

        if document.retainer_hours and any(charge.covered_hours > 0 for charge in document.charges):
            pdf_canvas.setFont("Helvetica-Oblique", 9)
            pdf_canvas.setFillColor(muted_text)
            pdf_canvas.drawString(
                margin,
                y_position - 10,
                f"* First {document.retainer_hours.normalize():f} hours covered by {document.period_type} retainer",
            )
            y_position -= 30

    if document.expenses:
        expense_columns = [margin + 8, margin + 110, width - margin - 8]
        if not document.charges or y_position < 160:
            y_position = new_page("Expenses")
        else:
            pdf_canvas.setFont("Helvetica-Bold", 13)
            pdf_canvas.setFillColor(primary_color)
            pdf_canvas.drawString(margin, y_position - 10, "Expenses")
            y_position -= 30
        y_position = draw_table_header(y_position, ["Date", "Reference", "Amount"], expense_columns)
        for expense in document.expenses:
            if y_position < 70:
                y_position = new_page("Expenses")
                y_position = draw_table_header(y_position, ["Date", "Reference", "Amount"], expense_columns)
            pdf_canvas.setFillColor(primary_color)
            pdf_canvas.drawString(expense_columns[0], y_position, f"{expense.expense_date:%d %b %Y}")
            pdf_canvas.drawString(expense_columns[1], y_position, expense.reference or expense.description or "")
            pdf_canvas.drawRightString(expense_columns[2], y_position, format_money(Decimal(expense.amount)))
            y_position -= 18

    pdf_canvas.save()
    buffer.seek(0)
    return buffer.read()


class ReportLabInvoiceRenderer:
    """:class:`InvoiceRenderer` that writes reportlab PDFs to local storage."""

    def __init__(self, output_dir: Path | None = None) -> None:
        self.output_dir = output_dir

    def render(self, document: InvoiceDocument) -> Path:
        start = perf_counter()
        try:
            content = render_invoice_pdf(document)
            path = save_invoice_pdf(content, document.filename, self.output_dir)
        except Exception as exc:
            LOGGER.error(
                "invoice_pdf_failed",
                invoice_number=document.invoice_number,
                error=str(exc),
            )
            raise RenderingError(f"failed to render {document.invoice_number}: {exc}") from exc
        finally:
            pdf_generation_seconds.observe(perf_counter() - start)
        LOGGER.info("invoice_pdf_written", invoice_number=document.invoice_number, path=str(path))
        return path


__all__ = [
    "InvoiceDocument",
    "InvoiceRenderer",
    "ReportLabInvoiceRenderer",
    "format_client_address",
    "format_client_name",
    "render_invoice_pdf",
    "wrap_description_text",
]
