"""Prometheus metric definitions for billing runs."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

invoices_generated_total = Counter(
    "invoices_generated_total",
    "Per-client invoice generation outcomes.",
    labelnames=["outcome"],
)

invoice_payments_total = Counter(
    "invoice_payments_total",
    "Payments applied to invoices by resulting status.",
    labelnames=["status"],
)

billing_run_duration_seconds = Histogram(
    "billing_run_duration_seconds",
    "Duration of generate and regenerate runs in seconds.",
    labelnames=["operation"],
)

pdf_generation_seconds = Histogram(
    "pdf_generation_seconds",
    "Time spent rendering a single invoice PDF.",
)

__all__ = [
    "billing_run_duration_seconds",
    "invoice_payments_total",
    "invoices_generated_total",
    "pdf_generation_seconds",
]
