"""Public API routers exposed by the FastAPI application."""

from . import clients, expenses, health, invoices, sessions

__all__ = [
    "clients",
    "expenses",
    "health",
    "invoices",
    "sessions",
]
