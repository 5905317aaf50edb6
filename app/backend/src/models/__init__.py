"""ORM models exposed for easy imports."""

from .client import Client
from .expense import Expense
from .invoice import Invoice
from .payment import Payment
from .work_session import WorkSession

__all__ = [
    "Client",
    "Expense",
    "Invoice",
    "Payment",
    "WorkSession",
]
