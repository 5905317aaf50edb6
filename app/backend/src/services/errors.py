"""Exception taxonomy for billing operations."""

from __future__ import annotations


class BillingError(Exception):
    """Base class for all billing failures."""


class ValidationError(BillingError):
    """Input was rejected before anything was written."""


class UnknownClientError(ValidationError):
    """No client exists with the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"client {name!r} not found")
        self.name = name


class InvoiceNotFoundError(ValidationError):
    """No invoice exists with the requested id."""

    def __init__(self, invoice_id: int) -> None:
        super().__init__(f"invoice {invoice_id} not found")
        self.invoice_id = invoice_id


class NotFoundError(ValidationError):
    """A referenced record (session, expense) does not exist."""


class InvalidAmountError(ValidationError):
    """A monetary amount was non-positive or otherwise unusable."""


class ConflictError(BillingError):
    """The request conflicts with the current state of a record."""


class AlreadyPaidError(ConflictError):
    """The invoice has no remaining balance."""

    def __init__(self, invoice_number: str) -> None:
        super().__init__(f"invoice {invoice_number} is already fully paid")
        self.invoice_number = invoice_number


class PaymentExceedsBalanceError(InvalidAmountError, ConflictError):
    """The payment is larger than the invoice's remaining balance."""


class StorageError(BillingError):
    """The persistence layer failed; the message names the operation."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation


class RenderingError(BillingError):
    """The invoice document could not be produced."""


class ConsistencyError(BillingError):
    """Invoice links and rows are out of step and need manual reconciliation."""


__all__ = [
    "AlreadyPaidError",
    "BillingError",
    "ConflictError",
    "ConsistencyError",
    "InvalidAmountError",
    "InvoiceNotFoundError",
    "NotFoundError",
    "PaymentExceedsBalanceError",
    "RenderingError",
    "StorageError",
    "UnknownClientError",
    "ValidationError",
]
