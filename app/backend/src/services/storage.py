"""Storage helpers for invoice artifacts."""

from __future__ import annotations

import re
from pathlib import Path

import structlog

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def sanitize_file_name(value: str) -> str:
    """Return ``value`` reduced to ``[A-Za-z0-9_.-]`` with spaces as underscores."""

    return _UNSAFE_CHARS.sub("", value.replace(" ", "_"))


def invoice_output_dir() -> Path:
    return Path(get_settings().invoice_output_dir)


def save_invoice_pdf(content: bytes, filename: str, output_dir: Path | None = None) -> Path:
    """Write the PDF to the invoice directory and return its path."""

    storage_dir = output_dir or invoice_output_dir()
    storage_dir.mkdir(parents=True, exist_ok=True)

    destination = storage_dir / sanitize_file_name(filename)
    if destination.exists():
        LOGGER.info("invoice_pdf_replaced", path=str(destination))
        destination.unlink()

    destination.write_bytes(content)
    return destination


__all__ = ["invoice_output_dir", "sanitize_file_name", "save_invoice_pdf"]
