"""Integration-flavored smoke tests for the FastAPI app."""

from __future__ import annotations

import os
import sys
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[4]))

# Configure environment before application imports
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_invoice.db")
os.environ.setdefault("INVOICE_OUTPUT_DIR", "/tmp/worklog-billing-tests")

import pytest
from fastapi.testclient import TestClient

from app.backend.src.db import get_engine
from app.backend.src.db.base import Base
from app.backend.src.main import app


@pytest.fixture(scope="module", autouse=True)
def setup_database() -> None:  # type: ignore[no-untyped-def]
    engine = get_engine()
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


def test_liveness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "live"}


def test_readiness_checks_database_and_output_dir(client: TestClient) -> None:
    response = client.get("/api/health/ready")

    assert response.status_code == 200
    assert response.json()["status"] == "ready"


def test_metrics_endpoint_exposes_billing_metrics(client: TestClient) -> None:
    response = client.get("/api/metrics")

    assert response.status_code == 200
    assert "pdf_generation_seconds" in response.text
    assert "invoices_generated_total" in response.text
