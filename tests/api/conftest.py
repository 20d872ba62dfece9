"""Fixtures für die API-Tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def client() -> TestClient:
    """FastAPI-TestClient mit Test-Konfiguration."""
    config_dir = str(Path(__file__).parent.parent / "fixtures" / "config")
    os.environ["CONFIG_DIR"] = config_dir

    from api.app.main import app

    with TestClient(app) as c:
        yield c


@pytest.fixture
def order_files() -> list[tuple[str, tuple[str, bytes, str]]]:
    """Zwei Etsy-Exporte für den Multipart-Upload."""
    fixtures = Path(__file__).parent.parent / "fixtures" / "etsy"
    return [
        ("files", ("orders_januar_1.csv", (fixtures / "orders_januar_1.csv").read_bytes(), "text/csv")),
        ("files", ("orders_januar_2.csv", (fixtures / "orders_januar_2.csv").read_bytes(), "text/csv")),
    ]
