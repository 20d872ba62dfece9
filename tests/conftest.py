from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from faktorino.config.loader import AppConfig
from faktorino.models import Invoice, LineItem
from faktorino.parsers.fields import RawRow


@pytest.fixture
def fixtures_dir() -> Path:
    """Pfad zum Fixture-Verzeichnis."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_config() -> AppConfig:
    """Standardkonfiguration (entspricht den ausgelieferten YAML-Dateien ohne Credit-Pakete)."""
    return AppConfig()


def make_row(**cells: object) -> RawRow:
    """Baut eine Etsy-Zeile; Unterstriche im Schlüssel werden zu Leerzeichen."""
    return RawRow({key.replace("_", " ").title(): value for key, value in cells.items()})


@pytest.fixture
def row_factory() -> Callable[..., RawRow]:
    """Fabrik für Etsy-Zeilen, siehe :func:`make_row`."""
    return make_row


def make_invoice(**overrides: object) -> Invoice:
    """Baut eine konsistente Inlandsrechnung (zwei Positionen, 19 %)."""
    items = [
        LineItem(quantity=2, name="Keramiktasse", net_amount=10.0, vat_rate=19.0, vat_amount=3.8, gross_amount=23.8),
        LineItem(quantity=1, name="Versandkosten", net_amount=4.0, vat_rate=19.0, vat_amount=0.76, gross_amount=4.76),
    ]
    defaults: dict[str, object] = {
        "invoice_number": "RE-2024-0001",
        "order_date": "15.01.2024",
        "service_date": "17.01.2024",
        "buyer_name": "Anna Schmidt",
        "buyer_address": "Hauptstraße 5\n10115 Berlin\nGermany",
        "country": "Germany",
        "country_classification": "Deutschland",
        "items": items,
        "net_total": 24.0,
        "vat_total": 4.56,
        "gross_total": 28.56,
        "tax_note": "Enthält 19% deutsche USt.",
        "order_id": "1001",
    }
    defaults.update(overrides)
    return Invoice(**defaults)  # type: ignore[arg-type]


@pytest.fixture
def invoice_factory() -> Callable[..., Invoice]:
    """Fabrik für Rechnungen, siehe :func:`make_invoice`."""
    return make_invoice
