"""Tests für engine/assembler.py: Nummern, Anschrift, Datum, Summen."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Callable

import pytest

from faktorino.config.loader import AppConfig, InvoicingConfig, PlatformRecipient
from faktorino.engine import generate_invoices
from faktorino.engine.aggregator import OrderAggregator
from faktorino.engine.assembler import (
    NO_INVOICES_MESSAGE,
    InvoiceAssembler,
    compute_totals,
    format_address,
)
from faktorino.engine.numbering import SequentialInvoiceNumberer
from faktorino.models import LineItem, NoInvoicesError
from faktorino.parsers.fields import RawRow

RowFactory = Callable[..., RawRow]
TODAY = datetime.date(2024, 2, 1)


def _assemble(config: AppConfig, rows: list[RawRow]):
    orders = OrderAggregator(config).aggregate(rows)
    return InvoiceAssembler(config, today=TODAY).assemble(orders)


class TestFormatAddress:
    def test_full_address(self) -> None:
        assert format_address("12 Main St", "Apt 4", "62701", "Springfield", "IL", "United States") == (
            "12 Main St\nApt 4\n62701 Springfield, IL\nUnited States"
        )

    def test_state_equal_to_city_omitted(self) -> None:
        assert format_address("Hauptstr. 5", None, "10115", "Berlin", "Berlin", "Germany") == (
            "Hauptstr. 5\n10115 Berlin\nGermany"
        )

    def test_missing_pieces_omitted(self) -> None:
        assert format_address(None, None, None, "Paris", None, "France") == "Paris\nFrance"

    def test_country_last(self) -> None:
        assert format_address("a", "b", "1", "c", "d", "Land").splitlines()[-1] == "Land"

    def test_all_missing(self) -> None:
        assert format_address(None, None, None, None, None, None) == ""


class TestComputeTotals:
    def test_net_multiplied_by_quantity(self) -> None:
        items = [
            LineItem(quantity=2, name="a", net_amount=10.0, vat_rate=19.0, vat_amount=3.8, gross_amount=23.8),
            LineItem(quantity=1, name="b", net_amount=5.0, vat_rate=0.0, vat_amount=0.0, gross_amount=5.0),
        ]
        net, vat, gross = compute_totals(items)
        assert net == pytest.approx(25.0)
        assert vat == pytest.approx(3.8)
        assert gross == pytest.approx(28.8)


class TestAssemble:
    def test_buyer_fields(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(
            order_id="1", item_name="Tasse", item_total="20", sku="T", ship_country="United States",
            ship_name="John Miller", ship_address1="12 Main St", ship_city="Springfield",
            ship_state="IL", ship_zipcode="62701",
        )]
        invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.buyer_name == "John Miller"
        assert invoice.buyer_address == "12 Main St\n62701 Springfield, IL\nUnited States"
        assert invoice.country == "United States"
        assert invoice.order_id == "1"

    def test_placeholders(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="Tasse", item_total="20", sku="T")]
        invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.buyer_name == "N/A"
        assert invoice.country == "Unbekannt"
        assert invoice.tax_note.startswith("Steuerfreie Ausfuhrlieferung")

    def test_sequential_numbers(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id=str(n), item_name="x", item_total="10", sku="s", ship_country="DE")
            for n in range(3)
        ]
        numbers = [i.invoice_number for i in _assemble(sample_config, rows).invoices]
        assert numbers == ["RE-2024-0001", "RE-2024-0002", "RE-2024-0003"]

    def test_injected_numberer(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="x", item_total="10", sku="s", ship_country="DE")]
        orders = OrderAggregator(sample_config).aggregate(rows)
        numberer = SequentialInvoiceNumberer(year=2023, start=100)
        result = InvoiceAssembler(sample_config, numberer).assemble(orders)
        assert result.invoices[0].invoice_number == "RE-2023-0100"

    def test_dates(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(
            order_id="1", item_name="x", item_total="10", sku="s", ship_country="DE",
            sale_date="01/15/24", date_shipped="01/17/24",
        )]
        invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.order_date == "15.01.2024"
        assert invoice.service_date == "17.01.2024"

    def test_missing_dates_default_to_today(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="x", item_total="10", sku="s", ship_country="DE")]
        invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.order_date == "01.02.2024"
        assert invoice.service_date == "01.02.2024"

    def test_unreadable_date_logged(
        self, sample_config: AppConfig, row_factory: RowFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        rows = [row_factory(order_id="1", item_name="x", item_total="10", sku="s", ship_country="DE", sale_date="irgendwann")]
        with caplog.at_level(logging.WARNING, logger="faktorino.engine.assembler"):
            invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.order_date == "01.02.2024"
        assert "unbekanntes Datumsformat" in caplog.text

    def test_totals_from_items(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="1", item_name="a", item_total="30", quantity="2", order_shipping="4,90", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="b", item_total="10", sku="s", ship_country="DE"),
        ]
        invoice = _assemble(sample_config, rows).invoices[0]
        assert invoice.gross_total == pytest.approx(44.90)
        assert invoice.net_total == pytest.approx(44.90 / 1.19)
        assert invoice.net_total + invoice.vat_total == pytest.approx(invoice.gross_total)

    def test_summary(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="1", item_name="a", item_total="119", sku="s", ship_country="DE"),
            row_factory(order_id="2", item_name="b", item_total="50", sku="s", ship_country="US"),
        ]
        summary = _assemble(sample_config, rows).summary
        assert summary.invoice_count == 2
        assert summary.total_net_sales == pytest.approx(150.0)
        assert summary.total_vat == pytest.approx(19.0)
        assert summary.total_gross == pytest.approx(169.0)
        assert summary.by_classification == {"Deutschland": 1, "EU-Ausland": 0, "Drittland": 1}

    def test_no_orders_raises(self, sample_config: AppConfig) -> None:
        with pytest.raises(NoInvoicesError) as exc_info:
            InvoiceAssembler(sample_config).assemble([])
        assert str(exc_info.value) == NO_INVOICES_MESSAGE


class TestPlatformRecipient:
    def _config(self) -> AppConfig:
        return AppConfig(invoicing=InvoicingConfig(platform_recipient=PlatformRecipient(
            name="Etsy Ireland UC",
            address="One Le Pole Square\nDublin 8\nIreland",
            digital_orders=True,
        )))

    def test_digital_order_addressed_to_platform(self, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="PDF", item_total="5", ship_country="DE", ship_name="Anna")]
        invoice = _assemble(self._config(), rows).invoices[0]
        assert invoice.buyer_name == "Etsy Ireland UC"
        assert invoice.buyer_address.endswith("Ireland")

    def test_physical_order_keeps_buyer(self, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="Tasse", item_total="5", sku="T", ship_country="DE", ship_name="Anna")]
        assert _assemble(self._config(), rows).invoices[0].buyer_name == "Anna"

    def test_disabled_by_default(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="PDF", item_total="5", ship_country="DE", ship_name="Anna")]
        assert _assemble(sample_config, rows).invoices[0].buyer_name == "Anna"


class TestGenerateInvoices:
    def test_all_refunded_raises(self, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="x", item_total="10", discount_amount="10", sku="s")]
        with pytest.raises(NoInvoicesError):
            generate_invoices(rows)

    def test_idempotent_up_to_numbering(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="1", item_name="a", item_total="19,99", sku="s", ship_country="FR"),
            row_factory(order_id="2", item_name="b", item_total="7", ship_country="US", order_shipping="3"),
        ]
        first = generate_invoices(rows, sample_config)
        second = generate_invoices(rows, sample_config, SequentialInvoiceNumberer(year=1999))
        assert [i.items for i in first.invoices] == [i.items for i in second.invoices]
        assert [i.gross_total for i in first.invoices] == [i.gross_total for i in second.invoices]
        assert first.invoices[0].invoice_number != second.invoices[0].invoice_number
