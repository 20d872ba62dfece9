"""Tests für engine/aggregator.py: Gruppierung und Positionsaufbau."""

from __future__ import annotations

import logging
from collections.abc import Callable

import pytest

from faktorino.config.loader import AppConfig
from faktorino.engine.aggregator import OrderAggregator, split_gross
from faktorino.models import DEUTSCHLAND, DRITTLAND, EU_AUSLAND
from faktorino.parsers.fields import RawRow

RowFactory = Callable[..., RawRow]


class TestSplitGross:
    def test_with_vat(self) -> None:
        net, vat = split_gross(119.0, 19.0)
        assert net == pytest.approx(100.0)
        assert vat == pytest.approx(19.0)

    def test_without_vat(self) -> None:
        assert split_gross(50.0, 0.0) == (50.0, 0.0)


class TestGrouping:
    def test_groups_in_first_seen_order(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="B", item_name="x", item_total="10", sku="s", ship_country="DE"),
            row_factory(order_id="A", item_name="y", item_total="10", sku="s", ship_country="DE"),
            row_factory(order_id="B", item_name="z", item_total="10", sku="s", ship_country="DE"),
        ]
        orders = OrderAggregator(sample_config).aggregate(rows)
        assert [o.order_id for o in orders] == ["B", "A"]
        assert [i.name for i in orders[0].items] == ["x", "z"]

    def test_rows_without_order_id_dropped(
        self, sample_config: AppConfig, row_factory: RowFactory, caplog: pytest.LogCaptureFixture
    ) -> None:
        rows = [
            row_factory(order_id="", item_name="x", item_total="10", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="y", item_total="10", sku="s", ship_country="DE"),
        ]
        with caplog.at_level(logging.DEBUG, logger="faktorino.engine.aggregator"):
            orders = OrderAggregator(sample_config).aggregate(rows)
        assert len(orders) == 1
        assert "ohne Bestellnummer" in caplog.text

    def test_synonym_bestellnummer(self, sample_config: AppConfig) -> None:
        rows = [RawRow({"Bestellnummer": "77", "Titel": "Tasse", "Artikelsumme": "11,90", "Versandland": "DE"})]
        orders = OrderAggregator(sample_config).aggregate(rows)
        assert orders[0].order_id == "77"
        assert orders[0].items[0].gross_amount == pytest.approx(11.90)


class TestLineItems:
    def test_physical_eu_back_calculation(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="Tasse", item_total="119", sku="T", ship_country="FR")]
        item = OrderAggregator(sample_config).aggregate(rows)[0].items[0]
        assert item.vat_rate == 19.0
        assert item.net_amount == pytest.approx(100.0)
        assert item.vat_amount == pytest.approx(19.0)
        assert item.gross_amount == 119.0

    def test_net_is_per_unit(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="Tasse", item_total="238", quantity="2", sku="T", ship_country="DE")]
        item = OrderAggregator(sample_config).aggregate(rows)[0].items[0]
        assert item.quantity == 2
        assert item.net_amount == pytest.approx(100.0)
        assert item.vat_amount == pytest.approx(38.0)
        assert item.gross_amount == pytest.approx(238.0)

    def test_discounts_subtracted(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(
            order_id="1", item_name="Beutel", item_total="25,00", discount_amount="5,00",
            shipping_discount="1,00", sku="B", ship_country="US",
        )]
        item = OrderAggregator(sample_config).aggregate(rows)[0].items[0]
        assert item.gross_amount == pytest.approx(19.0)
        assert item.vat_rate == 0.0
        assert item.net_amount == pytest.approx(19.0)

    def test_digital_item_zero_vat(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="PDF", item_total="5", sku="", ship_country="DE")]
        order = OrderAggregator(sample_config).aggregate(rows)[0]
        assert order.items[0].vat_rate == 0.0
        assert order.has_physical is False
        assert "One-Stop-Shop" in order.tax.tax_note

    def test_rows_without_name_or_total_skipped(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="1", item_name="", item_total="10", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="ok", item_total="", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="Tasse", item_total="10", sku="s", ship_country="DE"),
        ]
        order = OrderAggregator(sample_config).aggregate(rows)[0]
        assert [i.name for i in order.items] == ["Tasse"]

    @pytest.mark.parametrize("total", ["0", "-5", "abc"])
    def test_non_positive_gross_dropped(self, sample_config: AppConfig, row_factory: RowFactory, total: str) -> None:
        rows = [
            row_factory(order_id="1", item_name="weg", item_total=total, sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="bleibt", item_total="10", sku="s", ship_country="DE"),
        ]
        order = OrderAggregator(sample_config).aggregate(rows)[0]
        assert [i.name for i in order.items] == ["bleibt"]

    def test_fully_refunded_order_dropped(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="weg", item_total="12", discount_amount="12", sku="s", ship_country="DE")]
        assert OrderAggregator(sample_config).aggregate(rows) == []


class TestShipping:
    def test_single_shipping_line_from_first_positive_row(
        self, sample_config: AppConfig, row_factory: RowFactory
    ) -> None:
        rows = [
            row_factory(order_id="1", item_name="a", item_total="10", order_shipping="0", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="b", item_total="10", order_shipping="5,95", sku="s", ship_country="DE"),
            row_factory(order_id="1", item_name="c", item_total="10", order_shipping="3,00", sku="s", ship_country="DE"),
        ]
        items = OrderAggregator(sample_config).aggregate(rows)[0].items
        shipping = [i for i in items if i.name == "Versandkosten"]
        assert len(shipping) == 1
        assert shipping[0].gross_amount == pytest.approx(5.95)
        assert shipping[0].quantity == 1
        assert items[-1].name == "Versandkosten"

    def test_shipping_always_physical(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        """Auch bei rein digitaler Bestellung wird der Versand wie eine Lieferung besteuert."""
        rows = [row_factory(order_id="1", item_name="PDF", item_total="5", order_shipping="2,38", ship_country="DE")]
        items = OrderAggregator(sample_config).aggregate(rows)[0].items
        assert items[0].vat_rate == 0.0
        assert items[1].vat_rate == 19.0
        assert items[1].net_amount == pytest.approx(2.0)

    def test_shipping_alone_yields_order(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [row_factory(order_id="1", item_name="weg", item_total="0", order_shipping="4,90", sku="s", ship_country="US")]
        order = OrderAggregator(sample_config).aggregate(rows)[0]
        assert [i.name for i in order.items] == ["Versandkosten"]
        assert order.items[0].vat_rate == 0.0


class TestOrderTaxNote:
    def test_mixed_order_annotated_as_physical(self, sample_config: AppConfig, row_factory: RowFactory) -> None:
        rows = [
            row_factory(order_id="1", item_name="PDF", item_total="5", sku="", ship_country="AT"),
            row_factory(order_id="1", item_name="Tasse", item_total="20", sku="T", ship_country="AT"),
        ]
        order = OrderAggregator(sample_config).aggregate(rows)[0]
        assert order.has_physical is True
        assert order.tax.tax_note == "Enthält 19% deutsche USt."
        assert [i.vat_rate for i in order.items] == [0.0, 19.0]

    @pytest.mark.parametrize(
        ("country", "expected"),
        [("Germany", DEUTSCHLAND), ("Austria", EU_AUSLAND), ("Canada", DRITTLAND), ("", DRITTLAND)],
    )
    def test_classification_from_first_row(
        self, sample_config: AppConfig, row_factory: RowFactory, country: str, expected: str
    ) -> None:
        rows = [row_factory(order_id="1", item_name="x", item_total="10", sku="s", ship_country=country)]
        assert OrderAggregator(sample_config).aggregate(rows)[0].country_classification == expected
