"""Gruppierung der Etsy-Zeilen zu Bestellungen und Aufbau der Rechnungspositionen."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from faktorino.config.loader import AppConfig
from faktorino.engine.tax import TaxClassifier, TaxDecision
from faktorino.models import LineItem
from faktorino.parsers.amounts import parse_amount, parse_quantity
from faktorino.parsers.fields import RawRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedOrder:
    """Bestellung mit fertigen Positionen, noch ohne Nummer und Käuferdaten."""

    order_id: str
    first_row: RawRow
    country: str | None
    country_classification: str
    items: list[LineItem]
    tax: TaxDecision
    has_physical: bool


def split_gross(gross: float, vat_rate: float) -> tuple[float, float]:
    """Rechnet aus einem Bruttobetrag (netto, USt.) zurück."""
    net = gross / (1 + vat_rate / 100) if vat_rate > 0 else gross
    return net, gross - net


class OrderAggregator:
    """Fasst die Zeilen eines Etsy-Exports zu Bestellungen zusammen.

    Fehlerhafte Zeilen werden übersprungen und nur auf DEBUG protokolliert;
    es gibt hier keinen Abbruch des gesamten Laufs.
    """

    def __init__(self, config: AppConfig | None = None, classifier: TaxClassifier | None = None) -> None:
        self.config = config or AppConfig()
        self.classifier = classifier or TaxClassifier(self.config.tax)

    def aggregate(self, rows: list[RawRow]) -> list[AggregatedOrder]:
        """Gruppiert nach Bestellnummer (Reihenfolge des ersten Auftretens)."""
        columns = self.config.columns
        groups: dict[str, list[RawRow]] = {}
        without_id = 0
        for row in rows:
            order_id = row.resolve(columns["order_id"])
            if order_id is None:
                without_id += 1
                continue
            groups.setdefault(order_id, []).append(row)

        if without_id:
            logger.debug("%d Zeile(n) ohne Bestellnummer ignoriert", without_id)

        orders: list[AggregatedOrder] = []
        for order_id, group in groups.items():
            order = self._build_order(order_id, group)
            if order is None:
                logger.debug("Bestellung %s ohne abrechenbare Positionen verworfen", order_id)
                continue
            orders.append(order)

        logger.info("%d Zeile(n) → %d Bestellung(en) mit Positionen", len(rows), len(orders))
        return orders

    def _build_order(self, order_id: str, group: list[RawRow]) -> AggregatedOrder | None:
        columns = self.config.columns
        first_row = group[0]
        country = first_row.resolve(columns["country"])

        items: list[LineItem] = []
        for row in group:
            item = self._build_item(row, country)
            if item is not None:
                items.append(item)

        shipping = self._build_shipping(group, country)
        if shipping is not None:
            items.append(shipping)

        if not items:
            return None

        has_physical = any(row.resolve(columns["sku"]) is not None for row in group)
        return AggregatedOrder(
            order_id=order_id,
            first_row=first_row,
            country=country,
            country_classification=self.classifier.classify_country(country),
            items=items,
            tax=self.classifier.classify(country, has_physical),
            has_physical=has_physical,
        )

    def _build_item(self, row: RawRow, country: str | None) -> LineItem | None:
        columns = self.config.columns
        name = row.resolve(columns["item_name"])
        total = row.resolve(columns["item_total"])
        if name is None or total is None:
            return None

        gross = (
            parse_amount(total)
            - parse_amount(row.resolve(columns["discount_amount"]))
            - parse_amount(row.resolve(columns["shipping_discount"]))
        )
        if gross <= 0:
            # erstattete oder vollständig rabattierte Artikel
            return None

        is_physical = row.resolve(columns["sku"]) is not None
        rate = self.classifier.classify(country, is_physical).vat_rate
        quantity = parse_quantity(row.resolve(columns["quantity"]))
        net, vat = split_gross(gross, rate)
        return LineItem(
            quantity=quantity,
            name=name,
            net_amount=net / quantity,
            vat_rate=rate,
            vat_amount=vat,
            gross_amount=gross,
        )

    def _build_shipping(self, group: list[RawRow], country: str | None) -> LineItem | None:
        """Eine Versandposition aus der ersten Zeile mit positiven Versandkosten."""
        candidates = self.config.columns["shipping"]
        cost = next(
            (amount for amount in (parse_amount(row.resolve(candidates)) for row in group) if amount > 0),
            0.0,
        )
        if cost <= 0:
            return None

        rate = self.classifier.classify(country, True).vat_rate
        net, vat = split_gross(cost, rate)
        return LineItem(
            quantity=1,
            name=self.config.invoicing.shipping_item_name,
            net_amount=net,
            vat_rate=rate,
            vat_amount=vat,
            gross_amount=cost,
        )
