"""Erzeugung der Rechnungen aus aggregierten Bestellungen."""

from __future__ import annotations

import datetime
import logging

from faktorino.config.loader import AppConfig
from faktorino.engine.aggregator import AggregatedOrder
from faktorino.engine.numbering import InvoiceNumberer, SequentialInvoiceNumberer
from faktorino.models import (
    COUNTRY_CLASSIFICATIONS,
    AggregationResult,
    Invoice,
    InvoiceSummary,
    LineItem,
    NoInvoicesError,
)
from faktorino.parsers.amounts import normalize_date, today_display
from faktorino.parsers.fields import RawRow

logger = logging.getLogger(__name__)

NO_INVOICES_MESSAGE = (
    "Keine gültigen Bestellungen zur Rechnungsstellung in der CSV-Datei gefunden. "
    "Bitte prüfen Sie das Dateiformat und die Spaltennamen."
)


def compute_totals(items: list[LineItem]) -> tuple[float, float, float]:
    """Maßgebliche Rechnungssummen (netto, USt., brutto) aus den Positionen."""
    net = sum(item.net_amount * item.quantity for item in items)
    vat = sum(item.vat_amount for item in items)
    gross = sum(item.gross_amount for item in items)
    return net, vat, gross


def format_address(
    street_1: str | None,
    street_2: str | None,
    zipcode: str | None,
    city: str | None,
    state: str | None,
    country: str | None,
) -> str:
    """Mehrzeilige Anschrift; fehlende Teile entfallen, das Land steht zuletzt.

    >>> format_address("Hauptstr. 1", None, "10115", "Berlin", "Berlin", "Germany")
    'Hauptstr. 1\\n10115 Berlin\\nGermany'
    """
    lines = [line for line in (street_1, street_2) if line]
    place = " ".join(part for part in (zipcode, city) if part)
    if state and state != city:
        place = f"{place}, {state}" if place else state
    if place:
        lines.append(place)
    if country:
        lines.append(country)
    return "\n".join(lines).strip()


def summarize(invoices: list[Invoice]) -> InvoiceSummary:
    by_classification = {c: 0 for c in COUNTRY_CLASSIFICATIONS}
    for invoice in invoices:
        by_classification[invoice.country_classification] = (
            by_classification.get(invoice.country_classification, 0) + 1
        )
    return InvoiceSummary(
        total_net_sales=round(sum(i.net_total for i in invoices), 2),
        total_vat=round(sum(i.vat_total for i in invoices), 2),
        total_gross=round(sum(i.gross_total for i in invoices), 2),
        invoice_count=len(invoices),
        by_classification=by_classification,
    )


class InvoiceAssembler:
    """Vergibt Nummern, Käuferdaten und Datumsangaben und bildet die Summen."""

    def __init__(
        self,
        config: AppConfig | None = None,
        numberer: InvoiceNumberer | None = None,
        today: datetime.date | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.today = today
        self.numberer = numberer or SequentialInvoiceNumberer(
            prefix=self.config.invoicing.prefix,
            year=(today or datetime.date.today()).year,
            width=self.config.invoicing.counter_width,
        )

    def assemble(self, orders: list[AggregatedOrder]) -> AggregationResult:
        """Erzeugt eine Rechnung pro Bestellung.

        Raises:
            NoInvoicesError: Wenn keine einzige Rechnung entsteht.
        """
        invoices = [self._build_invoice(order) for order in orders]
        if not invoices:
            logger.warning("Keine Rechnung erzeugt")
            raise NoInvoicesError(NO_INVOICES_MESSAGE)

        summary = summarize(invoices)
        logger.info(
            "%d Rechnung(en) erzeugt: netto %.2f, USt. %.2f, brutto %.2f",
            summary.invoice_count, summary.total_net_sales, summary.total_vat, summary.total_gross,
        )
        return AggregationResult(invoices=invoices, summary=summary)

    def _build_invoice(self, order: AggregatedOrder) -> Invoice:
        buyer_name, buyer_address = self._buyer(order)
        order_date = self._order_date(order)
        service_date = normalize_date(order.first_row.resolve(self.config.columns["service_date"])) or order_date
        net, vat, gross = compute_totals(order.items)

        return Invoice(
            invoice_number=self.numberer.next_number(),
            order_date=order_date,
            service_date=service_date,
            buyer_name=buyer_name,
            buyer_address=buyer_address,
            country=order.country or self.config.invoicing.unknown_country,
            country_classification=order.country_classification,
            items=list(order.items),
            net_total=net,
            vat_total=vat,
            gross_total=gross,
            tax_note=order.tax.tax_note,
            order_id=order.order_id,
        )

    def _buyer(self, order: AggregatedOrder) -> tuple[str, str]:
        invoicing = self.config.invoicing
        platform = invoicing.platform_recipient
        if platform is not None and platform.digital_orders and not order.has_physical:
            return platform.name, platform.address

        row: RawRow = order.first_row
        columns = self.config.columns
        name = row.resolve(columns["ship_name"]) or invoicing.placeholder_buyer_name
        address = format_address(
            row.resolve(columns["street_1"]),
            row.resolve(columns["street_2"]),
            row.resolve(columns["zipcode"]),
            row.resolve(columns["city"]),
            row.resolve(columns["state"]),
            order.country,
        )
        return name, address

    def _order_date(self, order: AggregatedOrder) -> str:
        raw = order.first_row.resolve(self.config.columns["order_date"])
        if raw is None:
            return today_display(self.today)
        normalized = normalize_date(raw)
        if normalized is None:
            logger.warning("Bestellung %s: unbekanntes Datumsformat %r, verwende heutiges Datum", order.order_id, raw)
            return today_display(self.today)
        return normalized
