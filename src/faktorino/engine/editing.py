"""Nachträgliche Änderungen an Rechnungen und Stornorechnungen."""

from __future__ import annotations

import dataclasses
import datetime
import logging
from collections.abc import Mapping

from faktorino.engine.assembler import compute_totals
from faktorino.models import Invoice, LineItem
from faktorino.parsers.amounts import normalize_date, today_display

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "buyer_name",
    "buyer_address",
    "order_date",
    "service_date",
    "items",
    "tax_note",
})

CANCELLATION_SUFFIX = "-STORNO"


def recompute_item(item: LineItem) -> LineItem:
    """Berechnet USt. und Brutto aus Netto-Einzelpreis, Menge und Steuersatz neu."""
    net_total = item.net_amount * item.quantity
    vat = net_total * item.vat_rate / 100
    return dataclasses.replace(item, vat_amount=vat, gross_amount=net_total + vat)


def update_invoice(invoice: Invoice, changes: Mapping[str, object]) -> Invoice:
    """Übernimmt Änderungen des Nutzers und bildet die Summen neu.

    Geänderte Positionen werden über :func:`recompute_item` neu berechnet.

    Raises:
        ValueError: Bei unbekannten Feldern oder ungültigem Datum.
    """
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Nicht änderbare Felder: {', '.join(sorted(unknown))}")

    values: dict[str, object] = dict(changes)
    for key in ("order_date", "service_date"):
        if key in values:
            normalized = normalize_date(str(values[key]))
            if normalized is None:
                raise ValueError(f"Ungültiges Datum für '{key}': {values[key]!r}")
            values[key] = normalized

    if "items" in values:
        items = values["items"]
        if not isinstance(items, list) or not all(isinstance(i, LineItem) for i in items):
            raise ValueError("'items' muss eine Liste von Rechnungspositionen sein")
        values["items"] = [recompute_item(item) for item in items]

    updated = dataclasses.replace(invoice, **values)
    net, vat, gross = compute_totals(updated.items)
    return dataclasses.replace(updated, net_total=net, vat_total=vat, gross_total=gross)


def cancellation_number(invoice: Invoice) -> str:
    return f"{invoice.invoice_number}{CANCELLATION_SUFFIX}"


def _negate(item: LineItem) -> LineItem:
    return dataclasses.replace(
        item,
        net_amount=-item.net_amount,
        vat_amount=-item.vat_amount,
        gross_amount=-item.gross_amount,
    )


def create_cancellation(invoice: Invoice, today: datetime.date | None = None) -> Invoice:
    """Stornorechnung mit negierten Beträgen zur angegebenen Rechnung.

    Raises:
        ValueError: Wenn die Rechnung selbst bereits eine Stornorechnung ist.
    """
    if invoice.is_cancellation:
        raise ValueError(f"Rechnung {invoice.invoice_number} ist bereits eine Stornorechnung")

    cancellation = dataclasses.replace(
        invoice,
        invoice_number=cancellation_number(invoice),
        order_date=today_display(today),
        items=[_negate(item) for item in invoice.items],
        net_total=-invoice.net_total,
        vat_total=-invoice.vat_total,
        gross_total=-invoice.gross_total,
        tax_note=f"Stornorechnung zu Rechnung {invoice.invoice_number}. {invoice.tax_note}",
        id=None,
        is_cancellation=True,
    )
    logger.info("Stornorechnung %s erstellt", cancellation.invoice_number)
    return cancellation
