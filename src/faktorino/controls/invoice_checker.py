"""Konsistenzprüfung der erzeugten Rechnungen."""

from __future__ import annotations

import logging

from faktorino.config.loader import AppConfig
from faktorino.models import Anomaly, Invoice, LineItem

logger = logging.getLogger(__name__)

AMOUNT_TOLERANCE = 0.01  # euros


class InvoiceChecker:
    """Prüft Summen, Positions-USt. und Steuersätze jeder Rechnung."""

    @staticmethod
    def check(invoices: list[Invoice], config: AppConfig | None = None) -> list[Anomaly]:
        """Liefert alle Auffälligkeiten; eine leere Liste heißt: alles konsistent."""
        config = config or AppConfig()
        allowed_rates = {0.0, float(config.tax.standard_rate)}

        anomalies: list[Anomaly] = []
        for invoice in invoices:
            anomalies.extend(InvoiceChecker._check_totals(invoice))
            for item in invoice.items:
                anomalies.extend(InvoiceChecker._check_item(invoice, item, allowed_rates))

        if anomalies:
            logger.warning("%d Auffälligkeit(en) in %d Rechnung(en)", len(anomalies), len(invoices))
        return anomalies

    @staticmethod
    def _check_totals(invoice: Invoice) -> list[Anomaly]:
        """Netto + USt. = Brutto und Summen = Summe der Positionen."""
        anomalies: list[Anomaly] = []
        if abs(invoice.net_total + invoice.vat_total - invoice.gross_total) > AMOUNT_TOLERANCE:
            anomalies.append(Anomaly(
                type="totals_mismatch",
                severity="error",
                reference=invoice.invoice_number,
                detail="Netto + USt. ergibt nicht den Bruttobetrag der Rechnung",
                expected_value=f"{invoice.net_total + invoice.vat_total:.2f}",
                actual_value=f"{invoice.gross_total:.2f}",
            ))

        items_gross = sum(item.gross_amount for item in invoice.items)
        if abs(items_gross - invoice.gross_total) > AMOUNT_TOLERANCE:
            anomalies.append(Anomaly(
                type="items_total_mismatch",
                severity="error",
                reference=invoice.invoice_number,
                detail="Bruttobetrag der Rechnung entspricht nicht der Summe der Positionen",
                expected_value=f"{items_gross:.2f}",
                actual_value=f"{invoice.gross_total:.2f}",
            ))
        return anomalies

    @staticmethod
    def _check_item(invoice: Invoice, item: LineItem, allowed_rates: set[float]) -> list[Anomaly]:
        anomalies: list[Anomaly] = []
        expected_vat = item.gross_amount - item.net_amount * item.quantity
        if abs(expected_vat - item.vat_amount) > AMOUNT_TOLERANCE:
            anomalies.append(Anomaly(
                type="item_vat_mismatch",
                severity="error",
                reference=invoice.invoice_number,
                detail=f"Position '{item.name}': USt. passt nicht zu Brutto und Netto",
                expected_value=f"{expected_vat:.2f}",
                actual_value=f"{item.vat_amount:.2f}",
            ))

        if float(item.vat_rate) not in allowed_rates:
            anomalies.append(Anomaly(
                type="unexpected_vat_rate",
                severity="warning",
                reference=invoice.invoice_number,
                detail=f"Position '{item.name}': unerwarteter Steuersatz {item.vat_rate:g}%",
                expected_value=", ".join(f"{r:g}" for r in sorted(allowed_rates)),
                actual_value=f"{item.vat_rate:g}",
            ))
        return anomalies
