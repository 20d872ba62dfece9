"""Export des Rechnungsjournals als Excel-Datei und Konsolenzusammenfassung."""

from __future__ import annotations

from collections import Counter
from io import BytesIO
from pathlib import Path
from typing import BinaryIO

import pandas as pd

from faktorino.models import AggregationResult, Anomaly, Invoice

INVOICES_COLUMNS = [
    "Rechnungsnummer",
    "Bestellnummer",
    "Rechnungsdatum",
    "Leistungsdatum",
    "Käufer",
    "Anschrift",
    "Land",
    "Länderklassifizierung",
    "Netto",
    "USt.",
    "Brutto",
    "Steuerhinweis",
    "Storno",
]

ITEMS_COLUMNS = [
    "Rechnungsnummer",
    "Position",
    "Bezeichnung",
    "Menge",
    "Einzelpreis netto",
    "USt.-Satz",
    "USt.",
    "Brutto",
]

ANOMALIES_COLUMNS = [
    "type",
    "severity",
    "reference",
    "detail",
    "expected_value",
    "actual_value",
]


def _frames(invoices: list[Invoice], anomalies: list[Anomaly]) -> dict[str, pd.DataFrame]:
    invoices_data = [
        {
            "Rechnungsnummer": inv.invoice_number,
            "Bestellnummer": inv.order_id,
            "Rechnungsdatum": inv.order_date,
            "Leistungsdatum": inv.service_date,
            "Käufer": inv.buyer_name,
            "Anschrift": inv.buyer_address,
            "Land": inv.country,
            "Länderklassifizierung": inv.country_classification,
            "Netto": round(inv.net_total, 2),
            "USt.": round(inv.vat_total, 2),
            "Brutto": round(inv.gross_total, 2),
            "Steuerhinweis": inv.tax_note,
            "Storno": "ja" if inv.is_cancellation else "",
        }
        for inv in invoices
    ]

    items_data = [
        {
            "Rechnungsnummer": inv.invoice_number,
            "Position": position,
            "Bezeichnung": item.name,
            "Menge": item.quantity,
            "Einzelpreis netto": round(item.net_amount, 2),
            "USt.-Satz": item.vat_rate,
            "USt.": round(item.vat_amount, 2),
            "Brutto": round(item.gross_amount, 2),
        }
        for inv in invoices
        for position, item in enumerate(inv.items, start=1)
    ]

    anomalies_data = [
        {
            "type": a.type,
            "severity": a.severity,
            "reference": a.reference,
            "detail": a.detail,
            "expected_value": a.expected_value,
            "actual_value": a.actual_value,
        }
        for a in anomalies
    ]

    return {
        "Rechnungen": pd.DataFrame(invoices_data, columns=INVOICES_COLUMNS),
        "Positionen": pd.DataFrame(items_data, columns=ITEMS_COLUMNS),
        "Anomalien": pd.DataFrame(anomalies_data, columns=ANOMALIES_COLUMNS),
    }


def _write(target: Path | BinaryIO, invoices: list[Invoice], anomalies: list[Anomaly]) -> None:
    with pd.ExcelWriter(target, engine="openpyxl") as writer:
        for sheet_name, df in _frames(invoices, anomalies).items():
            df.to_excel(writer, sheet_name=sheet_name, index=False)


def export(invoices: list[Invoice], anomalies: list[Anomaly], output_path: Path) -> None:
    """Schreibt Rechnungen, Positionen und Anomalien in eine Excel-Datei mit drei Blättern."""
    _write(output_path, invoices, anomalies)


def export_to_bytes(invoices: list[Invoice], anomalies: list[Anomaly]) -> BytesIO:
    """Wie :func:`export`, aber in einen Puffer (für den Download über die API)."""
    buffer = BytesIO()
    _write(buffer, invoices, anomalies)
    buffer.seek(0)
    return buffer


def print_summary(result: AggregationResult, anomalies: list[Anomaly]) -> None:
    """Gibt eine Zusammenfassung auf der Konsole aus."""
    summary = result.summary
    print("=== Zusammenfassung ===")
    print(f"Rechnungen erstellt : {summary.invoice_count}")
    for classification, count in summary.by_classification.items():
        print(f"  {classification} : {count}")
    print(f"Netto gesamt  : {summary.total_net_sales:.2f} €")
    print(f"USt. gesamt   : {summary.total_vat:.2f} €")
    print(f"Brutto gesamt : {summary.total_gross:.2f} €")

    if not anomalies:
        print("Keine Auffälligkeiten")
        return

    print(f"Auffälligkeiten : {len(anomalies)}")
    type_counts: Counter[str] = Counter(a.type for a in anomalies)
    for anomaly_type, count in type_counts.items():
        print(f"    {anomaly_type:<24s}: {count}")
