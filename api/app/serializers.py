"""Umwandlung der fachlichen Dataclasses in die JSON-Strukturen der API."""

from __future__ import annotations

from faktorino.models import (
    AggregationResult,
    Anomaly,
    BankStatementResult,
    CreditPackage,
    CreditTransaction,
    FeeSummary,
    Invoice,
    LineItem,
    PayoutValidationResult,
    PersistenceReport,
)


def serialize_line_item(item: LineItem) -> dict[str, object]:
    return {
        "quantity": item.quantity,
        "name": item.name,
        "netAmount": item.net_amount,
        "vatRate": item.vat_rate,
        "vatAmount": item.vat_amount,
        "grossAmount": item.gross_amount,
    }


def serialize_invoice(invoice: Invoice) -> dict[str, object]:
    """Serialisiert eine Rechnung im Format des Frontends."""
    return {
        "id": invoice.id,
        "invoiceNumber": invoice.invoice_number,
        "orderId": invoice.order_id,
        "orderDate": invoice.order_date,
        "serviceDate": invoice.service_date,
        "buyerName": invoice.buyer_name,
        "buyerAddress": invoice.buyer_address,
        "country": invoice.country,
        "countryClassification": invoice.country_classification,
        "items": [serialize_line_item(i) for i in invoice.items],
        "netTotal": invoice.net_total,
        "vatTotal": invoice.vat_total,
        "grossTotal": invoice.gross_total,
        "taxNote": invoice.tax_note,
        "isCancellation": invoice.is_cancellation,
    }


def serialize_anomaly(anomaly: Anomaly) -> dict[str, object]:
    return {
        "type": anomaly.type,
        "severity": anomaly.severity,
        "reference": anomaly.reference,
        "detail": anomaly.detail,
        "expected_value": anomaly.expected_value,
        "actual_value": anomaly.actual_value,
    }


def serialize_response(result: AggregationResult, anomalies: list[Anomaly]) -> dict[str, object]:
    """Antwort eines Rechnungslaufs: Rechnungen, Zusammenfassung, Auffälligkeiten."""
    summary = result.summary
    return {
        "invoices": [serialize_invoice(i) for i in result.invoices],
        "summary": {
            "totalNetSales": summary.total_net_sales,
            "totalVat": summary.total_vat,
            "totalGross": summary.total_gross,
            "invoiceCount": summary.invoice_count,
            "byClassification": summary.by_classification,
        },
        "anomalies": [serialize_anomaly(a) for a in anomalies],
    }


def serialize_report(report: PersistenceReport) -> dict[str, object]:
    return {
        "derived": report.derived,
        "persisted": len(report.persisted),
        "invoices": [serialize_invoice(i) for i in report.persisted],
        "error": report.error,
    }


def serialize_payout(result: PayoutValidationResult) -> dict[str, object]:
    return {
        "grossInvoices": result.gross_invoices,
        "totalFees": result.total_fees,
        "expectedPayout": result.expected_payout,
        "payoutAmount": result.payout_amount,
        "difference": result.difference,
        "isDiscrepancyPresent": result.is_discrepancy_present,
        "discrepancyExplanation": result.discrepancy_explanation,
    }


def serialize_bank_statement(result: BankStatementResult) -> dict[str, object]:
    return {
        "totalAmount": result.total_amount,
        "transactions": [
            {"date": t.date, "description": t.description, "amount": t.amount}
            for t in result.transactions
        ],
        "foundEtsyTransaction": result.found_marketplace_transaction,
    }


def serialize_fees(summary: FeeSummary) -> dict[str, object]:
    return {
        "sales": summary.sales,
        "feesAndTaxes": summary.fees_and_taxes,
        "netAmount": summary.net_amount,
    }


def serialize_credit_transaction(tx: CreditTransaction) -> dict[str, object]:
    return {
        "transactionType": tx.transaction_type,
        "creditsChange": tx.credits_change,
        "creditsBalanceAfter": tx.credits_balance_after,
        "description": tx.description,
        "createdAt": tx.created_at,
    }


def serialize_package(package: CreditPackage) -> dict[str, object]:
    return {
        "id": package.id,
        "name": package.name,
        "credits": package.credits,
        "priceEuros": package.price_euros,
    }
