"""Orchestrierung: Etsy-CSV → Rechnungen → Prüfungen → Excel, sowie Auszahlungsabgleich."""

from __future__ import annotations

import logging
from pathlib import Path

from faktorino.config.loader import AppConfig
from faktorino.controls.invoice_checker import InvoiceChecker
from faktorino.controls.payout_reconciler import PayoutReconciler
from faktorino.engine import generate_invoices
from faktorino.engine.numbering import InvoiceNumberer
from faktorino.exporters.excel import export, print_summary
from faktorino.models import AggregationResult, Anomaly, BankStatementResult, PayoutValidationResult
from faktorino.parsers import BankStatementParser, EtsyOrderParser

logger = logging.getLogger(__name__)


def _read_files(paths: list[Path]) -> list[bytes]:
    return [path.read_bytes() for path in paths]


class InvoicePipeline:
    """Rechnungslauf über einen oder mehrere Etsy-Exporte."""

    def run_from_buffers(
        self,
        contents: list[bytes],
        config: AppConfig,
        numberer: InvoiceNumberer | None = None,
    ) -> tuple[AggregationResult, list[Anomaly]]:
        """Erzeugt Rechnungen aus hochgeladenen Dateien (in Upload-Reihenfolge).

        Raises:
            EmptyInputError: Wenn alle Dateien leer sind.
            ParseError: Wenn eine Datei nicht lesbar ist.
            NoInvoicesError: Wenn keine Rechnung entsteht.
        """
        rows = EtsyOrderParser(config).parse_buffers(contents)
        result = generate_invoices(rows, config, numberer)
        anomalies = InvoiceChecker.check(result.invoices, config)
        logger.info("InvoiceChecker: %d Auffälligkeit(en)", len(anomalies))
        return result, anomalies

    def run(self, input_paths: list[Path], output_path: Path, config: AppConfig) -> AggregationResult:
        """Wie :meth:`run_from_buffers`, schreibt zusätzlich das Excel-Journal."""
        result, anomalies = self.run_from_buffers(_read_files(input_paths), config)
        export(result.invoices, anomalies, output_path)
        logger.info("Rechnungsjournal geschrieben: %s", output_path)
        print_summary(result, anomalies)
        return result


class PayoutPipeline:
    """Auszahlungsprüfung, optional mit Auszahlungsbetrag aus Kontoauszügen."""

    def payout_from_bank_statements(self, contents: list[bytes], config: AppConfig) -> BankStatementResult:
        return BankStatementParser(config).parse_buffers(contents)

    def validate(
        self,
        gross_invoices: float | None,
        total_fees: float | None,
        config: AppConfig,
        payout: float | None = None,
        bank_statements: list[bytes] | None = None,
        unsigned_fees: bool = False,
    ) -> tuple[PayoutValidationResult, BankStatementResult | None]:
        """Gleicht die Auszahlung ab.

        Ohne ``payout`` wird die Summe der Etsy-Buchungen aus den
        Kontoauszügen verwendet. ``unsigned_fees`` kennzeichnet Gebühren
        als positiven Betrag.
        """
        statement: BankStatementResult | None = None
        if payout is None and bank_statements:
            statement = self.payout_from_bank_statements(bank_statements, config)
            payout = statement.total_amount
            if not statement.found_marketplace_transaction:
                logger.warning("Keine Etsy-Buchung im Kontoauszug gefunden")

        if unsigned_fees:
            result = PayoutReconciler.reconcile_unsigned_fees(
                gross_invoices, total_fees, payout, config.payout_tolerance
            )
        else:
            result = PayoutReconciler.reconcile(gross_invoices, total_fees, payout, config.payout_tolerance)
        return result, statement
