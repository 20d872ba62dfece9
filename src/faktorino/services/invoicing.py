"""Rechnungen eines Nutzers anlegen: Credits abbuchen, dann blockweise speichern."""

from __future__ import annotations

import logging

from faktorino.config.loader import AppConfig
from faktorino.models import CreditError, Invoice, PersistenceReport
from faktorino.services.credits import REFUND, CreditLedger
from faktorino.services.persistence import InvoiceRepository, persist_in_chunks

logger = logging.getLogger(__name__)


class InvoiceService:
    """Verbindet Rechnungsspeicher und Credit-Konto."""

    def __init__(self, repository: InvoiceRepository, ledger: CreditLedger, config: AppConfig | None = None) -> None:
        self.repository = repository
        self.ledger = ledger
        self.config = config or AppConfig()

    def create_invoices(self, user_id: str, invoices: list[Invoice]) -> PersistenceReport:
        """Bucht einen Credit pro Rechnung in einer Transaktion ab und speichert.

        Rechnungen, die nicht gespeichert werden konnten, werden wieder
        gutgeschrieben; der Bericht nennt erzeugte und gespeicherte Anzahl.

        Raises:
            CreditError: Wenn die Abbuchung scheitert; dann wird nichts gespeichert.
        """
        if not invoices:
            return PersistenceReport(derived=0, persisted=[])

        count = len(invoices)
        result = self.ledger.use_credits(user_id, count, f"{count} Rechnung(en) erstellt")
        if not result.success:
            logger.warning("Credits für Nutzer %s nicht abgebucht: %s", user_id, result.error)
            raise CreditError(result.error or "Credits konnten nicht abgebucht werden")

        report = persist_in_chunks(self.repository, user_id, invoices, self.config.chunk_size)

        missing = report.derived - len(report.persisted)
        if missing > 0:
            self.ledger.add_credits(
                user_id,
                missing,
                f"Rückbuchung für {missing} nicht gespeicherte Rechnung(en)",
                transaction_type=REFUND,
            )
            logger.warning("Nutzer %s: %d Credit(s) zurückgebucht", user_id, missing)

        return report
