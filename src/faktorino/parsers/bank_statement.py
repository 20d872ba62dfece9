"""Abgleich von Kontoauszügen: Marktplatz-Gutschriften finden und summieren."""

from __future__ import annotations

import logging
from io import StringIO

import pandas as pd

from faktorino.models import BankStatementResult, BankTransaction, ParseError
from faktorino.parsers.amounts import parse_amount
from faktorino.parsers.base import BaseParser

logger = logging.getLogger(__name__)


class BankStatementParser(BaseParser):
    """Liest Bank-CSV-Exporte mit beliebigem Vorspann vor der Kopfzeile.

    Die Kopfzeile wird über Schlüsselwörter gesucht; Betrag-, Datum- und
    Beschreibungsspalten werden per Teilstring im Spaltennamen erkannt.
    """

    def parse(self, texts: list[str]) -> BankStatementResult:
        """Sucht alle Buchungen, deren Beschreibung das Marktplatz-Schlüsselwort enthält.

        Raises:
            EmptyInputError: Wenn alle Dateien leer sind.
            ParseError: Wenn Kopfzeile oder Pflichtspalten fehlen.
        """
        bank = self.config.bank
        combined = self.concatenate(texts, bank.header_keywords)
        table = self._read_table(combined)

        header_index = self._find_header_row(table, bank.header_keywords)
        if header_index is None:
            raise ParseError(
                "Konnte keine gültige Header-Zeile mit Spalten wie 'Betrag' oder "
                "'Verwendungszweck' in der CSV-Datei finden."
            )
        headers = [cell.lower().strip() for cell in table[header_index]]

        amount_index = -1
        date_index = -1
        description_indices: list[int] = []
        for index, header in enumerate(headers):
            if not header:
                continue
            if any(key in header for key in bank.amount_keys):
                amount_index = index
            if any(key in header for key in bank.date_keys):
                date_index = index
            if any(key in header for key in bank.description_keys):
                description_indices.append(index)

        if amount_index == -1:
            raise ParseError("Konnte die 'Betrag'-Spalte in der CSV nicht finden.")
        if not description_indices:
            raise ParseError("Konnte keine Spalte für den Verwendungszweck oder die Beschreibung in der CSV finden.")
        if date_index == -1:
            raise ParseError("Konnte die 'Datum'-Spalte in der CSV nicht finden.")

        keyword = bank.marketplace_keyword.lower()
        needed = [amount_index, date_index, *description_indices]
        transactions: list[BankTransaction] = []
        total = 0.0

        for row in table[header_index + 1:]:
            if all(not row[idx] for idx in needed):
                continue
            description = " ".join(row[idx] for idx in description_indices).strip()
            if keyword not in description.lower():
                continue
            amount = parse_amount(row[amount_index])
            total += amount
            transactions.append(BankTransaction(
                date=row[date_index] or "N/A",
                description=description,
                amount=amount,
            ))

        logger.info(
            "Kontoauszug: %d Buchung(en) mit '%s' gefunden, Summe %.2f",
            len(transactions), keyword, total,
        )
        return BankStatementResult(
            total_amount=round(total, 2),
            transactions=transactions,
            found_marketplace_transaction=bool(transactions),
        )

    def parse_buffers(self, contents: list[bytes]) -> BankStatementResult:
        return self.parse([self.decode(c, self.config.encodings) for c in contents])

    def _read_table(self, text: str) -> list[list[str]]:
        """Liest den Auszug zeilenweise ohne Kopfzeilen-Annahme; fehlende Zellen werden ''."""
        lines = [line for line in text.splitlines() if line.strip()]
        header_line = next(
            (line for line in lines if any(kw in line.lower() for kw in self.config.bank.header_keywords)),
            lines[0],
        )
        sep = self.detect_separator(header_line)
        width = max(line.count(sep) for line in lines) + 1
        try:
            df = pd.read_csv(
                StringIO("\n".join(lines)),
                sep=sep,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error("Kontoauszug konnte nicht gelesen werden: %s", e)
            raise ParseError(f"Fehler beim Parsen der CSV-Datei: {e}") from e
        df = df.fillna("")
        return [[str(cell).strip() for cell in record] for record in df.itertuples(index=False)]

    @staticmethod
    def _find_header_row(table: list[list[str]], keywords: list[str]) -> int | None:
        for index, row in enumerate(table):
            cells = [cell.lower() for cell in row]
            if any(kw in cell for cell in cells for kw in keywords):
                return index
        return None
