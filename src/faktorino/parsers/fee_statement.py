"""Parser für die monatliche Etsy-Abrechnung (Zahlungskonto, CSV)."""

from __future__ import annotations

import logging
import re

from faktorino.models import FeeSummary, ParseError
from faktorino.parsers.amounts import parse_amount
from faktorino.parsers.base import BaseParser

logger = logging.getLogger(__name__)

TYPE_COLUMNS = ["type", "typ", "art"]
AMOUNT_COLUMNS = ["amount", "betrag", "umsatz"]
FEES_COLUMNS = ["fees & taxes", "gebühren & steuern", "gebühren und steuern"]
NET_COLUMNS = ["net", "netto", "nettobetrag"]

SALE_TYPES = {"sale", "verkauf"}

_CURRENCY = re.compile(r"€|EUR|\$|USD|£", re.IGNORECASE)


def _money(value: str | None) -> float:
    """Betrag mit Währungszeichen ("-€1.20", "--") lesen."""
    if value is None:
        return 0.0
    return parse_amount(_CURRENCY.sub("", value))


class FeeStatementParser(BaseParser):
    """Ermittelt Umsatz, Gebühren & Steuern und Nettobetrag einer Etsy-Abrechnung."""

    def parse(self, texts: list[str]) -> FeeSummary:
        """Summiert die Abrechnung über alle Dateien.

        ``fees_and_taxes`` wird immer als Abzug (≤ 0) geliefert, passend zur
        Vorzeichenkonvention des Auszahlungsabgleichs.

        Raises:
            ParseError: Wenn weder eine Betrags- noch eine Gebührenspalte existiert.
        """
        combined = self.concatenate(texts, TYPE_COLUMNS + AMOUNT_COLUMNS, whole_cells=True)
        df = self.strip_whitespace(self.read_csv(combined))
        rows = self.to_rows(df)

        normalized_headers = {str(c).strip().lower() for c in df.columns}
        if not normalized_headers & set(AMOUNT_COLUMNS) and not normalized_headers & set(FEES_COLUMNS):
            raise ParseError("Die Abrechnung enthält weder eine 'Amount'- noch eine 'Fees & Taxes'-Spalte.")

        sales = 0.0
        fees = 0.0
        net = 0.0
        for row in rows:
            row_type = (row.resolve(TYPE_COLUMNS) or "").lower()
            amount = _money(row.resolve(AMOUNT_COLUMNS))
            if row_type in SALE_TYPES and amount > 0:
                sales += amount
            fees += _money(row.resolve(FEES_COLUMNS))
            net += _money(row.resolve(NET_COLUMNS))

        fees = round(fees, 2)
        summary = FeeSummary(
            sales=round(sales, 2),
            fees_and_taxes=-abs(fees) if fees else 0.0,
            net_amount=round(net, 2),
        )
        logger.info(
            "Etsy-Abrechnung: Umsatz %.2f, Gebühren & Steuern %.2f, Netto %.2f",
            summary.sales, summary.fees_and_taxes, summary.net_amount,
        )
        return summary

    def parse_buffers(self, contents: list[bytes]) -> FeeSummary:
        return self.parse([self.decode(c, self.config.encodings) for c in contents])
