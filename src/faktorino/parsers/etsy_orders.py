"""Parser für Etsy-Bestellexporte (CSV, eine Zeile pro Artikel)."""

from __future__ import annotations

import logging

from faktorino.models import EmptyInputError
from faktorino.parsers.base import BaseParser
from faktorino.parsers.fields import RawRow

logger = logging.getLogger(__name__)


class EtsyOrderParser(BaseParser):
    """Liest einen oder mehrere Etsy-Bestellexporte als RawRows."""

    def parse(self, texts: list[str]) -> list[RawRow]:
        """Verkettet die Dateien und liest die Zeilen.

        Raises:
            EmptyInputError: Wenn alle Dateien leer sind oder keine Datenzeile enthalten.
            ParseError: Wenn die CSV-Struktur nicht lesbar ist.
        """
        combined = self.concatenate(texts, self.config.columns["order_id"])
        df = self.read_csv(combined)
        df = self.strip_whitespace(df)
        rows = self.to_rows(df)
        if not rows:
            raise EmptyInputError("Die Datei enthält keine Bestellzeilen (nur Kopfzeile).")
        logger.info("Etsy-Export: %d Datei(en), %d Zeilen gelesen", len(texts), len(rows))
        return rows

    def parse_buffers(self, contents: list[bytes]) -> list[RawRow]:
        """Wie :meth:`parse`, für noch nicht dekodierte Uploads."""
        return self.parse([self.decode(c, self.config.encodings) for c in contents])
