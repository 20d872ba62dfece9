"""Abstrakte Basisklasse und gemeinsame Hilfen für die CSV-Parser."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from io import StringIO

import pandas as pd

from faktorino.config.loader import AppConfig
from faktorino.models import EmptyInputError, ParseError
from faktorino.parsers.fields import RawRow

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Gemeinsame Schnittstelle der Parser für hochgeladene CSV-Dateien."""

    def __init__(self, config: AppConfig) -> None:
        self.config = config

    @abstractmethod
    def parse(self, texts: list[str]) -> object:
        """Verarbeitet bereits dekodierte CSV-Inhalte (in Upload-Reihenfolge)."""

    @staticmethod
    def decode(content: bytes, encodings: Iterable[str] = ("utf-8-sig", "cp1252")) -> str:
        """Dekodiert einen Upload mit dem ersten passenden Encoding."""
        tried: list[str] = []
        for encoding in encodings:
            try:
                return content.decode(encoding)
            except UnicodeDecodeError:
                tried.append(encoding)
        raise ParseError(f"Die Datei konnte nicht gelesen werden (Encodings versucht: {', '.join(tried)})")

    @staticmethod
    def detect_separator(header: str, candidates: tuple[str, ...] = (",", ";")) -> str:
        """Erkennt das Trennzeichen durch Zählen der Vorkommen in der Kopfzeile."""
        if not header.strip():
            return candidates[0] if candidates else ","

        best = candidates[0]
        best_count = 0
        for sep in candidates:
            count = header.count(sep)
            if count > best_count:
                best_count = count
                best = sep
        return best

    @staticmethod
    def concatenate(texts: list[str], header_keywords: Iterable[str], whole_cells: bool = False) -> str:
        """Fügt mehrere CSV-Inhalte zu einem zusammen.

        Die erste Datei bleibt unverändert. Bei jeder weiteren Datei wird die
        erste Zeile entfernt, wenn sie eines der Schlüsselwörter enthält
        (wiederholte Kopfzeile). Mit ``whole_cells`` muss eine Zelle der Zeile
        genau einem Schlüsselwort entsprechen, sonst genügt ein Teiltreffer.
        Die Reihenfolge der Dateien ist maßgeblich.

        Raises:
            EmptyInputError: Wenn alle Inhalte leer sind.
        """
        keywords = [k.lower() for k in header_keywords]
        parts: list[str] = []
        for text in texts:
            if not text.strip():
                continue
            if parts:
                first_line, _, rest = text.partition("\n")
                if BaseParser._is_header(first_line, keywords, whole_cells):
                    text = rest
            parts.append(text.rstrip("\r\n"))

        combined = "\n".join(p for p in parts if p.strip())
        if not combined.strip():
            raise EmptyInputError("Die ausgewählten Dateien sind leer oder ungültig.")
        return combined

    @staticmethod
    def _is_header(line: str, keywords: list[str], whole_cells: bool) -> bool:
        lowered = line.lower()
        if not whole_cells:
            return any(kw in lowered for kw in keywords)
        cells = {cell.strip().strip('"').strip() for cell in lowered.split(BaseParser.detect_separator(line))}
        return bool(cells & set(keywords))

    def read_csv(self, text: str, **kwargs: object) -> pd.DataFrame:
        """Liest CSV-Text mit automatisch erkanntem Trennzeichen; alle Zellen als str."""
        header = text.lstrip().split("\n", 1)[0]
        sep = self.detect_separator(header)
        try:
            return pd.read_csv(
                StringIO(text),
                sep=sep,
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                **kwargs,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.error("CSV konnte nicht gelesen werden: %s", e)
            raise ParseError(f"Fehler beim Parsen der CSV-Datei: {e}") from e

    @staticmethod
    def strip_whitespace(df: pd.DataFrame) -> pd.DataFrame:
        """Entfernt Leerzeichen um Spaltennamen und Zellwerte."""
        df.columns = [str(c).strip() for c in df.columns]
        for col in df.columns:
            if pd.api.types.is_string_dtype(df[col]) or df[col].dtype == object:
                df[col] = df[col].map(lambda v: v.strip() if isinstance(v, str) else v)
        return df

    @staticmethod
    def to_rows(df: pd.DataFrame) -> list[RawRow]:
        """Wandelt einen DataFrame in RawRows (Spaltenreihenfolge bleibt erhalten)."""
        return [RawRow(record) for record in df.to_dict(orient="records")]
