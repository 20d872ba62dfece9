"""Spaltensuche über CSV-Zeilen mit wechselnden Spaltennamen.

Etsy-Exporte benennen Spalten je nach Sprache und Exportversion
unterschiedlich ("Order ID" vs. "Bestellnummer"). Alle Zugriffe auf
Zeilenwerte laufen deshalb über :func:`resolve_field`.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Iterator, Mapping

CellValue = str | int | float | None

_WHITESPACE = re.compile(r"\s+")


def normalize_key(key: str) -> str:
    """Kleinschreibung, Leerzeichen am Rand entfernt, innere Leerzeichen zusammengefasst."""
    return _WHITESPACE.sub(" ", str(key).strip().lower())


def _is_blank(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def resolve_field(row: Mapping[str, object], candidates: Iterable[str]) -> str | None:
    """Gibt den ersten nicht-leeren Wert einer Spalte zurück, deren Name zu den Kandidaten passt.

    Maßgeblich ist die Spaltenreihenfolge der Zeile, nicht die Reihenfolge
    der Kandidaten: alle Kandidaten gelten als gleichwertig.

    Returns:
        Den Wert ohne umgebende Leerzeichen, oder ``None`` wenn keine Spalte passt.
    """
    wanted = {normalize_key(c) for c in candidates}
    for key, value in row.items():
        if normalize_key(key) in wanted and not _is_blank(value):
            return str(value).strip()
    return None


class RawRow(Mapping[str, CellValue]):
    """Eine CSV-Zeile ohne festes Schema.

    Die Spaltenreihenfolge bleibt erhalten; Zugriffe über Synonymlisten
    erfolgen ausschließlich über :meth:`resolve`.
    """

    __slots__ = ("_cells",)

    def __init__(self, cells: Mapping[str, CellValue]) -> None:
        self._cells: dict[str, CellValue] = dict(cells)

    def __getitem__(self, key: str) -> CellValue:
        return self._cells[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __repr__(self) -> str:
        return f"RawRow({self._cells!r})"

    def resolve(self, candidates: Iterable[str]) -> str | None:
        return resolve_field(self, candidates)
