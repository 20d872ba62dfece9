"""Zahlen, Mengen und Datumswerte aus Exportzellen lesen.

Alle Funktionen sind fehlertolerant: eine unlesbare Zelle ergibt einen
Standardwert statt eines Abbruchs. Das ist bewusst verlustbehaftet; eine
fehlerhafte Betragszelle wird zu 0 und fällt nur über die Summen auf.
"""

from __future__ import annotations

import datetime
import math
import re

_NUMBER_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_PREFIX = re.compile(r"[+-]?\d+")
_WHITESPACE = re.compile(r"\s+")

DISPLAY_DATE_FORMAT = "%d.%m.%Y"

# Reihenfolge ist relevant: deutsche Formate vor US-Formaten
INPUT_DATE_FORMATS = ("%d.%m.%Y", "%d.%m.%y", "%Y-%m-%d", "%m/%d/%y", "%m/%d/%Y")


def parse_amount(value: str | int | float | None) -> float:
    """Wandelt einen Betrag mit deutschem oder englischem Zahlenformat in float um.

    Steht ein Komma hinter dem letzten Punkt, sind alle Punkte
    Tausendertrennzeichen ("1.234,56"); danach werden Kommas zu Punkten.
    Gelesen wird das längste numerische Präfix. ``None``, NaN und
    unlesbare Werte ergeben 0.0.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return 0.0 if isinstance(value, float) and math.isnan(value) else float(value)

    cleaned = _WHITESPACE.sub("", str(value))
    if cleaned.rfind(",") > cleaned.rfind("."):
        cleaned = cleaned.replace(".", "")
    cleaned = cleaned.replace(",", ".")

    match = _NUMBER_PREFIX.match(cleaned)
    if match is None:
        return 0.0
    try:
        result = float(match.group(0))
    except ValueError:
        return 0.0
    return 0.0 if math.isnan(result) or math.isinf(result) else result


def parse_quantity(value: str | int | float | None, default: int = 1) -> int:
    """Liest eine Stückzahl; fehlend, unlesbar oder nicht positiv ergibt ``default``."""
    if value is None:
        return default
    if isinstance(value, float):
        if math.isnan(value):
            return default
        quantity = int(value)
    elif isinstance(value, int):
        quantity = value
    else:
        match = _INTEGER_PREFIX.match(str(value).strip())
        if match is None:
            return default
        quantity = int(match.group(0))
    return quantity if quantity > 0 else default


def normalize_date(value: str | None) -> str | None:
    """Bringt ein Datum aus dem Export ins Anzeigeformat ``DD.MM.YYYY``.

    Returns:
        Das formatierte Datum oder ``None``, wenn kein bekanntes Format passt.
    """
    if value is None:
        return None
    text = str(value).strip()
    # Uhrzeit-Anteil ("2024-01-15 10:22:01") abschneiden
    text = text.split(" ")[0].split("T")[0]
    for fmt in INPUT_DATE_FORMATS:
        try:
            parsed = datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        return parsed.strftime(DISPLAY_DATE_FORMAT)
    return None


def today_display(today: datetime.date | None = None) -> str:
    """Heutiges Datum im Anzeigeformat."""
    return (today or datetime.date.today()).strftime(DISPLAY_DATE_FORMAT)
