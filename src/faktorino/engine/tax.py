"""Steuerliche Einordnung einer Lieferung nach Bestimmungsland und Produktart.

Entscheidungstabelle (Verkäufer mit Sitz in Deutschland):

=========  ==============  ========  =======================================
Produkt    Bestimmungsland  USt.-Satz Hinweis
=========  ==============  ========  =======================================
physisch   EU (inkl. DE)    19 %      deutsche USt. enthalten
physisch   Drittland        0 %       steuerfreie Ausfuhrlieferung
digital    EU               0 %       USt. führt Etsy im OSS-Verfahren ab
digital    Drittland        0 %       nicht steuerbar
=========  ==============  ========  =======================================
"""

from __future__ import annotations

from dataclasses import dataclass

from faktorino.config.loader import TaxRules
from faktorino.models import DEUTSCHLAND, DRITTLAND, EU_AUSLAND

RECIPIENT_BUYER = "buyer"
RECIPIENT_PLATFORM = "platform"

_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})


@dataclass(frozen=True)
class TaxDecision:
    """Steuersatz, Rechnungshinweis und Rechnungsempfänger einer Lieferung."""

    vat_rate: float
    tax_note: str
    recipient: str


def normalize_country_name(name: str | None) -> str:
    """'Österreich ' → 'oesterreich'."""
    if not name:
        return ""
    return name.strip().lower().translate(_UMLAUTS)


class TaxClassifier:
    """Zustandslose Einordnung nach der Entscheidungstabelle oben."""

    def __init__(self, rules: TaxRules | None = None) -> None:
        self.rules = rules or TaxRules()
        self._eu_codes = {code.upper() for code in self.rules.eu_countries}
        self._names: dict[str, str] = {}
        for code, names in self.rules.eu_countries.items():
            for name in names:
                self._names[normalize_country_name(name)] = code.upper()

    def country_code(self, country: str | None) -> str | None:
        """ISO-Code eines EU-Landes (aus Code oder Ländername), sonst ``None``."""
        if not country:
            return None
        text = country.strip()
        if len(text) == 2 and text.upper() in self._eu_codes:
            return text.upper()
        return self._names.get(normalize_country_name(text))

    def is_eu(self, country: str | None) -> bool:
        """Unbekannte und leere Angaben gelten als Drittland."""
        return self.country_code(country) is not None

    def classify_country(self, country: str | None) -> str:
        code = self.country_code(country)
        if code is None:
            return DRITTLAND
        if code == self.rules.home_country:
            return DEUTSCHLAND
        return EU_AUSLAND

    def classify(self, country: str | None, is_physical: bool) -> TaxDecision:
        """Ermittelt Steuersatz und Rechnungshinweis für eine Lieferung."""
        notes = self.rules.notes
        recipient = RECIPIENT_BUYER if is_physical else RECIPIENT_PLATFORM
        eu = self.is_eu(country)

        if self.rules.kleinunternehmer:
            return TaxDecision(0.0, notes["kleinunternehmer"], recipient)

        if is_physical:
            if eu:
                rate = self.rules.standard_rate
                return TaxDecision(rate, notes["physical_eu"].format(rate=f"{rate:g}"), recipient)
            return TaxDecision(0.0, notes["physical_export"], recipient)

        if eu:
            return TaxDecision(0.0, notes["digital_eu"], recipient)
        return TaxDecision(0.0, notes["digital_non_eu"], recipient)


def classify_country(country: str | None, rules: TaxRules | None = None) -> str:
    """Deutschland, EU-Ausland oder Drittland."""
    return TaxClassifier(rules).classify_country(country)


def classify(country: str | None, is_physical: bool, rules: TaxRules | None = None) -> TaxDecision:
    """Kurzform von ``TaxClassifier(rules).classify(...)``."""
    return TaxClassifier(rules).classify(country, is_physical)
