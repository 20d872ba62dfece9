"""Laden und Validieren der YAML-Konfiguration."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from faktorino.models import ConfigError, CreditPackage

logger = logging.getLogger(__name__)

SUPPORTED_ENCODINGS = {"utf-8", "utf-8-sig", "latin-1", "iso-8859-1", "cp1252"}

NOTE_KEYS = ("physical_eu", "physical_export", "digital_eu", "digital_non_eu", "kleinunternehmer")

# Die 27 Mitgliedstaaten der EU mit den Ländernamen, wie sie in Etsy-Exporten vorkommen.
EU_MEMBER_STATES: dict[str, list[str]] = {
    "AT": ["Österreich", "Austria"],
    "BE": ["Belgien", "Belgium"],
    "BG": ["Bulgarien", "Bulgaria"],
    "CY": ["Zypern", "Cyprus"],
    "CZ": ["Tschechien", "Czech Republic", "Czechia"],
    "DE": ["Deutschland", "Germany"],
    "DK": ["Dänemark", "Denmark"],
    "EE": ["Estland", "Estonia"],
    "ES": ["Spanien", "Spain"],
    "FI": ["Finnland", "Finland"],
    "FR": ["Frankreich", "France"],
    "GR": ["Griechenland", "Greece"],
    "HR": ["Kroatien", "Croatia"],
    "HU": ["Ungarn", "Hungary"],
    "IE": ["Irland", "Ireland"],
    "IT": ["Italien", "Italy"],
    "LT": ["Litauen", "Lithuania"],
    "LU": ["Luxemburg", "Luxembourg"],
    "LV": ["Lettland", "Latvia"],
    "MT": ["Malta"],
    "NL": ["Niederlande", "Netherlands"],
    "PL": ["Polen", "Poland"],
    "PT": ["Portugal"],
    "RO": ["Rumänien", "Romania"],
    "SE": ["Schweden", "Sweden"],
    "SI": ["Slowenien", "Slovenia"],
    "SK": ["Slowakei", "Slovakia"],
}

DEFAULT_NOTES: dict[str, str] = {
    "physical_eu": "Enthält {rate}% deutsche USt.",
    "physical_export": "Steuerfreie Ausfuhrlieferung in ein Drittland (§ 4 Nr. 1a UStG).",
    "digital_eu": "Die Umsatzsteuer wird von Etsy im One-Stop-Shop-Verfahren (OSS) abgeführt.",
    "digital_non_eu": "Leistung außerhalb EU, keine USt.",
    "kleinunternehmer": "Gemäß § 19 UStG wird keine Umsatzsteuer berechnet.",
}

# Logisches Feld → akzeptierte Spaltennamen (Groß-/Kleinschreibung egal)
DEFAULT_COLUMNS: dict[str, list[str]] = {
    "order_id": ["order id", "bestellnummer", "sale id"],
    "country": ["ship country", "versandland", "ship to country", "shipping country", "country"],
    "item_name": ["titel", "title", "item name"],
    "item_total": ["item total", "artikelsumme"],
    "discount_amount": ["discount amount", "rabattbetrag"],
    "shipping_discount": ["shipping discount", "versandrabatt"],
    "sku": ["sku"],
    "quantity": ["anzahl", "items", "quantity"],
    "shipping": ["shipping", "versand", "shipping costs", "order shipping"],
    "ship_name": ["ship name", "ship to name", "full name"],
    "street_1": ["ship to street 1", "empfaenger adresse 1", "street 1", "ship address1"],
    "street_2": ["ship to street 2", "empfaenger adresse 2", "street 2", "ship address2"],
    "city": ["ship to city", "empfaenger stadt", "city", "ship city"],
    "state": ["ship to state", "empfaenger bundesland", "state", "ship state"],
    "zipcode": ["ship to zipcode", "empfaenger plz", "shipping zipcode", "zipcode", "ship zipcode"],
    "order_date": ["sale date", "bestelldatum", "date"],
    "service_date": ["date shipped", "versanddatum"],
}

DEFAULT_BANK_HEADER_KEYWORDS = [
    "betrag", "verwendungszweck", "auftraggeber", "empfänger",
    "buchungstext", "beschreibung", "name", "beguenstigter/zahlungspflichtiger",
]
DEFAULT_BANK_DESCRIPTION_KEYS = [
    "verwendungszweck", "beschreibung", "buchungstext", "text", "auftraggeber/empfänger",
    "empfänger/auftraggeber", "beguenstigter/zahlungspflichtiger", "name",
]
DEFAULT_BANK_AMOUNT_KEYS = ["betrag", "amount", "gutschrift", "lastschrift"]
DEFAULT_BANK_DATE_KEYS = ["datum", "buchungsdatum", "valuta", "buchungstag"]


@dataclass
class TaxRules:
    """Steuerregeln des Verkäufers (Sitz in Deutschland)."""

    home_country: str = "DE"
    standard_rate: float = 19.0
    kleinunternehmer: bool = False
    eu_countries: dict[str, list[str]] = field(default_factory=lambda: {k: list(v) for k, v in EU_MEMBER_STATES.items()})
    notes: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NOTES))


@dataclass
class PlatformRecipient:
    """Rechnungsempfänger für rein digitale Bestellungen (Marktplatz statt Käufer)."""

    name: str
    address: str
    digital_orders: bool = False


@dataclass
class InvoicingConfig:
    """Einstellungen für Nummernkreis und Rechnungstexte."""

    prefix: str = "RE"
    counter_width: int = 4
    placeholder_buyer_name: str = "N/A"
    unknown_country: str = "Unbekannt"
    shipping_item_name: str = "Versandkosten"
    platform_recipient: PlatformRecipient | None = None


@dataclass
class BankConfig:
    """Erkennung von Kopfzeile und Spalten im Kontoauszug."""

    marketplace_keyword: str = "etsy"
    header_keywords: list[str] = field(default_factory=lambda: list(DEFAULT_BANK_HEADER_KEYWORDS))
    description_keys: list[str] = field(default_factory=lambda: list(DEFAULT_BANK_DESCRIPTION_KEYS))
    amount_keys: list[str] = field(default_factory=lambda: list(DEFAULT_BANK_AMOUNT_KEYS))
    date_keys: list[str] = field(default_factory=lambda: list(DEFAULT_BANK_DATE_KEYS))


@dataclass
class AppConfig:
    """Vollständige Anwendungskonfiguration (veränderlich, technische Dataclass).

    ``AppConfig()`` entspricht den ausgelieferten YAML-Standardwerten.
    """

    tax: TaxRules = field(default_factory=TaxRules)
    columns: dict[str, list[str]] = field(default_factory=lambda: {k: list(v) for k, v in DEFAULT_COLUMNS.items()})
    invoicing: InvoicingConfig = field(default_factory=InvoicingConfig)
    bank: BankConfig = field(default_factory=BankConfig)
    payout_tolerance: float = 0.01
    chunk_size: int = 10
    encodings: list[str] = field(default_factory=lambda: ["utf-8-sig", "cp1252"])
    credit_packages: list[CreditPackage] = field(default_factory=list)


def _load_yaml(filepath: Path) -> dict[str, object]:
    """Lädt eine YAML-Datei und gibt ihren Inhalt zurück."""
    if not filepath.exists():
        raise ConfigError(f"Konfigurationsdatei fehlt: {filepath}")
    try:
        with open(filepath, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Fehlerhaftes YAML in {filepath}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Die Datei {filepath} muss ein YAML-Mapping enthalten (erhalten: {type(data).__name__})")
    return data


def _require_key(data: dict[str, object], key: str, context: str) -> object:
    """Prüft, ob ein Schlüssel im Mapping vorhanden ist."""
    if key not in data:
        raise ConfigError(f"Pflichtschlüssel '{key}' fehlt in {context}")
    return data[key]


def _as_str_list(value: object, label: str, context: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"'{label}' muss eine nicht-leere Liste sein in {context}")
    return [str(v) for v in value]


def _validate_tax_rules(data: dict[str, object]) -> TaxRules:
    """Validiert und extrahiert die Steuerregeln."""
    context = "tax_rules.yaml"

    home_country = str(data.get("home_country", "DE")).upper()
    if len(home_country) != 2:
        raise ConfigError(f"'home_country' muss ein 2-stelliger Ländercode sein in {context} (erhalten: {home_country!r})")

    rate = data.get("standard_rate", 19.0)
    if isinstance(rate, bool) or not isinstance(rate, (int, float)):
        raise ConfigError(f"'standard_rate' muss eine Zahl sein in {context}")
    rate_float = float(rate)
    if rate_float < 0 or rate_float > 100:
        raise ConfigError(f"'standard_rate' ungültig in {context}: {rate_float}% (muss zwischen 0 und 100 liegen)")

    kleinunternehmer = data.get("kleinunternehmer", False)
    if not isinstance(kleinunternehmer, bool):
        raise ConfigError(f"'kleinunternehmer' muss true oder false sein in {context}")

    countries_raw = _require_key(data, "eu_countries", context)
    if not isinstance(countries_raw, dict) or len(countries_raw) == 0:
        raise ConfigError(f"'eu_countries' muss mindestens einen Eintrag enthalten in {context}")
    eu_countries: dict[str, list[str]] = {}
    for code, names in countries_raw.items():
        code_str = str(code).upper()
        if len(code_str) != 2:
            raise ConfigError(f"Ungültiger Ländercode {code!r} in {context}: 2 Zeichen erwartet")
        if names is None:
            eu_countries[code_str] = []
        elif isinstance(names, list):
            eu_countries[code_str] = [str(n) for n in names]
        else:
            raise ConfigError(f"Ländernamen für '{code_str}' müssen eine Liste sein in {context}")
    if home_country not in eu_countries:
        raise ConfigError(f"'home_country' {home_country} fehlt in 'eu_countries' ({context})")

    notes = dict(DEFAULT_NOTES)
    notes_raw = data.get("notes", {})
    if not isinstance(notes_raw, dict):
        raise ConfigError(f"'notes' muss ein Mapping sein in {context}")
    for key, text in notes_raw.items():
        if key not in NOTE_KEYS:
            raise ConfigError(f"Unbekannter Steuerhinweis '{key}' in {context}. Erlaubt: {', '.join(NOTE_KEYS)}")
        if not text or not str(text).strip():
            raise ConfigError(f"Steuerhinweis '{key}' ist leer in {context}")
        notes[str(key)] = str(text)

    return TaxRules(
        home_country=home_country,
        standard_rate=rate_float,
        kleinunternehmer=kleinunternehmer,
        eu_countries=eu_countries,
        notes=notes,
    )


def _validate_columns(data: dict[str, object]) -> dict[str, list[str]]:
    """Validiert die Spalten-Synonyme; fehlende Felder behalten ihre Standardwerte."""
    context = "columns.yaml"

    columns_raw = _require_key(data, "columns", context)
    if not isinstance(columns_raw, dict):
        raise ConfigError(f"'columns' muss ein Mapping sein in {context}")

    columns = {k: list(v) for k, v in DEFAULT_COLUMNS.items()}
    for logical, synonyms in columns_raw.items():
        if logical not in DEFAULT_COLUMNS:
            raise ConfigError(
                f"Unbekanntes Feld '{logical}' in {context}. "
                f"Erlaubt: {', '.join(sorted(DEFAULT_COLUMNS))}"
            )
        columns[str(logical)] = _as_str_list(synonyms, str(logical), context)
    return columns


def _validate_invoicing(data: dict[str, object], context: str) -> InvoicingConfig:
    raw = data.get("invoicing", {})
    if not isinstance(raw, dict):
        raise ConfigError(f"'invoicing' muss ein Mapping sein in {context}")

    defaults = InvoicingConfig()
    prefix = str(raw.get("prefix", defaults.prefix)).strip()
    if not prefix:
        raise ConfigError(f"'invoicing.prefix' darf nicht leer sein in {context}")

    width = raw.get("counter_width", defaults.counter_width)
    if isinstance(width, bool) or not isinstance(width, int) or width < 1:
        raise ConfigError(f"'invoicing.counter_width' muss eine positive ganze Zahl sein in {context}")

    recipient: PlatformRecipient | None = None
    recipient_raw = raw.get("platform_recipient")
    if recipient_raw is not None:
        if not isinstance(recipient_raw, dict):
            raise ConfigError(f"'invoicing.platform_recipient' muss ein Mapping sein in {context}")
        name = _require_key(recipient_raw, "name", f"{context}/invoicing.platform_recipient")
        address = _require_key(recipient_raw, "address", f"{context}/invoicing.platform_recipient")
        recipient = PlatformRecipient(
            name=str(name),
            address=str(address).strip(),
            digital_orders=bool(recipient_raw.get("digital_orders", False)),
        )

    return InvoicingConfig(
        prefix=prefix,
        counter_width=width,
        placeholder_buyer_name=str(raw.get("placeholder_buyer_name", defaults.placeholder_buyer_name)),
        unknown_country=str(raw.get("unknown_country", defaults.unknown_country)),
        shipping_item_name=str(raw.get("shipping_item_name", defaults.shipping_item_name)),
        platform_recipient=recipient,
    )


def _validate_bank(data: dict[str, object], context: str) -> BankConfig:
    raw = data.get("bank", {})
    if not isinstance(raw, dict):
        raise ConfigError(f"'bank' muss ein Mapping sein in {context}")

    bank = BankConfig()
    if "marketplace_keyword" in raw:
        keyword = str(raw["marketplace_keyword"]).strip().lower()
        if not keyword:
            raise ConfigError(f"'bank.marketplace_keyword' darf nicht leer sein in {context}")
        bank.marketplace_keyword = keyword
    for key in ("header_keywords", "description_keys", "amount_keys", "date_keys"):
        if key in raw:
            values = _as_str_list(raw[key], f"bank.{key}", context)
            setattr(bank, key, [v.lower().strip() for v in values])
    return bank


def _validate_credit_packages(data: dict[str, object], context: str) -> list[CreditPackage]:
    raw = data.get("credit_packages", [])
    if not isinstance(raw, list):
        raise ConfigError(f"'credit_packages' muss eine Liste sein in {context}")

    packages: list[CreditPackage] = []
    for entry in raw:
        if not isinstance(entry, dict):
            raise ConfigError(f"Jedes Credit-Paket muss ein Mapping sein in {context}")
        package_id = str(_require_key(entry, "id", f"{context}/credit_packages"))
        credits = entry.get("credits")
        if isinstance(credits, bool) or not isinstance(credits, int) or credits <= 0:
            raise ConfigError(f"'credits' des Pakets '{package_id}' muss eine positive ganze Zahl sein in {context}")
        price = entry.get("price_euros")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ConfigError(f"'price_euros' des Pakets '{package_id}' ist ungültig in {context}")
        packages.append(CreditPackage(
            id=package_id,
            name=str(entry.get("name", package_id)),
            credits=credits,
            price_euros=float(price),
        ))
    return packages


def _validate_settings(data: dict[str, object]) -> dict[str, object]:
    """Validiert und extrahiert die allgemeinen Einstellungen."""
    context = "settings.yaml"

    payout_raw = data.get("payout", {})
    if not isinstance(payout_raw, dict):
        raise ConfigError(f"'payout' muss ein Mapping sein in {context}")
    tolerance = payout_raw.get("tolerance", 0.01)
    if isinstance(tolerance, bool) or not isinstance(tolerance, (int, float)) or tolerance < 0:
        raise ConfigError(f"'payout.tolerance' muss eine nicht-negative Zahl sein in {context}")

    persistence_raw = data.get("persistence", {})
    if not isinstance(persistence_raw, dict):
        raise ConfigError(f"'persistence' muss ein Mapping sein in {context}")
    chunk_size = persistence_raw.get("chunk_size", 10)
    if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
        raise ConfigError(f"'persistence.chunk_size' muss eine positive ganze Zahl sein in {context}")

    encodings_raw = data.get("encodings", ["utf-8-sig", "cp1252"])
    encodings = _as_str_list(encodings_raw, "encodings", context)
    for encoding in encodings:
        if encoding not in SUPPORTED_ENCODINGS:
            raise ConfigError(
                f"Encoding '{encoding}' wird nicht unterstützt. "
                f"Erlaubt: {', '.join(sorted(SUPPORTED_ENCODINGS))}"
            )

    return {
        "invoicing": _validate_invoicing(data, context),
        "bank": _validate_bank(data, context),
        "payout_tolerance": float(tolerance),
        "chunk_size": chunk_size,
        "encodings": encodings,
        "credit_packages": _validate_credit_packages(data, context),
    }


def load_config(config_dir: Path) -> AppConfig:
    """Lädt und validiert die vollständige Konfiguration aus einem Verzeichnis.

    Args:
        config_dir: Verzeichnis mit ``tax_rules.yaml``, ``columns.yaml`` und ``settings.yaml``.

    Returns:
        Validierte AppConfig.

    Raises:
        ConfigError: Wenn eine Datei fehlt, fehlerhaft ist oder ungültige Werte enthält.
    """
    logger.info("Lade Konfiguration aus %s", config_dir)

    tax_data = _load_yaml(config_dir / "tax_rules.yaml")
    columns_data = _load_yaml(config_dir / "columns.yaml")
    settings_data = _load_yaml(config_dir / "settings.yaml")

    tax = _validate_tax_rules(tax_data)
    columns = _validate_columns(columns_data)
    settings = _validate_settings(settings_data)

    config = AppConfig(
        tax=tax,
        columns=columns,
        invoicing=settings["invoicing"],  # type: ignore[arg-type]
        bank=settings["bank"],  # type: ignore[arg-type]
        payout_tolerance=settings["payout_tolerance"],  # type: ignore[arg-type]
        chunk_size=settings["chunk_size"],  # type: ignore[arg-type]
        encodings=settings["encodings"],  # type: ignore[arg-type]
        credit_packages=settings["credit_packages"],  # type: ignore[arg-type]
    )

    logger.debug("EU-Länder: %d, Regelsteuersatz: %s%%", len(config.tax.eu_countries), config.tax.standard_rate)

    return config
