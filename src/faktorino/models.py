"""Fachliche Datenmodelle und Exception-Hierarchie."""

from __future__ import annotations

from dataclasses import dataclass, field

# --- Länderklassifizierung ---

DEUTSCHLAND = "Deutschland"
EU_AUSLAND = "EU-Ausland"
DRITTLAND = "Drittland"

COUNTRY_CLASSIFICATIONS = (DEUTSCHLAND, EU_AUSLAND, DRITTLAND)


# --- Fachliche Exceptions ---


class FaktorinoError(Exception):
    """Basisfehler der Anwendung faktorino."""


class ConfigError(FaktorinoError):
    """YAML fehlerhaft, Schlüssel fehlt, Wert ungültig."""


class ParseError(FaktorinoError):
    """CSV-Struktur unlesbar oder Pflichtspalte nicht gefunden."""


class EmptyInputError(FaktorinoError):
    """Die hochgeladenen Dateien sind leer."""


class NoInvoicesError(FaktorinoError):
    """Aus den Eingabedaten ist keine einzige Rechnung entstanden."""


class PersistenceError(FaktorinoError):
    """Speichern, Lesen oder Löschen im Rechnungsspeicher fehlgeschlagen."""


class CreditError(FaktorinoError):
    """Credits konnten nicht abgebucht werden (zu wenig Guthaben oder Speicherfehler)."""


# --- Fachliche Dataclasses (frozen) ---


@dataclass(frozen=True)
class LineItem:
    """Rechnungsposition.

    ``net_amount`` ist der Netto-Einzelpreis, ``vat_amount`` und
    ``gross_amount`` beziehen sich auf die gesamte Position.
    """

    quantity: int
    name: str
    net_amount: float
    vat_rate: float
    vat_amount: float
    gross_amount: float


@dataclass(frozen=True)
class Invoice:
    """Rechnung zu genau einer Etsy-Bestellung.

    Datumsfelder im Anzeigeformat ``DD.MM.YYYY``. ``id`` wird erst vom
    Rechnungsspeicher vergeben.
    """

    invoice_number: str
    order_date: str
    service_date: str
    buyer_name: str
    buyer_address: str
    country: str
    country_classification: str
    items: list[LineItem]
    net_total: float
    vat_total: float
    gross_total: float
    tax_note: str
    order_id: str = ""
    id: str | None = None
    is_cancellation: bool = False


@dataclass(frozen=True)
class InvoiceSummary:
    """Zusammenfassung eines Rechnungslaufs."""

    total_net_sales: float
    total_vat: float
    total_gross: float
    invoice_count: int
    by_classification: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class AggregationResult:
    """Ergebnis der Rechnungserzeugung: Rechnungen plus Zusammenfassung."""

    invoices: list[Invoice]
    summary: InvoiceSummary


@dataclass(frozen=True)
class Anomaly:
    """Auffälligkeit, die bei einer Konsistenzprüfung gefunden wurde."""

    type: str
    severity: str
    reference: str
    detail: str
    expected_value: str | None
    actual_value: str | None


@dataclass(frozen=True)
class BankTransaction:
    """Buchung aus einem Kontoauszug, deren Beschreibung den Marktplatz nennt."""

    date: str
    description: str
    amount: float


@dataclass(frozen=True)
class BankStatementResult:
    """Ergebnis des Kontoauszug-Abgleichs."""

    total_amount: float
    transactions: list[BankTransaction]
    found_marketplace_transaction: bool


@dataclass(frozen=True)
class FeeSummary:
    """Kennzahlen einer Etsy-Abrechnung.

    ``fees_and_taxes`` ist vorzeichenbehaftet (Abzüge negativ).
    """

    sales: float
    fees_and_taxes: float
    net_amount: float


@dataclass(frozen=True)
class PayoutValidationResult:
    """Ergebnis der Auszahlungsprüfung."""

    gross_invoices: float
    total_fees: float
    expected_payout: float
    payout_amount: float
    difference: float
    is_discrepancy_present: bool
    discrepancy_explanation: str


@dataclass(frozen=True)
class CreditResult:
    """Antwort des Credit-Systems auf eine Buchung."""

    success: bool
    new_balance: int | None = None
    error: str | None = None


@dataclass(frozen=True)
class CreditTransaction:
    """Eintrag der Credit-Historie."""

    user_id: str
    transaction_type: str  # "purchase", "usage", "refund" oder "bonus"
    credits_change: int
    credits_balance_after: int
    description: str | None
    created_at: str


@dataclass(frozen=True)
class CreditPackage:
    """Käufliches Credit-Paket."""

    id: str
    name: str
    credits: int
    price_euros: float


@dataclass(frozen=True)
class PersistenceReport:
    """Ergebnis einer Speicherung: wie viele Rechnungen erzeugt, wie viele gespeichert.

    Konvention: ``persisted`` wird nach der Konstruktion nicht verändert.
    """

    derived: int
    persisted: list[Invoice]
    error: str | None = None

    @property
    def complete(self) -> bool:
        return self.error is None and len(self.persisted) == self.derived
