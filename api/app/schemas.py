"""Pydantic-Modelle für JSON-Anfragen der API (Feldnamen wie im Frontend: camelCase)."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class LineItemIn(BaseModel):
    """Bearbeitete Rechnungsposition; USt. und Brutto werden serverseitig neu berechnet."""

    quantity: int = Field(ge=0)
    name: str
    netAmount: float
    vatRate: float = Field(ge=0, le=100)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Bezeichnung der Position darf nicht leer sein")
        return v.strip()


class InvoicePatch(BaseModel):
    """Änderbare Felder einer gespeicherten Rechnung."""

    buyerName: str | None = None
    buyerAddress: str | None = None
    orderDate: str | None = None
    serviceDate: str | None = None
    taxNote: str | None = None
    items: list[LineItemIn] | None = None


class PayoutRequest(BaseModel):
    """Eingaben der Auszahlungsprüfung; fehlende Beträge zählen als 0."""

    grossInvoices: float | None = None
    totalFees: float | None = None
    payoutAmount: float | None = None
    feesUnsigned: bool = False


class CreditGrant(BaseModel):
    """Gutschrift nach abgeschlossenem Kauf: entweder ein Paket oder eine Anzahl."""

    packageId: str | None = None
    credits: int | None = Field(default=None, gt=0)
    description: str | None = None

    @field_validator("packageId")
    @classmethod
    def validate_package(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("packageId darf nicht leer sein")
        return v
