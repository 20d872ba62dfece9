"""Validierung und Anwendung von Einstellungen, die pro Anfrage überschrieben werden."""

from __future__ import annotations

import dataclasses
import re
from typing import Any

from pydantic import BaseModel, field_validator

from faktorino.config.loader import AppConfig

RE_PREFIX = re.compile(r"^[A-Z]{1,5}$")


class InvoicingOverride(BaseModel):
    """Überschreibbare Rechnungseinstellungen."""

    prefix: str | None = None
    placeholder_buyer_name: str | None = None
    digital_orders_to_platform: bool | None = None

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str | None) -> str | None:
        if v is not None and not RE_PREFIX.match(v):
            raise ValueError(f"Ungültiges Rechnungspräfix: '{v}' (1–5 Großbuchstaben)")
        return v

    @field_validator("placeholder_buyer_name")
    @classmethod
    def validate_placeholder(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Platzhalter für den Käufernamen darf nicht leer sein")
        return v


class TaxOverride(BaseModel):
    """Überschreibbare Steuereinstellungen."""

    kleinunternehmer: bool | None = None


class InvoiceOverridesSchema(BaseModel):
    """Pydantic-Schema für die Overrides eines Rechnungslaufs."""

    invoicing: InvoicingOverride | None = None
    tax: TaxOverride | None = None


def apply_overrides(config: AppConfig, overrides: dict[str, Any]) -> AppConfig:
    """Wendet die Overrides an (partielles Merge) und gibt eine Kopie zurück."""
    schema = InvoiceOverridesSchema.model_validate(overrides)

    replacements: dict[str, Any] = {}

    if schema.invoicing:
        invoicing_changes: dict[str, Any] = {}
        if schema.invoicing.prefix is not None:
            invoicing_changes["prefix"] = schema.invoicing.prefix
        if schema.invoicing.placeholder_buyer_name is not None:
            invoicing_changes["placeholder_buyer_name"] = schema.invoicing.placeholder_buyer_name.strip()
        if schema.invoicing.digital_orders_to_platform is not None:
            platform = config.invoicing.platform_recipient
            if platform is None:
                raise ValueError("Kein Plattform-Empfänger konfiguriert")
            invoicing_changes["platform_recipient"] = dataclasses.replace(
                platform, digital_orders=schema.invoicing.digital_orders_to_platform
            )
        if invoicing_changes:
            replacements["invoicing"] = dataclasses.replace(config.invoicing, **invoicing_changes)

    if schema.tax and schema.tax.kleinunternehmer is not None:
        replacements["tax"] = dataclasses.replace(config.tax, kleinunternehmer=schema.tax.kleinunternehmer)

    if not replacements:
        return config

    return dataclasses.replace(config, **replacements)
