"""Speicherschnittstelle für Rechnungen und eine Referenzimplementierung im Speicher.

An der Speichergrenze werden Datumswerte als ``YYYY-MM-DD`` und
Schlüssel in snake_case abgelegt; intern gilt ``DD.MM.YYYY``.
"""

from __future__ import annotations

import copy
import dataclasses
import datetime
import logging
import threading
import uuid
from collections.abc import Mapping
from typing import Any, Protocol

from faktorino.engine.assembler import compute_totals
from faktorino.models import Invoice, LineItem, PersistenceError, PersistenceReport
from faktorino.parsers.amounts import DISPLAY_DATE_FORMAT

logger = logging.getLogger(__name__)

STORAGE_DATE_FORMAT = "%Y-%m-%d"


class InvoiceRepository(Protocol):
    def create_many(self, user_id: str, invoices: list[Invoice]) -> list[Invoice]: ...

    def list(self, user_id: str) -> list[Invoice]: ...

    def get(self, invoice_id: str) -> Invoice | None: ...

    def update(self, invoice_id: str, changes: Mapping[str, Any]) -> Invoice | None: ...

    def delete(self, invoice_id: str) -> bool: ...

    def delete_all(self, user_id: str) -> bool: ...


def to_storage_date(value: str) -> str:
    """``15.01.2024`` → ``2024-01-15``; bereits gespeicherte Werte bleiben unverändert."""
    try:
        return datetime.datetime.strptime(value, DISPLAY_DATE_FORMAT).date().strftime(STORAGE_DATE_FORMAT)
    except ValueError:
        pass
    try:
        datetime.datetime.strptime(value, STORAGE_DATE_FORMAT)
    except ValueError as e:
        raise PersistenceError(f"Ungültiges Datum: {value!r}") from e
    return value


def to_display_date(value: str) -> str:
    """``2024-01-15`` → ``15.01.2024``."""
    try:
        return datetime.datetime.strptime(value, STORAGE_DATE_FORMAT).date().strftime(DISPLAY_DATE_FORMAT)
    except ValueError as e:
        raise PersistenceError(f"Ungültiges Datum im Speicher: {value!r}") from e


def to_record(invoice: Invoice, user_id: str) -> dict[str, Any]:
    """Rechnung → Datensatz für den Speicher."""
    record = dataclasses.asdict(invoice)
    record["user_id"] = user_id
    record["order_date"] = to_storage_date(invoice.order_date)
    record["service_date"] = to_storage_date(invoice.service_date)
    return record


def from_record(record: Mapping[str, Any]) -> Invoice:
    """Datensatz aus dem Speicher → Rechnung."""
    try:
        items = [item if isinstance(item, LineItem) else LineItem(**item) for item in record["items"]]
        return Invoice(
            invoice_number=record["invoice_number"],
            order_date=to_display_date(record["order_date"]),
            service_date=to_display_date(record["service_date"]),
            buyer_name=record["buyer_name"],
            buyer_address=record["buyer_address"],
            country=record["country"],
            country_classification=record["country_classification"],
            items=items,
            net_total=record["net_total"],
            vat_total=record["vat_total"],
            gross_total=record["gross_total"],
            tax_note=record["tax_note"],
            order_id=record.get("order_id", ""),
            id=record.get("id"),
            is_cancellation=record.get("is_cancellation", False),
        )
    except (KeyError, TypeError) as e:
        raise PersistenceError(f"Unvollständiger Rechnungsdatensatz: {e}") from e


class InMemoryInvoiceRepository:
    """Rechnungsspeicher im Prozess.

    Vergibt UUIDs als ``id``. Rechnungen mit bereits gespeicherter ``id``
    werden beim erneuten Anlegen übersprungen.
    """

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def create_many(self, user_id: str, invoices: list[Invoice]) -> list[Invoice]:
        """Legt einen Block an: entweder alle Rechnungen oder keine.

        Raises:
            PersistenceError: Wenn eine Rechnung nicht abbildbar ist; dann
                bleibt der Speicher unverändert.
        """
        with self._lock:
            records: dict[str, dict[str, Any]] = {}
            for invoice in invoices:
                if invoice.id is not None and (invoice.id in self._records or invoice.id in records):
                    logger.debug("Rechnung %s bereits gespeichert, übersprungen", invoice.id)
                    continue
                invoice_id = invoice.id or str(uuid.uuid4())
                records[invoice_id] = to_record(dataclasses.replace(invoice, id=invoice_id), user_id)
            self._records.update(records)
        return [from_record(record) for record in records.values()]

    def list(self, user_id: str) -> list[Invoice]:
        with self._lock:
            records = [copy.deepcopy(r) for r in self._records.values() if r["user_id"] == user_id]
        return [from_record(r) for r in records]

    def get(self, invoice_id: str) -> Invoice | None:
        with self._lock:
            record = self._records.get(invoice_id)
            record = copy.deepcopy(record) if record is not None else None
        return from_record(record) if record is not None else None

    def update(self, invoice_id: str, changes: Mapping[str, Any]) -> Invoice | None:
        """Übernimmt eine bereits berechnete Teiländerung (Datumswerte im Anzeigeformat)."""
        with self._lock:
            record = self._records.get(invoice_id)
            if record is None:
                return None
            current = from_record(record)
            updated = dataclasses.replace(current, **dict(changes))
            if "items" in changes:
                net, vat, gross = compute_totals(updated.items)
                updated = dataclasses.replace(updated, net_total=net, vat_total=vat, gross_total=gross)
            new_record = to_record(updated, record["user_id"])
            self._records[invoice_id] = new_record
        return from_record(new_record)

    def delete(self, invoice_id: str) -> bool:
        with self._lock:
            return self._records.pop(invoice_id, None) is not None

    def delete_all(self, user_id: str) -> bool:
        with self._lock:
            ids = [i for i, r in self._records.items() if r["user_id"] == user_id]
            for invoice_id in ids:
                del self._records[invoice_id]
        return True


def persist_in_chunks(
    repository: InvoiceRepository,
    user_id: str,
    invoices: list[Invoice],
    chunk_size: int = 10,
) -> PersistenceReport:
    """Speichert in Blöcken; ein fehlerhafter Block bricht die restlichen ab.

    Bereits gespeicherte Blöcke bleiben erhalten; der Bericht nennt
    erzeugte und gespeicherte Rechnungen.
    """
    if chunk_size < 1:
        raise ValueError("chunk_size muss mindestens 1 sein")

    persisted: list[Invoice] = []
    for start in range(0, len(invoices), chunk_size):
        chunk = invoices[start:start + chunk_size]
        try:
            persisted.extend(repository.create_many(user_id, chunk))
        except PersistenceError as e:
            logger.error(
                "Speichern abgebrochen nach %d von %d Rechnung(en): %s",
                len(persisted), len(invoices), e,
            )
            return PersistenceReport(
                derived=len(invoices),
                persisted=persisted,
                error=f"{len(persisted)} von {len(invoices)} Rechnungen gespeichert: {e}",
            )

    logger.info("%d Rechnung(en) für Nutzer %s gespeichert", len(persisted), user_id)
    return PersistenceReport(derived=len(invoices), persisted=persisted)
