"""Vergabe von Rechnungsnummern (``RE-<Jahr>-<laufende Nummer>``)."""

from __future__ import annotations

import datetime
import threading
from typing import Protocol


class InvoiceNumberer(Protocol):
    def next_number(self) -> str: ...


class CounterStore(Protocol):
    """Persistenter Zähler; ``increment`` muss atomar sein."""

    def increment(self, key: str) -> int: ...


def format_invoice_number(prefix: str, year: int, counter: int, width: int = 4) -> str:
    return f"{prefix}-{year}-{counter:0{width}d}"


class SequentialInvoiceNumberer:
    """Zähler pro Lauf: jede Rechnungserzeugung beginnt wieder bei ``start``."""

    def __init__(self, prefix: str = "RE", year: int | None = None, width: int = 4, start: int = 1) -> None:
        self.prefix = prefix
        self.year = year or datetime.date.today().year
        self.width = width
        self._next = start

    def next_number(self) -> str:
        number = format_invoice_number(self.prefix, self.year, self._next, self.width)
        self._next += 1
        return number


class InMemoryCounterStore:
    """Thread-sicherer Zähler im Speicher, ein Stand pro Schlüssel."""

    def __init__(self) -> None:
        self._counters: dict[str, int] = {}
        self._lock = threading.Lock()

    def increment(self, key: str) -> int:
        with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def current(self, key: str) -> int:
        with self._lock:
            return self._counters.get(key, 0)


class YearlyInvoiceNumberer:
    """Fortlaufende Nummern pro Jahr über alle Läufe und Nutzer hinweg.

    Der Zählerstand liegt im ``CounterStore``; der Schlüssel ist
    ``<prefix>-<Jahr>``, sodass jedes Jahr wieder bei 1 beginnt.
    """

    def __init__(
        self,
        counter_store: CounterStore,
        prefix: str = "RE",
        width: int = 4,
        today: datetime.date | None = None,
    ) -> None:
        self.counter_store = counter_store
        self.prefix = prefix
        self.width = width
        self._today = today

    def next_number(self) -> str:
        year = (self._today or datetime.date.today()).year
        counter = self.counter_store.increment(f"{self.prefix}-{year}")
        return format_invoice_number(self.prefix, year, counter, self.width)
