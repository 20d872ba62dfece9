"""Rechnungserzeugung aus Etsy-Bestellzeilen."""

from __future__ import annotations

from faktorino.config.loader import AppConfig
from faktorino.engine.aggregator import OrderAggregator
from faktorino.engine.assembler import InvoiceAssembler
from faktorino.engine.numbering import InvoiceNumberer
from faktorino.models import AggregationResult
from faktorino.parsers.fields import RawRow


def generate_invoices(
    rows: list[RawRow],
    config: AppConfig | None = None,
    numberer: InvoiceNumberer | None = None,
) -> AggregationResult:
    """Gruppiert die Zeilen zu Bestellungen und erzeugt eine Rechnung pro Bestellung.

    Ohne ``numberer`` beginnt die Nummerierung bei ``RE-<Jahr>-0001``.

    Raises:
        NoInvoicesError: Wenn keine Bestellung eine abrechenbare Position enthält.
    """
    config = config or AppConfig()
    orders = OrderAggregator(config).aggregate(rows)
    return InvoiceAssembler(config, numberer).assemble(orders)


__all__ = [
    "generate_invoices",
]
