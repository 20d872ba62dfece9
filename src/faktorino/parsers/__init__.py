"""CSV-Parser für Etsy-Exporte, Kontoauszüge und Abrechnungen."""

from faktorino.parsers.bank_statement import BankStatementParser
from faktorino.parsers.base import BaseParser
from faktorino.parsers.etsy_orders import EtsyOrderParser
from faktorino.parsers.fee_statement import FeeStatementParser
from faktorino.parsers.fields import RawRow, resolve_field

__all__ = [
    "BankStatementParser",
    "BaseParser",
    "EtsyOrderParser",
    "FeeStatementParser",
    "RawRow",
    "resolve_field",
]
