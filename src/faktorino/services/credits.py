"""Credit-Abrechnung: ein Credit pro erstellter Rechnung."""

from __future__ import annotations

import datetime
import logging
import threading
from typing import Protocol

from faktorino.models import CreditResult, CreditTransaction

logger = logging.getLogger(__name__)

INSUFFICIENT_CREDITS = "Nicht genügend Credits verfügbar"

PURCHASE = "purchase"
USAGE = "usage"
REFUND = "refund"
BONUS = "bonus"
TRANSACTION_TYPES = (PURCHASE, USAGE, REFUND, BONUS)


class CreditLedger(Protocol):
    def get_balance(self, user_id: str) -> int: ...

    def use_credits(self, user_id: str, count: int, description: str | None = None) -> CreditResult: ...

    def add_credits(
        self,
        user_id: str,
        count: int,
        description: str | None = None,
        transaction_type: str = PURCHASE,
    ) -> CreditResult: ...

    def transactions(self, user_id: str, limit: int = 50) -> list[CreditTransaction]: ...


class InMemoryCreditLedger:
    """Credit-Konten im Speicher.

    Prüfen und Abbuchen passieren unter einer gemeinsamen Sperre: eine
    Abbuchung über den Kontostand hinaus scheitert ohne Teilbuchung.
    """

    def __init__(self, initial: dict[str, int] | None = None) -> None:
        self._balances: dict[str, int] = dict(initial or {})
        self._history: list[CreditTransaction] = []
        self._lock = threading.Lock()

    def get_balance(self, user_id: str) -> int:
        with self._lock:
            return self._balances.get(user_id, 0)

    def use_credits(self, user_id: str, count: int, description: str | None = None) -> CreditResult:
        if count < 0:
            return CreditResult(success=False, error="Anzahl der Credits darf nicht negativ sein")
        with self._lock:
            balance = self._balances.get(user_id, 0)
            if count > balance:
                logger.info("Nutzer %s: %d Credit(s) angefragt, nur %d verfügbar", user_id, count, balance)
                return CreditResult(success=False, new_balance=balance, error=INSUFFICIENT_CREDITS)
            new_balance = balance - count
            self._balances[user_id] = new_balance
            self._record(user_id, USAGE, -count, new_balance, description)
        return CreditResult(success=True, new_balance=new_balance)

    def add_credits(
        self,
        user_id: str,
        count: int,
        description: str | None = None,
        transaction_type: str = PURCHASE,
    ) -> CreditResult:
        if count <= 0:
            return CreditResult(success=False, error="Anzahl der Credits muss positiv sein")
        if transaction_type not in TRANSACTION_TYPES or transaction_type == USAGE:
            return CreditResult(success=False, error=f"Ungültiger Buchungstyp: {transaction_type}")
        with self._lock:
            new_balance = self._balances.get(user_id, 0) + count
            self._balances[user_id] = new_balance
            self._record(user_id, transaction_type, count, new_balance, description)
        logger.info("Nutzer %s: %d Credit(s) gutgeschrieben (%s)", user_id, count, transaction_type)
        return CreditResult(success=True, new_balance=new_balance)

    def transactions(self, user_id: str, limit: int = 50) -> list[CreditTransaction]:
        """Neueste Buchungen zuerst."""
        with self._lock:
            own = [t for t in self._history if t.user_id == user_id]
        return list(reversed(own))[:limit]

    def _record(
        self,
        user_id: str,
        transaction_type: str,
        change: int,
        balance_after: int,
        description: str | None,
    ) -> None:
        self._history.append(CreditTransaction(
            user_id=user_id,
            transaction_type=transaction_type,
            credits_change=change,
            credits_balance_after=balance_after,
            description=description,
            created_at=datetime.datetime.now(datetime.timezone.utc).isoformat(),
        ))
