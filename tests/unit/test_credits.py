"""Tests für services/credits.py."""

from __future__ import annotations

import threading

from faktorino.services.credits import (
    BONUS,
    INSUFFICIENT_CREDITS,
    PURCHASE,
    REFUND,
    USAGE,
    InMemoryCreditLedger,
)


class TestBalance:
    def test_unknown_user_has_zero(self) -> None:
        assert InMemoryCreditLedger().get_balance("neu") == 0

    def test_initial_balances(self) -> None:
        assert InMemoryCreditLedger({"user-1": 5}).get_balance("user-1") == 5


class TestUseCredits:
    def test_success(self) -> None:
        ledger = InMemoryCreditLedger({"user-1": 5})
        result = ledger.use_credits("user-1", 3, "3 Rechnungen")
        assert result.success is True
        assert result.new_balance == 2
        assert ledger.get_balance("user-1") == 2

    def test_exact_balance(self) -> None:
        ledger = InMemoryCreditLedger({"user-1": 3})
        assert ledger.use_credits("user-1", 3).new_balance == 0

    def test_insufficient_is_not_partial(self) -> None:
        ledger = InMemoryCreditLedger({"user-1": 2})
        result = ledger.use_credits("user-1", 3)
        assert result.success is False
        assert result.error == INSUFFICIENT_CREDITS
        assert result.new_balance == 2
        assert ledger.get_balance("user-1") == 2
        assert ledger.transactions("user-1") == []

    def test_negative_count(self) -> None:
        assert InMemoryCreditLedger({"user-1": 2}).use_credits("user-1", -1).success is False

    def test_usage_recorded(self) -> None:
        ledger = InMemoryCreditLedger({"user-1": 5})
        ledger.use_credits("user-1", 2, "2 Rechnung(en) erstellt")
        [tx] = ledger.transactions("user-1")
        assert tx.transaction_type == USAGE
        assert tx.credits_change == -2
        assert tx.credits_balance_after == 3
        assert tx.description == "2 Rechnung(en) erstellt"
        assert tx.created_at.endswith("+00:00")

    def test_concurrent_usage_never_negative(self) -> None:
        ledger = InMemoryCreditLedger({"user-1": 50})
        results: list[bool] = []
        results_lock = threading.Lock()

        def worker() -> None:
            for _ in range(10):
                ok = ledger.use_credits("user-1", 1).success
                with results_lock:
                    results.append(ok)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(True) == 50
        assert ledger.get_balance("user-1") == 0


class TestAddCredits:
    def test_purchase(self) -> None:
        ledger = InMemoryCreditLedger()
        result = ledger.add_credits("user-1", 50, "Starter")
        assert result.success is True
        assert result.new_balance == 50
        assert ledger.transactions("user-1")[0].transaction_type == PURCHASE

    def test_refund_and_bonus(self) -> None:
        ledger = InMemoryCreditLedger()
        ledger.add_credits("user-1", 2, transaction_type=REFUND)
        ledger.add_credits("user-1", 10, transaction_type=BONUS)
        assert ledger.get_balance("user-1") == 12

    def test_non_positive_rejected(self) -> None:
        ledger = InMemoryCreditLedger()
        assert ledger.add_credits("user-1", 0).success is False
        assert ledger.get_balance("user-1") == 0

    def test_usage_type_rejected(self) -> None:
        assert InMemoryCreditLedger().add_credits("user-1", 5, transaction_type=USAGE).success is False

    def test_unknown_type_rejected(self) -> None:
        result = InMemoryCreditLedger().add_credits("user-1", 5, transaction_type="geschenk")
        assert result.success is False
        assert "geschenk" in (result.error or "")


class TestTransactions:
    def test_newest_first_and_limit(self) -> None:
        ledger = InMemoryCreditLedger()
        for count in (1, 2, 3):
            ledger.add_credits("user-1", count)
        history = ledger.transactions("user-1", limit=2)
        assert [t.credits_change for t in history] == [3, 2]

    def test_per_user(self) -> None:
        ledger = InMemoryCreditLedger()
        ledger.add_credits("user-1", 1)
        ledger.add_credits("user-2", 1)
        assert len(ledger.transactions("user-1")) == 1
