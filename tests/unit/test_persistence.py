"""Tests für services/persistence.py: Speichergrenze und blockweises Speichern."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from faktorino.models import Invoice, LineItem, PersistenceError
from faktorino.services.persistence import (
    InMemoryInvoiceRepository,
    from_record,
    persist_in_chunks,
    to_display_date,
    to_record,
    to_storage_date,
)


class FailingRepository(InMemoryInvoiceRepository):
    """Scheitert ab dem n-ten Aufruf von ``create_many``."""

    def __init__(self, fail_on_call: int) -> None:
        super().__init__()
        self.calls = 0
        self.fail_on_call = fail_on_call

    def create_many(self, user_id: str, invoices: list[Invoice]) -> list[Invoice]:
        self.calls += 1
        if self.calls >= self.fail_on_call:
            raise PersistenceError("Verbindung verloren")
        return super().create_many(user_id, invoices)


class TestDateAdapters:
    def test_display_to_storage(self) -> None:
        assert to_storage_date("15.01.2024") == "2024-01-15"

    def test_storage_value_kept(self) -> None:
        assert to_storage_date("2024-01-15") == "2024-01-15"

    def test_storage_to_display(self) -> None:
        assert to_display_date("2024-01-15") == "15.01.2024"

    def test_invalid_display_date(self) -> None:
        with pytest.raises(PersistenceError, match="Ungültiges Datum"):
            to_storage_date("15/01/2024")

    def test_invalid_storage_date(self) -> None:
        with pytest.raises(PersistenceError):
            to_display_date("15.01.2024")


class TestRecords:
    def test_record_uses_storage_dates(self, invoice_factory: Callable[..., Invoice]) -> None:
        record = to_record(invoice_factory(), "user-1")
        assert record["user_id"] == "user-1"
        assert record["order_date"] == "2024-01-15"
        assert record["service_date"] == "2024-01-17"
        assert record["items"][0]["net_amount"] == 10.0

    def test_round_trip(self, invoice_factory: Callable[..., Invoice]) -> None:
        invoice = invoice_factory(id="abc")
        assert from_record(to_record(invoice, "user-1")) == invoice

    def test_incomplete_record(self, invoice_factory: Callable[..., Invoice]) -> None:
        record = to_record(invoice_factory(), "user-1")
        del record["buyer_name"]
        with pytest.raises(PersistenceError, match="buyer_name"):
            from_record(record)


class TestInMemoryRepository:
    def test_create_assigns_ids(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        created = repo.create_many("user-1", [invoice_factory(), invoice_factory(invoice_number="RE-2024-0002")])
        assert len(created) == 2
        assert all(inv.id for inv in created)
        assert created[0].id != created[1].id
        assert created[0].order_date == "15.01.2024"

    def test_existing_id_skipped(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        first = repo.create_many("user-1", [invoice_factory()])
        again = repo.create_many("user-1", first)
        assert again == []
        assert len(repo.list("user-1")) == 1

    def test_chunk_with_invalid_invoice_stores_nothing(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        chunk = [invoice_factory(), invoice_factory(invoice_number="RE-2024-0002", order_date="kein Datum")]

        with pytest.raises(PersistenceError, match="Ungültiges Datum"):
            repo.create_many("user-1", chunk)

        assert repo.list("user-1") == []

    def test_list_is_per_user(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        repo.create_many("user-1", [invoice_factory()])
        repo.create_many("user-2", [invoice_factory(), invoice_factory()])
        assert len(repo.list("user-1")) == 1
        assert len(repo.list("user-2")) == 2
        assert repo.list("user-3") == []

    def test_get(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        [created] = repo.create_many("user-1", [invoice_factory()])
        assert repo.get(created.id) == created
        assert repo.get("unbekannt") is None

    def test_update_with_items_recomputes_totals(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        [created] = repo.create_many("user-1", [invoice_factory()])
        item = LineItem(quantity=1, name="Tasse", net_amount=100.0, vat_rate=19.0, vat_amount=19.0, gross_amount=119.0)

        updated = repo.update(created.id, {"items": [item], "buyer_name": "Anna Müller"})

        assert updated is not None
        assert updated.buyer_name == "Anna Müller"
        assert updated.gross_total == pytest.approx(119.0)
        assert repo.get(created.id) == updated

    def test_update_unknown(self) -> None:
        assert InMemoryInvoiceRepository().update("unbekannt", {"buyer_name": "x"}) is None

    def test_stored_copy_isolated(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        [created] = repo.create_many("user-1", [invoice_factory()])
        repo.get(created.id).items.clear()  # type: ignore[union-attr]
        assert len(repo.get(created.id).items) == 2  # type: ignore[union-attr]

    def test_delete(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        [created] = repo.create_many("user-1", [invoice_factory()])
        assert repo.delete(created.id) is True
        assert repo.delete(created.id) is False

    def test_delete_all(self, invoice_factory: Callable[..., Invoice]) -> None:
        repo = InMemoryInvoiceRepository()
        repo.create_many("user-1", [invoice_factory(), invoice_factory()])
        repo.create_many("user-2", [invoice_factory()])
        assert repo.delete_all("user-1") is True
        assert repo.list("user-1") == []
        assert len(repo.list("user-2")) == 1
        assert repo.delete_all("user-1") is True


class TestPersistInChunks:
    def test_all_persisted(self, invoice_factory: Callable[..., Invoice]) -> None:
        invoices = [invoice_factory(invoice_number=f"RE-2024-{i:04d}") for i in range(1, 26)]
        report = persist_in_chunks(InMemoryInvoiceRepository(), "user-1", invoices, chunk_size=10)
        assert report.derived == 25
        assert len(report.persisted) == 25
        assert report.error is None
        assert report.complete

    def test_failure_keeps_earlier_chunks(self, invoice_factory: Callable[..., Invoice]) -> None:
        invoices = [invoice_factory(invoice_number=f"RE-2024-{i:04d}") for i in range(1, 26)]
        repo = FailingRepository(fail_on_call=2)

        report = persist_in_chunks(repo, "user-1", invoices, chunk_size=10)

        assert report.derived == 25
        assert len(report.persisted) == 10
        assert report.error is not None
        assert report.error.startswith("10 von 25 Rechnungen gespeichert")
        assert not report.complete
        assert len(repo.list("user-1")) == 10
        assert repo.calls == 2

    def test_empty(self) -> None:
        report = persist_in_chunks(InMemoryInvoiceRepository(), "user-1", [])
        assert report.derived == 0
        assert report.persisted == []

    def test_invalid_chunk_size(self, invoice_factory: Callable[..., Invoice]) -> None:
        with pytest.raises(ValueError):
            persist_in_chunks(InMemoryInvoiceRepository(), "user-1", [invoice_factory()], chunk_size=0)

    def test_error_logged(self, invoice_factory: Callable[..., Invoice], caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("ERROR", logger="faktorino.services.persistence"):
            persist_in_chunks(FailingRepository(fail_on_call=1), "user-1", [invoice_factory()])
        assert "Speichern abgebrochen" in caplog.text
