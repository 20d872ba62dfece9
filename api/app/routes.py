"""Endpunkte der API: Rechnungen, Credits, Auszahlungsprüfung, Kontoauszug, Gebühren."""

from __future__ import annotations

import datetime
import json
import logging
from typing import NoReturn

from fastapi import APIRouter, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from faktorino.config.loader import AppConfig
from faktorino.engine.editing import cancellation_number, create_cancellation, update_invoice
from faktorino.engine.numbering import YearlyInvoiceNumberer
from faktorino.exporters.excel import export_to_bytes
from faktorino.models import (
    ConfigError,
    CreditError,
    EmptyInputError,
    FaktorinoError,
    LineItem,
    NoInvoicesError,
    ParseError,
    PersistenceError,
)
from faktorino.parsers import BankStatementParser, FeeStatementParser
from faktorino.pipeline import InvoicePipeline, PayoutPipeline
from faktorino.services.invoicing import InvoiceService
from faktorino.services.persistence import persist_in_chunks

from .overrides import apply_overrides
from .schemas import CreditGrant, InvoicePatch, PayoutRequest
from .serializers import (
    serialize_bank_statement,
    serialize_credit_transaction,
    serialize_fees,
    serialize_invoice,
    serialize_package,
    serialize_payout,
    serialize_report,
    serialize_response,
)

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
MAX_FILES = 20


async def _validate_and_read_files(files: list[UploadFile]) -> list[bytes]:
    """Prüft die Uploads und gibt ihre Inhalte in Upload-Reihenfolge zurück."""
    if len(files) > MAX_FILES:
        raise HTTPException(
            status_code=422,
            detail=f"Zu viele Dateien: {len(files)} (maximal {MAX_FILES}).",
        )

    contents: list[bytes] = []
    for f in files:
        filename = f.filename or "unknown"
        if not filename.lower().endswith(".csv"):
            raise HTTPException(
                status_code=422,
                detail=f"Ungültige Dateiendung bei '{filename}': nur .csv-Dateien sind erlaubt.",
            )
        content = await f.read()
        if len(content) > MAX_FILE_SIZE:
            raise HTTPException(
                status_code=413,
                detail=f"Datei '{filename}' zu groß: {len(content)} Bytes (maximal {MAX_FILE_SIZE}).",
            )
        contents.append(content)

    return contents


def _resolve_config(request: Request, overrides_json: str | None) -> AppConfig:
    """Liest optionale Overrides (JSON) und wendet sie auf die Konfiguration an."""
    config = request.app.state.config
    if overrides_json:
        try:
            overrides_dict = json.loads(overrides_json)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=422, detail=f"Ungültiges JSON in overrides: {e}")
        try:
            config = apply_overrides(config, overrides_dict)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=f"Ungültige Overrides: {e}")
    return config


def _raise_http(error: FaktorinoError) -> NoReturn:
    """Übersetzt fachliche Fehler in HTTP-Statuscodes."""
    if isinstance(error, (ParseError, EmptyInputError, NoInvoicesError)):
        raise HTTPException(status_code=422, detail=str(error))
    if isinstance(error, CreditError):
        raise HTTPException(status_code=402, detail=str(error))
    if isinstance(error, PersistenceError):
        logger.error("Speicherfehler: %s", error)
        raise HTTPException(status_code=502, detail=f"Speicherfehler: {error}")
    if isinstance(error, ConfigError):
        logger.error("Konfigurationsfehler: %s", error)
        raise HTTPException(status_code=500, detail="Interner Konfigurationsfehler")
    logger.error("Unerwarteter Fehler: %s", error)
    raise HTTPException(status_code=500, detail="Interner Fehler")


# --- Rechnungslauf ohne Speicherung ---


@router.post("/api/invoices/generate")
async def generate(
    request: Request,
    files: list[UploadFile],
    overrides: str | None = Form(None),
) -> JSONResponse:
    """Upload CSV → JSON (invoices, summary, anomalies)."""
    contents = await _validate_and_read_files(files)
    config = _resolve_config(request, overrides)

    try:
        result, anomalies = InvoicePipeline().run_from_buffers(contents, config)
    except FaktorinoError as e:
        _raise_http(e)

    return JSONResponse(content=serialize_response(result, anomalies))


@router.post("/api/invoices/download/excel")
async def download_excel(
    request: Request,
    files: list[UploadFile],
    overrides: str | None = Form(None),
) -> StreamingResponse:
    """Upload CSV → Rechnungsjournal (.xlsx) als Download."""
    contents = await _validate_and_read_files(files)
    config = _resolve_config(request, overrides)

    try:
        result, anomalies = InvoicePipeline().run_from_buffers(contents, config)
    except FaktorinoError as e:
        _raise_http(e)

    buffer = export_to_bytes(result.invoices, anomalies)
    today = datetime.date.today().isoformat()
    filename = f"rechnungen-{today}.xlsx"

    return StreamingResponse(
        buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# --- Gespeicherte Rechnungen ---


@router.post("/api/users/{user_id}/invoices")
async def create_user_invoices(
    user_id: str,
    request: Request,
    files: list[UploadFile],
    overrides: str | None = Form(None),
) -> JSONResponse:
    """Upload CSV → Rechnungen erzeugen, Credits abbuchen, blockweise speichern."""
    contents = await _validate_and_read_files(files)
    config = _resolve_config(request, overrides)
    state = request.app.state
    numberer = YearlyInvoiceNumberer(
        state.counter_store,
        prefix=config.invoicing.prefix,
        width=config.invoicing.counter_width,
    )

    try:
        result, _anomalies = InvoicePipeline().run_from_buffers(contents, config, numberer)
        report = InvoiceService(state.repository, state.ledger, config).create_invoices(
            user_id, result.invoices
        )
    except FaktorinoError as e:
        _raise_http(e)

    return JSONResponse(content=serialize_report(report))


@router.get("/api/users/{user_id}/invoices")
async def list_invoices(user_id: str, request: Request) -> JSONResponse:
    try:
        invoices = request.app.state.repository.list(user_id)
    except PersistenceError as e:
        _raise_http(e)
    return JSONResponse(content={"invoices": [serialize_invoice(i) for i in invoices]})


@router.delete("/api/users/{user_id}/invoices")
async def delete_all_invoices(user_id: str, request: Request) -> dict[str, bool]:
    try:
        deleted = request.app.state.repository.delete_all(user_id)
    except PersistenceError as e:
        _raise_http(e)
    return {"deleted": deleted}


@router.patch("/api/invoices/{invoice_id}")
async def patch_invoice(invoice_id: str, patch: InvoicePatch, request: Request) -> JSONResponse:
    """Änderung durch den Nutzer; Positionen und Summen werden neu berechnet."""
    repository = request.app.state.repository
    try:
        invoice = repository.get(invoice_id)
    except PersistenceError as e:
        _raise_http(e)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Rechnung {invoice_id} nicht gefunden")

    fields = {
        "buyer_name": patch.buyerName,
        "buyer_address": patch.buyerAddress,
        "order_date": patch.orderDate,
        "service_date": patch.serviceDate,
        "tax_note": patch.taxNote,
    }
    changes: dict[str, object] = {k: v for k, v in fields.items() if v is not None}
    if patch.items is not None:
        changes["items"] = [
            LineItem(
                quantity=i.quantity,
                name=i.name,
                net_amount=i.netAmount,
                vat_rate=i.vatRate,
                vat_amount=0.0,
                gross_amount=0.0,
            )
            for i in patch.items
        ]

    try:
        updated = update_invoice(invoice, changes)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    stored_changes = {key: getattr(updated, key) for key in changes}
    stored_changes.update(
        net_total=updated.net_total,
        vat_total=updated.vat_total,
        gross_total=updated.gross_total,
    )
    try:
        stored = repository.update(invoice_id, stored_changes)
    except PersistenceError as e:
        _raise_http(e)
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Rechnung {invoice_id} nicht gefunden")
    return JSONResponse(content=serialize_invoice(stored))


@router.delete("/api/invoices/{invoice_id}")
async def delete_invoice(invoice_id: str, request: Request) -> dict[str, bool]:
    try:
        deleted = request.app.state.repository.delete(invoice_id)
    except PersistenceError as e:
        _raise_http(e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Rechnung {invoice_id} nicht gefunden")
    return {"deleted": True}


@router.post("/api/invoices/{invoice_id}/cancellation")
async def cancel_invoice(invoice_id: str, user_id: str, request: Request) -> JSONResponse:
    """Erstellt und speichert eine Stornorechnung (ohne Credit-Abbuchung)."""
    state = request.app.state
    try:
        owned = {i.id: i for i in state.repository.list(user_id)}
    except PersistenceError as e:
        _raise_http(e)
    invoice = owned.get(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail=f"Rechnung {invoice_id} nicht gefunden")
    number = cancellation_number(invoice)
    if any(i.is_cancellation and i.invoice_number == number for i in owned.values()):
        raise HTTPException(status_code=409, detail=f"Rechnung {invoice.invoice_number} wurde bereits storniert ({number})")

    try:
        cancellation = create_cancellation(invoice)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    report = persist_in_chunks(state.repository, user_id, [cancellation], state.config.chunk_size)
    if not report.persisted:
        raise HTTPException(status_code=502, detail=report.error or "Stornorechnung nicht gespeichert")
    return JSONResponse(content=serialize_invoice(report.persisted[0]))


# --- Credits ---


@router.get("/api/users/{user_id}/credits")
async def get_credits(user_id: str, request: Request) -> JSONResponse:
    ledger = request.app.state.ledger
    return JSONResponse(content={
        "balance": ledger.get_balance(user_id),
        "transactions": [serialize_credit_transaction(t) for t in ledger.transactions(user_id)],
    })


@router.post("/api/users/{user_id}/credits")
async def add_credits(user_id: str, grant: CreditGrant, request: Request) -> JSONResponse:
    """Gutschrift nach abgeschlossenem Kauf (Paket oder freie Anzahl)."""
    state = request.app.state
    if grant.packageId is not None:
        package = next((p for p in state.config.credit_packages if p.id == grant.packageId), None)
        if package is None:
            raise HTTPException(status_code=404, detail=f"Credit-Paket '{grant.packageId}' nicht gefunden")
        count = package.credits
        description = grant.description or f"Kauf Paket {package.name}"
    elif grant.credits is not None:
        count = grant.credits
        description = grant.description or f"{count} Credits gekauft"
    else:
        raise HTTPException(status_code=422, detail="Entweder packageId oder credits angeben")

    result = state.ledger.add_credits(user_id, count, description)
    if not result.success:
        raise HTTPException(status_code=422, detail=result.error)
    return JSONResponse(content={"balance": result.new_balance})


@router.get("/api/credit-packages")
async def credit_packages(request: Request) -> JSONResponse:
    return JSONResponse(content={
        "packages": [serialize_package(p) for p in request.app.state.config.credit_packages],
    })


# --- Auszahlung, Kontoauszug, Gebühren ---


@router.post("/api/payout/validate")
async def validate_payout(body: PayoutRequest, request: Request) -> JSONResponse:
    result, _statement = PayoutPipeline().validate(
        body.grossInvoices,
        body.totalFees,
        request.app.state.config,
        payout=body.payoutAmount,
        unsigned_fees=body.feesUnsigned,
    )
    return JSONResponse(content=serialize_payout(result))


@router.post("/api/bank-statement")
async def bank_statement(request: Request, files: list[UploadFile]) -> JSONResponse:
    """Kontoauszug(e) → Etsy-Buchungen und deren Summe."""
    contents = await _validate_and_read_files(files)
    try:
        result = BankStatementParser(request.app.state.config).parse_buffers(contents)
    except FaktorinoError as e:
        _raise_http(e)
    return JSONResponse(content=serialize_bank_statement(result))


@router.post("/api/fees")
async def fees(request: Request, files: list[UploadFile]) -> JSONResponse:
    """Etsy-Abrechnung → Umsatz, Gebühren & Steuern, Netto."""
    contents = await _validate_and_read_files(files)
    try:
        summary = FeeStatementParser(request.app.state.config).parse_buffers(contents)
    except FaktorinoError as e:
        _raise_http(e)
    return JSONResponse(content=serialize_fees(summary))


@router.get("/api/health")
async def health() -> dict[str, str]:
    """Health-Check."""
    return {"status": "ok"}
