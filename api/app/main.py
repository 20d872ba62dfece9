"""FastAPI-Anwendung: Einstiegspunkt des Backends."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from faktorino.config.loader import load_config
from faktorino.engine.numbering import InMemoryCounterStore
from faktorino.services.credits import InMemoryCreditLedger
from faktorino.services.persistence import InMemoryInvoiceRepository

from .routes import router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Lädt die YAML-Konfiguration und legt die Speicher beim Start an."""
    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    application.state.config = load_config(config_dir)
    application.state.repository = InMemoryInvoiceRepository()
    application.state.ledger = InMemoryCreditLedger()
    application.state.counter_store = InMemoryCounterStore()
    logger.info("Konfiguration geladen aus %s", config_dir)
    yield


app = FastAPI(
    title="faktorino API",
    description="REST-API für Etsy-Rechnungen, Auszahlungsprüfung und Credits.",
    lifespan=lifespan,
)

# CORS
cors_origins = os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_methods=["POST", "GET", "PATCH", "DELETE"],
    allow_headers=["*"],
)

app.include_router(router)
