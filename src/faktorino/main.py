"""CLI-Einstiegspunkt von faktorino."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from faktorino.config.loader import AppConfig, load_config
from faktorino.models import ConfigError, EmptyInputError, NoInvoicesError, ParseError
from faktorino.pipeline import InvoicePipeline, PayoutPipeline

logger = logging.getLogger("faktorino.main")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s — %(message)s"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Liest die CLI-Argumente."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config-dir",
        default="./config/",
        help="Verzeichnis mit der YAML-Konfiguration (Standard: ./config/)",
    )
    common.add_argument(
        "--log-level",
        default="INFO",
        choices=VALID_LOG_LEVELS,
        help="Log-Level (Standard: INFO)",
    )

    parser = argparse.ArgumentParser(
        prog="faktorino",
        description="Rechnungen aus Etsy-Exporten erstellen und Auszahlungen prüfen",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    invoices = commands.add_parser("invoices", parents=[common], help="Rechnungen aus Etsy-CSV erzeugen")
    invoices.add_argument("csv_files", nargs="+", help="Etsy-Bestellexport(e), in dieser Reihenfolge verkettet")
    invoices.add_argument("-o", "--output", default="rechnungen.xlsx", help="Excel-Ausgabedatei")

    payout = commands.add_parser("payout", parents=[common], help="Etsy-Auszahlung abgleichen")
    payout.add_argument("--gross", type=float, required=True, help="Bruttosumme der Rechnungen")
    payout.add_argument("--fees", type=float, required=True, help="Gebühren & Steuern (negativ als Abzug)")
    payout.add_argument(
        "--unsigned-fees",
        action="store_true",
        help="--fees ist ein positiver Betrag, der abgezogen wird",
    )
    source = payout.add_mutually_exclusive_group(required=True)
    source.add_argument("--payout", type=float, help="Tatsächlich erhaltene Auszahlung")
    source.add_argument("--bank-statement", nargs="+", help="Kontoauszug(e) als CSV")

    return parser.parse_args(args)


def _run_invoices(parsed: argparse.Namespace, config: AppConfig) -> None:
    InvoicePipeline().run(
        input_paths=[Path(p) for p in parsed.csv_files],
        output_path=Path(parsed.output),
        config=config,
    )


def _run_payout(parsed: argparse.Namespace, config: AppConfig) -> None:
    statements = [Path(p).read_bytes() for p in parsed.bank_statement] if parsed.bank_statement else None
    result, statement = PayoutPipeline().validate(
        parsed.gross,
        parsed.fees,
        config,
        payout=parsed.payout,
        bank_statements=statements,
        unsigned_fees=parsed.unsigned_fees,
    )

    print("=== Auszahlungsprüfung ===")
    if statement is not None:
        print(f"Etsy-Buchungen im Kontoauszug : {len(statement.transactions)}")
    print(f"Brutto Rechnungen    : {result.gross_invoices:.2f} €")
    print(f"Gebühren & Steuern   : {result.total_fees:.2f} €")
    print(f"Erwartete Auszahlung : {result.expected_payout:.2f} €")
    print(f"Erhaltene Auszahlung : {result.payout_amount:.2f} €")
    print(f"Differenz            : {result.difference:.2f} €")
    print(result.discrepancy_explanation)


def main(args: list[str] | None = None) -> None:
    """Haupteinstiegspunkt."""
    parsed = parse_args(args)

    logging.basicConfig(
        level=getattr(logging, parsed.log_level),
        format=LOG_FORMAT,
    )

    config_dir = Path(parsed.config_dir)
    try:
        config = load_config(config_dir)
    except ConfigError as e:
        logger.error("Konfigurationsfehler: %s", e)
        sys.exit(2)

    try:
        if parsed.command == "invoices":
            _run_invoices(parsed, config)
        else:
            _run_payout(parsed, config)
    except NoInvoicesError as e:
        print(f"FEHLER: {e}")
        sys.exit(3)
    except (ParseError, EmptyInputError) as e:
        logger.error("Eingabedateien fehlerhaft: %s", e)
        sys.exit(1)
    except Exception:
        logger.exception("Unerwarteter Fehler")
        sys.exit(1)


if __name__ == "__main__":
    main()
