"""Abgleich der Etsy-Auszahlung mit Rechnungssummen und Gebühren.

Vorzeichenkonvention: Gebühren werden vorzeichenbehaftet übergeben
(Abzüge negativ) und zum Bruttobetrag ADDIERT. Positive Gebührenbeträge,
wie sie Nutzer häufig eintippen, gehen über :meth:`reconcile_unsigned_fees`.
"""

from __future__ import annotations

import logging

from faktorino.models import Anomaly, PayoutValidationResult

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01  # Euro

DISCREPANCY_EXPLANATION = (
    "Zwischen erwarteter und tatsächlicher Auszahlung besteht eine Abweichung. "
    "Mögliche Ursachen sind Erstattungen, Rückbuchungen (Chargebacks) oder andere "
    "Transaktionsanpassungen. Bitte prüfen Sie Ihren Etsy-Transaktionsverlauf."
)
NO_DISCREPANCY_EXPLANATION = "Keine wesentliche Abweichung zwischen erwarteter und tatsächlicher Auszahlung."


class PayoutReconciler:
    """Auszahlungsprüfung: erwartet = brutto + Gebühren (Gebühren negativ)."""

    @staticmethod
    def reconcile(
        gross_invoices: float | None,
        total_fees: float | None,
        actual_payout: float | None,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> PayoutValidationResult:
        """Berechnet erwartete Auszahlung und Differenz (erwartet − tatsächlich).

        ``None`` zählt als 0. Die Beträge im Ergebnis sind auf Cent gerundet;
        die Abweichungsprüfung erfolgt auf der gerundeten Differenz.
        """
        gross = gross_invoices or 0.0
        fees = total_fees or 0.0
        payout = actual_payout or 0.0

        expected = round(gross + fees, 2)
        difference = round(expected - payout, 2)
        discrepancy = abs(difference) > tolerance

        if discrepancy:
            logger.warning(
                "Auszahlung weicht ab: erwartet %.2f, erhalten %.2f (Differenz %.2f)",
                expected, payout, difference,
            )
        else:
            logger.info("Auszahlung stimmt: %.2f", payout)

        return PayoutValidationResult(
            gross_invoices=round(gross, 2),
            total_fees=round(fees, 2),
            expected_payout=expected,
            payout_amount=round(payout, 2),
            difference=difference,
            is_discrepancy_present=discrepancy,
            discrepancy_explanation=DISCREPANCY_EXPLANATION if discrepancy else NO_DISCREPANCY_EXPLANATION,
        )

    @staticmethod
    def reconcile_unsigned_fees(
        gross_invoices: float | None,
        total_fees: float | None,
        actual_payout: float | None,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> PayoutValidationResult:
        """Wie :meth:`reconcile`, für Gebühren als positiven Betrag (brutto − Gebühren)."""
        signed_fees = -abs(total_fees) if total_fees else 0.0
        return PayoutReconciler.reconcile(gross_invoices, signed_fees, actual_payout, tolerance)

    @staticmethod
    def check(result: PayoutValidationResult, reference: str = "auszahlung") -> list[Anomaly]:
        """Überführt eine Abweichung in eine Anomalie für den Export."""
        if not result.is_discrepancy_present:
            return []
        return [
            Anomaly(
                type="payout_mismatch",
                severity="warning",
                reference=reference,
                detail=(
                    f"Auszahlung weicht um {result.difference:.2f} € von der erwarteten "
                    f"Auszahlung ab (brutto {result.gross_invoices:.2f} €, Gebühren {result.total_fees:.2f} €)"
                ),
                expected_value=f"{result.expected_payout:.2f}",
                actual_value=f"{result.payout_amount:.2f}",
            )
        ]
