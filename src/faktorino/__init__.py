"""faktorino: Rechnungen aus Etsy-Exporten und Auszahlungsabgleich."""

__version__ = "0.4.0"
