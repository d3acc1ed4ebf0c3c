"""Rental period pricing and per-variant stock reservation for the storefront backend."""

__version__ = "0.1.0"
