"""Stylist Search Service: category search, verification and outfit composition."""
__version__ = "1.0.0"
