"""Slug generation and resolution for the FixUp services marketplace."""

__version__ = "0.3.0"
