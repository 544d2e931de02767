"""Medication box inventory API."""

__version__ = "1.0.0"
