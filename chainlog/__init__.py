"""Structured JSON log events with chained fields, a console writer and a diode writer."""

__version__ = "0.1.0"

__all__ = ["__version__"]