"""Laari Khojo - WhatsApp location ingestion for street-food vendors."""

__version__ = "0.1.0"
