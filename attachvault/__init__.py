"""Versioned file attachments with scoped retention policies."""

__version__ = "1.0.0"
