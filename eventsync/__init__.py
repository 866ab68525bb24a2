"""Outbound calendar event sync."""

__version__ = "1.0.0"
