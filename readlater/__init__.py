"""Sync core of a read-it-later service."""

__version__ = "0.1.0"
