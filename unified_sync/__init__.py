"""Unified sync engine: pulls provider records through an integration platform into one object store."""

__version__ = "0.1.0"
