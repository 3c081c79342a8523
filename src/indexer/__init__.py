"""Keeps a search index in sync with repository change notifications."""

__version__ = "0.1.0"
