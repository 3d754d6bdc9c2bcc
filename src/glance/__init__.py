"""Glance - directory-level summaries for a source tree, kept in sync incrementally."""

__version__ = "0.4.0"
