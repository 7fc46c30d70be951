"""Snippetbox: share short text snippets that expire."""

__version__ = "1.0.0"
