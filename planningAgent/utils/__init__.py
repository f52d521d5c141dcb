"""Shared helpers: logging and error handling."""
