"""Shared helpers: errors, dates, validation and API responses."""
