"""
Core utilities for the data-access layer.

This package provides:
- Settings (database URL, engine options, log level)
- Structured logging with context variables
- FastAPI dependency helpers and exception handlers
"""
