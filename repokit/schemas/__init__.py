"""Pydantic schemas shared by the HTTP helpers."""

from .common import ErrorInfo, ErrorResponse

__all__ = ["ErrorInfo", "ErrorResponse"]
