"""Utility helpers for application-wide functionality."""

from .number import coerce_int

__all__ = ["coerce_int"]
