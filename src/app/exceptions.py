"""
Custom exceptions for the collection route optimization service.
"""

from __future__ import annotations


class RouteOptimizationError(Exception):
    """Base exception for the application."""
    pass


class InvalidConstraintError(RouteOptimizationError, ValueError):
    """Raised when routing constraints are missing or out of range."""
    pass


class StoreError(RouteOptimizationError):
    """Raised when a document store write or read fails after retries."""
    pass
