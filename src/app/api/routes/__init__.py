"""Route group exports."""

from . import collections, health, routes

__all__ = ["routes", "collections", "health"]
