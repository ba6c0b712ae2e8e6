"""Route group exports."""

from . import drivers, health, roster, routes

__all__ = ["drivers", "health", "roster", "routes"]
