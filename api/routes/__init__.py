"""Rutas de la API."""

from . import admin, ai, data, mock, mockoon, realtime, specs

__all__ = ["admin", "ai", "data", "mock", "mockoon", "realtime", "specs"]
