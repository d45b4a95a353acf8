"""
Envoltorio estándar de respuesta { data, error, meta } de la API NAV.
Los endpoints devuelven ok(); los exception handlers globales usan err().
"""

from typing import Any


def _envelope(data: Any, error: str | None, meta: dict | None) -> dict:
    return {"data": data, "error": error, "meta": meta or {}}


def ok(data: Any = None, meta: dict | None = None) -> dict:
    """Respuesta exitosa; data=None es válido (p. ej. todavía no hay NAV)."""
    return _envelope(data, None, meta)


def err(message: str, meta: dict | None = None) -> dict:
    return _envelope(None, message, meta)
