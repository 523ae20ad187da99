# src/vigisaude/data/errors.py
"""
Error taxonomy for the data access layer.

- FetchError: non-2xx HTTP status, transport failure or undecodable payload
  from any upstream source (InfoDengue, IBGE).
- UnresolvableLocation: a search term or a location label could not be mapped
  to a known geocode / UF.

An empty series is NOT an error: it is the degraded-but-valid
``LocationSummary(series=[], latest=None)`` state (see ``LocationSummary.is_empty``).
"""
from __future__ import annotations

from typing import Optional


class FetchError(RuntimeError):
    """Upstream request failed (HTTP status, transport or payload decoding)."""

    def __init__(self, message: str, *, url: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


class UnresolvableLocation(LookupError):
    """A location query or label does not resolve to a geocode or UF."""

    def __init__(self, query: str):
        super().__init__(f"Localidade não encontrada: {query!r}")
        self.query = query


__all__ = ["FetchError", "UnresolvableLocation"]
