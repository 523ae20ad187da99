"""
Global configuration for VigiSaúde Brasil.

Centralizes upstream API endpoints, map/drill-down tunables and logging level.
All values can be overridden via environment variables (or a project-root
``.env`` loaded by the web app).

Environment variables (selected):
  - INFODENGUE_API_URL          (default: "https://info.dengue.mat.br/api")
  - IBGE_API_URL                (default: "https://servicodados.ibge.gov.br/api")
  - HTTP_TIMEOUT                (default: "30")
  - MUNICIPALITY_ZOOM_THRESHOLD (default: "6")
  - NATIONAL_TRAILING_WEEKS     (default: "4")
  - BULK_TRAILING_WEEKS         (default: "2")
  - FALLBACK_YEARS_BACK         (default: "3")
  - TRACKED_DISEASES            (JSON list or comma-separated)
  - LOG_LEVEL                   (default: "INFO")
"""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterable, Tuple

# Project root: .../vigisaude (repo)
PROJECT_ROOT = Path(__file__).resolve().parents[3]


# -------------------------
# Small helpers
# -------------------------

def _list_env(name: str, default: Iterable[str] = ()) -> Tuple[str, ...]:
    """
    Read a list-like environment variable from JSON or CSV.

    Priority:
      1) If value looks like JSON ('[...]'), try to parse JSON list.
      2) Otherwise, split by comma and trim.

    Args:
        name: Environment variable name.
        default: Fallback iterable of strings.

    Returns:
        Tuple[str, ...]: Parsed items or defaults.
    """
    value = os.getenv(name, "")
    if value.strip().startswith("["):
        try:
            parsed = json.loads(value)
        except json.JSONDecodeError:
            return tuple(default)
        if isinstance(parsed, list):
            return tuple(str(x).strip() for x in parsed if str(x).strip())
        return tuple(default)
    items = [x.strip() for x in value.split(",") if x.strip()]
    return tuple(items) or tuple(default)


# -------------------------
# Upstream APIs
# -------------------------

INFODENGUE_API_URL: str = os.getenv("INFODENGUE_API_URL", "https://info.dengue.mat.br/api").rstrip("/")
IBGE_API_URL: str = os.getenv("IBGE_API_URL", "https://servicodados.ibge.gov.br/api").rstrip("/")
HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))


# -------------------------
# Surveillance windows
# -------------------------

NATIONAL_TRAILING_WEEKS: int = int(os.getenv("NATIONAL_TRAILING_WEEKS", "4"))
BULK_TRAILING_WEEKS: int = int(os.getenv("BULK_TRAILING_WEEKS", "2"))
FALLBACK_YEARS_BACK: int = int(os.getenv("FALLBACK_YEARS_BACK", "3"))

TRACKED_DISEASES: Tuple[str, ...] = _list_env(
    "TRACKED_DISEASES",
    ["dengue", "chikungunya", "zika"],
)
DEFAULT_DISEASE: str = TRACKED_DISEASES[0]


# -------------------------
# Map
# -------------------------

MUNICIPALITY_ZOOM_THRESHOLD: int = int(os.getenv("MUNICIPALITY_ZOOM_THRESHOLD", "6"))
MAP_CENTER: Tuple[float, float] = (-14.5, -51.0)
MAP_ZOOM_START: int = 4
MAP_MIN_ZOOM: int = 3
MAP_MAX_ZOOM: int = 12
MAP_TILES: str = "https://{s}.basemaps.cartocdn.com/dark_nolabels/{z}/{x}/{y}{r}.png"
MAP_ATTRIBUTION: str = "&copy; CARTO | Dados: InfoDengue, IBGE, SNIS"


# -------------------------
# Logging
# -------------------------

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


__all__ = [
    "PROJECT_ROOT",
    # APIs
    "INFODENGUE_API_URL",
    "IBGE_API_URL",
    "HTTP_TIMEOUT",
    # Windows
    "NATIONAL_TRAILING_WEEKS",
    "BULK_TRAILING_WEEKS",
    "FALLBACK_YEARS_BACK",
    "TRACKED_DISEASES",
    "DEFAULT_DISEASE",
    # Map
    "MUNICIPALITY_ZOOM_THRESHOLD",
    "MAP_CENTER",
    "MAP_ZOOM_START",
    "MAP_MIN_ZOOM",
    "MAP_MAX_ZOOM",
    "MAP_TILES",
    "MAP_ATTRIBUTION",
    # Logging
    "LOG_LEVEL",
]
