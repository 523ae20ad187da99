"""Epidemiological week helpers (SE, encoded as YYYYWW)."""
from __future__ import annotations

import math
from datetime import date
from typing import Tuple

MAX_WEEK = 52


def current_epi_week(today: date) -> int:
    """Approximate epidemiological week of ``today`` (1..52).

    Days elapsed since Jan 1st divided into 7-day blocks, capped at 52.
    """
    day_of_year = (today - date(today.year, 1, 1)).days
    return max(1, min(math.ceil(day_of_year / 7), MAX_WEEK))


def trailing_window(today: date, weeks_back: int) -> Tuple[int, int]:
    """Return ``(start, end)`` weeks covering the last ``weeks_back`` weeks up to now."""
    end = current_epi_week(today)
    return max(1, end - weeks_back), end


def week_of_year(encoded: int) -> int:
    """``202407`` -> ``7``."""
    return encoded % 100


def year_of(encoded: int) -> int:
    """``202407`` -> ``2024``."""
    return encoded // 100


def format_week(encoded: int, *, short: bool = False) -> str:
    if short:
        return f"SE {week_of_year(encoded)}"
    return f"SE {week_of_year(encoded)}/{year_of(encoded)}"
