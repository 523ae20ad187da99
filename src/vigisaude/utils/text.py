"""Text normalization used for municipality / UF matching."""
from __future__ import annotations

import re
import unicodedata


def normalize_text(s: str) -> str:
    """Lowercase, strip accents and collapse whitespace."""
    s = (s or "").strip().lower()
    s = unicodedata.normalize("NFD", s)
    s = "".join(ch for ch in s if unicodedata.category(ch) != "Mn")
    s = re.sub(r"\s+", " ", s)
    return s
