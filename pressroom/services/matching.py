from __future__ import annotations

from typing import Iterable


def _normalize(value: str) -> str:
    return " ".join(value.split()).casefold()


def match_name(value: str | None, candidates: Iterable[str]) -> str | None:
    """Resolve free text to one of ``candidates``.

    Tries an exact match, then a case-insensitive trimmed match, then a
    substring match in either direction. Returns the candidate as written.
    """
    if value is None:
        return None
    options = [c for c in candidates if c]
    text = str(value).strip()
    if not text:
        return None

    if text in options:
        return text

    wanted = _normalize(text)
    for option in options:
        if _normalize(option) == wanted:
            return option

    for option in options:
        normalized = _normalize(option)
        if wanted in normalized or normalized in wanted:
            return option
    return None
