"""Parsing and formatting of human-readable durations and sizes."""

from __future__ import annotations

import re

__all__ = ["parse_duration", "parse_size", "format_size"]

_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)\s*([smhd]?)", re.IGNORECASE)

_SIZE_PREFIXES = {"K": 1024, "M": 1024**2, "G": 1024**3, "T": 1024**4}
_CYRILLIC_PREFIXES = {"К": "K", "к": "K", "М": "M", "м": "M", "Г": "G", "г": "G", "Т": "T", "т": "T"}
_SIZE_NUMBER = re.compile(r"\s*([+-]?(?:\d+(?:[.,]\d*)?|[.,]\d+))\s*(\S?)")
_FORMAT_PREFIXES = ("", "K", "M", "G", "T")


def parse_duration(text: str) -> int:
    """Return the number of seconds in a duration such as ``90``, ``10m`` or ``1h30m``.

    An empty string means no duration and gives 0.
    """
    text = (text or "").strip()
    if not text:
        return 0
    position = 0
    total = 0.0
    compact = text.replace(" ", "")
    while position < len(compact):
        match = _DURATION_PART.match(compact, position)
        if not match or match.end() == position:
            raise ValueError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2).lower()]
        position = match.end()
    return int(total)


def parse_size(text: str) -> float:
    """Return the value of a size or rate such as ``4M``, ``1G`` or ``53.5 MB/s``.

    K, M, G and T (Latin or Cyrillic) are powers of 1024; a decimal comma is
    accepted. An empty string gives 0.
    """
    text = (text or "").strip()
    if not text:
        return 0.0
    match = _SIZE_NUMBER.match(text)
    if not match:
        raise ValueError(f"invalid size: {text!r}")
    number = float(match.group(1).replace(",", "."))
    prefix = match.group(2)
    prefix = _CYRILLIC_PREFIXES.get(prefix, prefix).upper()
    return number * _SIZE_PREFIXES.get(prefix, 1)


def format_size(value: float, suffix: str) -> str:
    """Format a value with a binary prefix and one decimal, e.g. ``53.5 MB/s``."""
    scaled = float(value)
    chosen = ""
    for prefix in _FORMAT_PREFIXES:
        chosen = prefix
        if abs(scaled) < 1024 or prefix == _FORMAT_PREFIXES[-1]:
            break
        scaled /= 1024
    return f"{scaled:.1f} {chosen}{suffix}"