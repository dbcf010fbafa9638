"""Parsing and layout of compact dialog descriptions ``W,H{Title}{Text}{Buttons}{Default}``."""

from __future__ import annotations

import re
from dataclasses import dataclass

__all__ = ["DialogSpec", "parse_dialog_spec", "layout_buttons"]

_MIN_BUTTON_WIDTH = 10
_BUTTON_SPACING = 2
_SIZE = re.compile(r"\s*([+-]?\d+)(?:,\s*([+-]?\d+))?")


@dataclass(frozen=True)
class DialogSpec:
    """A dialog: its size, title, message, button labels and default button or input text."""

    width: int
    height: int
    title: str
    message: str
    buttons: tuple[str, ...]
    default: str

    @property
    def focus_index(self) -> int:
        """Index of the button that gets focus: the default one, else the first."""
        try:
            return self.buttons.index(self.default)
        except ValueError:
            return 0


def _braced(text: str, start: int) -> tuple[str, int]:
    opening = text.find("{", start)
    if opening == -1:
        raise ValueError("missing '{' in dialog description")
    closing = text.find("}", opening)
    if closing == -1:
        raise ValueError("missing '}' in dialog description")
    return text[opening + 1:closing], closing


def parse_dialog_spec(text: str) -> DialogSpec:
    """Parse a dialog description; raise ValueError when a braced part is missing."""
    text = text.strip()
    width = height = 0
    match = _SIZE.match(text)
    if match:
        width = int(match.group(1))
        if match.group(2) is not None:
            height = int(match.group(2))
    title, position = _braced(text, 0)
    message, position = _braced(text, position)
    buttons, position = _braced(text, position)
    default, _ = _braced(text, position)
    return DialogSpec(width, height, title, message, tuple(buttons.split("|")), default)


def _halve(value: int) -> int:
    return value // 2 if value >= 0 else -((-value) // 2)


def layout_buttons(spec: DialogSpec) -> list[tuple[str, int, int, int]]:
    """Place the buttons centred on one row: a list of (label, x, y, width)."""
    width = max([_MIN_BUTTON_WIDTH] + [len(label) + 2 for label in spec.buttons])
    count = len(spec.buttons)
    x = _halve(spec.width - width * count - _BUTTON_SPACING * (count - 1))
    y = spec.height - 3
    placements = []
    for label in spec.buttons:
        placements.append((label, x, y, width))
        x += width + _BUTTON_SPACING
    return placements