"""WUP command vocabulary.

Command words map onto a closed set of kinds; the model builder dispatches
on the kind, never on the raw word.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandKind(Enum):
    WALL = "ELM"
    MODULE_BEGIN = "MODUL"
    MODULE_END = "ENDMODUL"
    STUD = "QS"
    BLOCKING = "LS"
    TOP_PLATE = "OG"
    BOTTOM_PLATE = "UG"
    ROUTING = "PAF"
    CIRCLE = "MP"
    PANEL_INNER = "PLI"
    PANEL_OUTER = "PLA"
    POINT = "PP"
    CURVE = "KB"
    NAIL_ROW = "NR"
    DRILL = "BOY"
    UNKNOWN = ""


# minimum count of numeric parameters for the command to be usable
MIN_NUMBERS = {
    CommandKind.WALL: 2,
    CommandKind.MODULE_BEGIN: 5,
    CommandKind.MODULE_END: 0,
    CommandKind.STUD: 5,
    CommandKind.BLOCKING: 5,
    CommandKind.TOP_PLATE: 5,
    CommandKind.BOTTOM_PLATE: 5,
    CommandKind.ROUTING: 0,
    CommandKind.CIRCLE: 3,
    CommandKind.PANEL_INNER: 6,
    CommandKind.PANEL_OUTER: 6,
    CommandKind.POINT: 2,
    CommandKind.CURVE: 3,
    CommandKind.NAIL_ROW: 4,
    CommandKind.DRILL: 4,
}

_FIXED = {kind.value: kind for kind in CommandKind if kind.value and kind not in (
    CommandKind.PANEL_INNER, CommandKind.PANEL_OUTER)}
_PANEL_RE = re.compile(r"^(PLI|PLA)(\d*)$")


@dataclass(frozen=True)
class CommandInfo:
    kind: CommandKind
    word: str
    layer_index: Optional[int] = None

    @property
    def min_numbers(self) -> int:
        return MIN_NUMBERS.get(self.kind, 0)


def classify(word: str) -> CommandInfo:
    """Look up the kind of a command word (``PLI2`` -> PANEL_INNER, layer 2)."""
    kind = _FIXED.get(word)
    if kind is not None:
        return CommandInfo(kind, word)
    m = _PANEL_RE.match(word)
    if m:
        kind = CommandKind.PANEL_INNER if m.group(1) == "PLI" else CommandKind.PANEL_OUTER
        return CommandInfo(kind, word, int(m.group(2)) if m.group(2) else None)
    return CommandInfo(CommandKind.UNKNOWN, word)
