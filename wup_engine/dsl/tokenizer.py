"""
Statement tokenizer and token extraction for WUP text.

A WUP file is a flat list of statements terminated by ``;``:

    ELM 6000,2600,160,1;
    QS 2600,60,0,0,0,0;
    PLI1 1250,2600,15,0,0,1,OSB;
    KB 500,300,150,cw,-15,0,0,0;

Each statement is ``COMMAND [param, param, ...]``. Parameters are mostly
decimal numbers, with the odd bare token (material names, arc flags).
"""
from __future__ import annotations

import re
from typing import List, Optional, Tuple

TERMINATOR = ";"

NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")
NUMERIC_TOKEN_RE = re.compile(r"^-?\d+(?:\.\d+)?$")


def split_statements(text: str) -> List[str]:
    """Split raw text on the terminator; trimmed, empties dropped, order kept."""
    statements: List[str] = []
    for raw in text.split(TERMINATOR):
        stmt = raw.strip()
        if stmt:
            statements.append(stmt)
    return statements


def split_command(statement: str) -> Tuple[str, str]:
    idx = statement.find(" ")
    if idx == -1:
        return statement, ""
    return statement[:idx].strip(), statement[idx + 1:].strip()


def extract_numbers(body: str) -> List[float]:
    return [float(m) for m in NUMBER_RE.findall(body)]


def is_numeric_token(token: str) -> bool:
    return bool(NUMERIC_TOKEN_RE.match(token))


def split_tokens(body: str) -> List[str]:
    if not body:
        return []
    tokens = []
    for tok in body.split(","):
        tok = tok.rstrip(TERMINATOR).strip()
        if tok:
            tokens.append(tok)
    return tokens


def extract_first_string_token(body: str) -> Optional[str]:
    for tok in split_tokens(body):
        if not is_numeric_token(tok):
            return tok
    return None


def extract_placement_offset(body: str) -> Optional[float]:
    """Trailing through-thickness offset of a frame member, if the last token is a number."""
    tokens = split_tokens(body)
    if not tokens:
        return None
    last = tokens[-1]
    return float(last) if is_numeric_token(last) else None


def extract_panel_parameters(body: str) -> Tuple[List[float], Optional[str]]:
    """Numbers and material label of a sheathing header, read token by token.

    Unlike :func:`extract_numbers` a token such as ``OSB3`` does not leak a
    stray ``3`` into the numeric list.
    """
    numbers: List[float] = []
    material: Optional[str] = None
    for tok in split_tokens(body):
        if is_numeric_token(tok):
            numbers.append(float(tok))
        elif material is None:
            material = tok
    return numbers, material
