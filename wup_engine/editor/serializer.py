"""
WUP serializer.

Re-emits the model's statement list, keeping the original order and the
original spelling of every untouched line. Deleted statements are ``None``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from ..dsl.tokenizer import TERMINATOR

logger = logging.getLogger(__name__)


def normalize_statement(statement: Optional[str]) -> Optional[str]:
    if not isinstance(statement, str):
        return None
    s = statement.strip()
    if not s:
        return None
    return s if s.endswith(TERMINATOR) else s + TERMINATOR


def surviving_statements(statements: Iterable[Optional[str]]) -> List[str]:
    out = []
    for stmt in statements:
        norm = normalize_statement(stmt)
        if norm:
            out.append(norm)
    return out


def serialize_statements(statements: Iterable[Optional[str]], source_text: Optional[str] = None) -> Optional[str]:
    """Join surviving statements, one per line.

    With nothing left, the original source text is returned instead; None
    when there is no source either.
    """
    lines = surviving_statements(statements)
    if not lines:
        return source_text if source_text else None
    return "\n".join(lines) + "\n"


@dataclass
class SerializedWup:
    text: Optional[str]
    fallback: Optional[str]

    @property
    def payload(self) -> str:
        if self.text is not None:
            return self.text
        return self.fallback or ""


def serialize_wup(model) -> SerializedWup:
    lines = surviving_statements(model.statements)
    if not lines:
        return SerializedWup(None, model.source_text or "")
    return SerializedWup("\n".join(lines) + "\n", model.source_text)


def suggest_modified_filename(original_name: Optional[str]) -> str:
    """``wall.wup`` -> ``wall-modified.wup``."""
    if not original_name:
        return "modified.wup"
    p = Path(original_name)
    if not p.suffix:
        return f"{original_name}-modified.wup"
    return str(p.with_name(f"{p.stem}-modified{p.suffix}"))


def save_as_modified(model, original_path) -> Path:
    """Write the serialized model next to ``original_path``; never overwrites it."""
    original_path = Path(original_path)
    out = Path(suggest_modified_filename(str(original_path)))
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(serialize_wup(model).payload, encoding="utf-8")
    logger.info("wrote %s", out)
    return out
