"""
Id-driven edits of a parsed WUP model.

The editor owns the one model handle the rest of the program reads. An edit
works on a deep copy of the current snapshot, rewrites exactly the
statements the touched entities came from, and only then swaps the handle,
so readers never see a half-applied edit. Entities are located by kind and
editor id; when that (or their statement indices) no longer resolves the
edit is declined and logged, and the model is left as it was.
"""
from __future__ import annotations

import copy
import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

from ..dsl.model import EDITABLE_COLLECTIONS, BoyOperation, NailRow, PafRouting, WupModel, ensure_editor_ids
from ..dsl.tokenizer import is_numeric_token, split_command, split_tokens
from ..dsl.wup_parser import WupParseError, parse_wup
from ..geometry.bounds import recalculate_bounds
from ..geometry.paths import rebuild_segment_geometry
from .serializer import serialize_statements

logger = logging.getLogger(__name__)

AXES = {
    "nail_row": ("x", "y"),
    "boy": ("x", "z"),
    "paf": ("x", "y"),
}


def format_number(value: float) -> str:
    if value is None or not math.isfinite(value):
        return "0"
    s = f"{value:.3f}".rstrip("0").rstrip(".")
    return "0" if s in ("-0", "") else s


def build_statement(command: str, values: Sequence[float]) -> str:
    if not values:
        return command
    return f"{command} {','.join(format_number(v) for v in values)}"


def build_curve_statement(command: str, numbers: Sequence[float], arc_type: Optional[str]) -> str:
    parts = [format_number(v) for v in numbers]
    if arc_type and not is_numeric_token(arc_type):
        parts.insert(min(3, len(parts)), arc_type)
    return f"{command} {','.join(parts)}"


def build_source_statement(entry) -> str:
    if entry.command == "KB":
        return build_curve_statement(entry.command, entry.numbers, entry.arc_type)
    return build_statement(entry.command, entry.numbers)


def shift_statement(statement: Optional[str], indices: Sequence[int], mm: float) -> Optional[str]:
    """Add ``mm`` to the tokens at ``indices``; every other token is kept verbatim.

    None when one of those tokens is missing or not a plain number.
    """
    if not statement:
        return None
    command, body = split_command(statement)
    tokens = split_tokens(body)
    for i in indices:
        if i >= len(tokens) or not is_numeric_token(tokens[i]):
            return None
        tokens[i] = format_number(float(tokens[i]) + mm)
    return f"{command} {','.join(tokens)}"


def routing_statements(routing: PafRouting, statements: Sequence[Optional[str]],
                       index: int, mm: float) -> List[Tuple[int, str]]:
    """(statement index, text) for every segment line of a routing moved by ``mm``.

    The header carries no coordinates and is left alone.
    """
    out = []
    for seg in routing.segments:
        if seg.kind == "circle":
            text = shift_statement(statements[seg.statement_index], (index,), mm)
            out.append((seg.statement_index, text or build_statement("MP", seg.source)))
        else:
            for entry in seg.source:
                text = shift_statement(statements[entry.statement_index], (index,), mm)
                out.append((entry.statement_index, text or build_source_statement(entry)))
    return out


def entity_statement_indices(item) -> List[int]:
    if isinstance(item, PafRouting):
        return list(item.statement_indices)
    return [item.statement_index]


def _shift_point(p, axis: str, mm: float) -> None:
    setattr(p, axis, getattr(p, axis) + mm)


def translate_nail_row(row: NailRow, axis: str, mm: float) -> bool:
    if len(row.source) < 4 or axis not in ("x", "y"):
        return False
    i = 0 if axis == "x" else 1
    _shift_point(row.start, axis, mm)
    _shift_point(row.end, axis, mm)
    row.source[i] += mm
    row.source[i + 2] += mm
    return True


def translate_boy_operation(op: BoyOperation, axis: str, mm: float) -> bool:
    if len(op.source) < 2 or axis not in ("x", "z"):
        return False
    if axis == "x":
        op.x += mm
        op.local_x += mm
        op.source[0] += mm
    else:
        op.z += mm
        op.local_z += mm
        op.source[1] += mm
    return True


def translate_paf_routing(routing: PafRouting, axis: str, mm: float) -> bool:
    if not routing.segments or axis not in ("x", "y"):
        return False
    i = 0 if axis == "x" else 1
    for seg in routing.segments:
        if seg.kind == "circle":
            _shift_point(seg.position, axis, mm)
            if len(seg.source) > i:
                seg.source[i] += mm
            continue
        for entry in seg.source:
            if len(entry.numbers) > i:
                entry.numbers[i] += mm
        rebuild_segment_geometry(seg)
    return True


class WupEditor:
    def __init__(self, model: WupModel):
        self.model = ensure_editor_ids(copy.deepcopy(model))

    # ---- lookup ----

    def _resolve(self, working: WupModel, kind: str, editor_id: int):
        item = working.find_entity(kind, editor_id)
        if item is None:
            logger.warning("edit declined: no %s with editor id %s", kind, editor_id)
            return None
        for idx in entity_statement_indices(item):
            if idx is None or not 0 <= idx < len(working.statements) or working.statements[idx] is None:
                logger.warning("edit declined: statement %s of %s #%s is gone", idx, kind, editor_id)
                return None
        return item

    def _commit(self, working: WupModel) -> None:
        recalculate_bounds(working)
        self.model = working

    # ---- edits ----

    def translate(self, kind: str, editor_id: int, axis: str, mm: float) -> bool:
        return self.translate_many([(kind, editor_id)], axis, mm) == 1

    def translate_many(self, items: Iterable[Tuple[str, int]], axis: str, mm: float) -> int:
        """Move several entities by ``mm`` along ``axis`` in one snapshot; returns how many moved."""
        if mm is None or not math.isfinite(mm) or mm == 0:
            logger.warning("edit declined: translation distance must be a non-zero number, got %r", mm)
            return 0
        working = copy.deepcopy(self.model)
        moved = 0
        for kind, editor_id in items:
            if axis not in AXES.get(kind, ()):
                logger.warning("edit declined: %s cannot move along %s", kind, axis)
                continue
            item = self._resolve(working, kind, editor_id)
            if item is None:
                continue
            i = 0 if axis == "x" else 1
            stmt = working.statements[item.statement_index]
            if kind == "nail_row" and translate_nail_row(item, axis, mm):
                working.statements[item.statement_index] = (
                    shift_statement(stmt, (i, i + 2), mm) or build_statement(item.command, item.source))
            elif kind == "boy" and translate_boy_operation(item, axis, mm):
                working.statements[item.statement_index] = (
                    shift_statement(stmt, (i,), mm) or build_statement(item.command, item.source))
            elif kind == "paf" and translate_paf_routing(item, axis, mm):
                for idx, text in routing_statements(item, working.statements, i, mm):
                    working.statements[idx] = text
            else:
                continue
            moved += 1
        if moved:
            self._commit(working)
        return moved

    def delete(self, kind: str, editor_id: int) -> bool:
        return self.delete_many([(kind, editor_id)]) == 1

    def delete_many(self, items: Iterable[Tuple[str, int]]) -> int:
        working = copy.deepcopy(self.model)
        removed = 0
        for kind, editor_id in items:
            item = self._resolve(working, kind, editor_id)
            if item is None:
                continue
            getattr(working, EDITABLE_COLLECTIONS[kind]).remove(item)
            for idx in entity_statement_indices(item):
                working.statements[idx] = None
            removed += 1
        if removed:
            self._commit(working)
        return removed

    # ---- whole-document re-parse ----

    def text(self) -> Optional[str]:
        return serialize_statements(self.model.statements, self.model.source_text)

    def reparse(self) -> WupModel:
        """Re-parse the current statements into a fresh snapshot, keeping the id counter going."""
        text = serialize_statements(self.model.statements)
        if text is None:
            raise WupParseError("no statements left to parse")
        self.model = parse_wup(text, first_editor_id=self.model.next_editor_id)
        return self.model

    def replace_statements(self, indices: Iterable[int], new_statements: Sequence[str]) -> bool:
        """Drop the given statements, insert ``new_statements`` where the first one was, re-parse."""
        index_set = sorted({i for i in indices if i is not None and 0 <= i < len(self.model.statements)})
        if not index_set:
            logger.warning("replacement declined: none of the statement indices resolve")
            return False
        updated: List[str] = []
        inserted = False
        for i, stmt in enumerate(self.model.statements):
            if not inserted and i == index_set[0]:
                updated.extend(new_statements)
                inserted = True
            if i in index_set:
                continue
            if stmt is not None:
                updated.append(stmt)
        text = serialize_statements(updated)
        if text is None:
            logger.warning("replacement declined: the document would be empty")
            return False
        try:
            model = parse_wup(text, first_editor_id=self.model.next_editor_id)
        except WupParseError as e:
            logger.warning("replacement declined: %s", e)
            return False
        self.model = model
        return True

    def replace_entity(self, kind: str, editor_id: int, new_statements: Sequence[str]) -> bool:
        item = self._resolve(self.model, kind, editor_id)
        if item is None:
            return False
        return self.replace_statements(entity_statement_indices(item), new_statements)
