"""
WUP statement stream -> WupModel.

One forward pass over the statements. A small amount of context is threaded
through the loop in a ParserState owned by the call:

    active_module    MODUL ... ENDMODUL frame; members are module-relative
    active_panel     last PLI/PLA header; absorbs following PP lines
    active_routing   last PAF header; collects MP circles and PP/KB paths
    path             PP/KB run of the active routing, flushed into a segment
    last_structural  last stud/blocking/plate, the target of BOY lines

A PP line is a panel boundary point while a panel is active, otherwise a
routing vertex. Any other command clears the panel.

Malformed or out-of-context statements never raise; they are collected in
``model.unhandled``. Only empty input or a model with no geometry at all
raises WupParseError.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..geometry.arcs import Point
from ..geometry.paths import PathCommand, assemble_path, close_path, dedupe_points
from .commands import CommandInfo, CommandKind, classify
from .model import (
    BoyOperation,
    CircleSegment,
    FrameRect,
    IdAllocator,
    Module,
    NailRow,
    PafRouting,
    PanelPoint,
    PathSegment,
    SheathingPanel,
    SourceEntry,
    Unhandled,
    Wall,
    WupModel,
)
from .tokenizer import (
    extract_first_string_token,
    extract_numbers,
    extract_panel_parameters,
    extract_placement_offset,
    split_command,
    split_statements,
    split_tokens,
)

logger = logging.getLogger(__name__)

ZERO_TOL = 1e-6


class WupParseError(ValueError):
    pass


class ActiveContext(Enum):
    PANEL = "panel"
    ROUTING = "routing"
    NONE = "none"


@dataclass
class Statement:
    index: int
    command: str
    body: str
    numbers: List[float]
    info: CommandInfo


@dataclass
class StructuralContext:
    kind: str
    role: Optional[str]
    element: FrameRect


@dataclass
class PathAccumulator:
    commands: List[PathCommand] = field(default_factory=list)
    depth_raw: List[float] = field(default_factory=list)
    offsets: List[float] = field(default_factory=list)
    orientations: List[float] = field(default_factory=list)
    z_values: List[float] = field(default_factory=list)
    source: List[SourceEntry] = field(default_factory=list)
    first_body: str = ""

    def sample(self, depth_raw, offset, orientation, z) -> None:
        if depth_raw is not None:
            self.depth_raw.append(depth_raw)
        if offset is not None:
            self.offsets.append(offset)
        if orientation is not None:
            self.orientations.append(orientation)
        if z is not None:
            self.z_values.append(z)


@dataclass
class PanelLayer:
    layer: str
    index: Optional[int]
    command: str


@dataclass
class ParserState:
    active_module: Optional[Module] = None
    active_panel: Optional[SheathingPanel] = None
    active_routing: Optional[PafRouting] = None
    path: Optional[PathAccumulator] = None
    last_structural: Optional[StructuralContext] = None
    panel_layer: Optional[PanelLayer] = None
    ids: IdAllocator = field(default_factory=IdAllocator)

    @property
    def active_context(self) -> ActiveContext:
        # panel wins over routing for the ambiguous PP command
        if self.active_panel is not None:
            return ActiveContext.PANEL
        if self.active_routing is not None:
            return ActiveContext.ROUTING
        return ActiveContext.NONE

    def module_origin(self) -> Tuple[float, float]:
        if self.active_module is None:
            return 0.0, 0.0
        return self.active_module.origin_x, self.active_module.origin_y


# ---------------------------
# Scalar helpers
# ---------------------------

def _at(numbers: List[float], i: int) -> Optional[float]:
    return numbers[i] if len(numbers) > i else None


def _mean(values, fn=None) -> Optional[float]:
    if not values:
        return None
    if fn is not None:
        values = [fn(v) for v in values]
    return sum(values) / len(values)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def derive_depth_value(primary: Optional[float], trailing: Optional[float]) -> Optional[float]:
    """Pick the cut depth among two candidate fields of a path vertex.

    A non-zero primary value wins; a zero primary defers to the trailing
    field. When both are non-trivial the smaller magnitude is kept.
    """
    if primary is None and trailing is None:
        return None
    if primary is not None and (trailing is None or abs(primary) > ZERO_TOL):
        return primary
    if primary is None:
        return trailing
    if abs(primary) <= ZERO_TOL and abs(trailing) > abs(primary):
        return trailing
    if abs(trailing) <= ZERO_TOL and abs(primary) > abs(trailing):
        return primary
    return primary if abs(primary) <= abs(trailing) else trailing


def build_rect_from_element(
    numbers: List[float],
    module: Optional[Module],
    kind: str = "stud",
    orientation: str = "vertical",
    offset: Optional[float] = None,
    role: Optional[str] = None,
) -> Optional[FrameRect]:
    """Frame member from ``length, thickness, _, x, y[, rotation, ...]``.

    Vertical members stand ``length`` tall; horizontal ones lie ``length``
    wide. A rotation of 90 (mod 180) swaps the two.
    """
    if len(numbers) < 2:
        return None
    length, thickness = numbers[0], numbers[1]
    x = _at(numbers, 3) or 0.0
    y = _at(numbers, 4) or 0.0
    rotation = _at(numbers, 5) or 0.0
    if orientation == "vertical":
        width, height = thickness, length
    else:
        width, height = length, thickness
    if abs(abs(rotation % 180) - 90) < 1e-6:
        width, height = height, width
    if offset is None and len(numbers) > 6:
        offset = numbers[-1]
    ox, oy = (module.origin_x, module.origin_y) if module is not None else (0.0, 0.0)
    return FrameRect(
        kind=kind,
        x=ox + x,
        y=oy + y,
        local_x=x,
        local_y=y,
        width=abs(width),
        height=abs(height),
        rotation=rotation,
        offset=offset,
        orientation=orientation,
        role=role,
        source=list(numbers),
    )


def resolve_boy_coordinates(
    local_x: float,
    local_z: float,
    module: Optional[Module],
    target: Optional[FrameRect],
) -> Tuple[float, float]:
    """Absolute (x, z) of a drilling op.

    x is relative to the target member when there is one, else to the
    module origin; z is relative to the module's z origin only.
    """
    if target is not None:
        base_x = target.x
    elif module is not None:
        base_x = module.origin_x
    else:
        base_x = None
    x = base_x + local_x if base_x is not None else local_x
    z = (module.origin_z if module is not None else 0.0) + local_z
    return x, z


# ---------------------------
# Builder
# ---------------------------

class _ModelBuilder:
    def __init__(self, model: WupModel, first_editor_id: int = 1):
        self.model = model
        self.state = ParserState(ids=IdAllocator(first_editor_id))

    def unhandled(self, stmt: Statement) -> None:
        logger.debug("unhandled statement %d: %s %s", stmt.index, stmt.command, stmt.body)
        self.model.unhandled.append(Unhandled(stmt.command, list(stmt.numbers), stmt.body, stmt.index))

    def feed(self, stmt: Statement) -> None:
        kind = stmt.info.kind
        st = self.state
        if kind is not CommandKind.POINT:
            st.active_panel = None
        if kind not in (CommandKind.POINT, CommandKind.CURVE):
            self.finalize_path()
        if len(stmt.numbers) < stmt.info.min_numbers:
            self.unhandled(stmt)
            return

        if kind is CommandKind.WALL:
            self.on_wall(stmt)
        elif kind is CommandKind.MODULE_BEGIN:
            self.on_module_begin(stmt)
        elif kind is CommandKind.MODULE_END:
            st.active_module = None
            st.last_structural = None
        elif kind is CommandKind.STUD:
            self.on_member(stmt, "stud", "vertical", st.active_module)
        elif kind is CommandKind.BLOCKING:
            self.on_member(stmt, "blocking", "horizontal", st.active_module)
        elif kind is CommandKind.TOP_PLATE:
            self.on_member(stmt, "plate", "horizontal", None, role="top")
        elif kind is CommandKind.BOTTOM_PLATE:
            self.on_member(stmt, "plate", "horizontal", None, role="bottom")
        elif kind is CommandKind.ROUTING:
            self.on_routing(stmt)
        elif kind is CommandKind.CIRCLE:
            self.on_circle(stmt)
        elif kind in (CommandKind.PANEL_INNER, CommandKind.PANEL_OUTER):
            self.on_panel(stmt)
        elif kind is CommandKind.POINT:
            self.on_point(stmt)
        elif kind is CommandKind.CURVE:
            self.on_curve(stmt)
        elif kind is CommandKind.NAIL_ROW:
            self.on_nail_row(stmt)
        elif kind is CommandKind.DRILL:
            self.on_drill(stmt)
        else:
            self.finalize_routing()
            self.unhandled(stmt)

    # ---- context flushing ----

    def finalize_path(self) -> None:
        acc, self.state.path = self.state.path, None
        if acc is None:
            return
        routing = self.state.active_routing
        sampled, path_segments = assemble_path(acc.commands)
        deduped = dedupe_points(sampled)
        if routing is None or len(deduped) < 2:
            first = acc.source[0]
            logger.debug("path at statement %s has fewer than 2 usable points", first.statement_index)
            self.model.unhandled.append(
                Unhandled(first.command, list(first.numbers), acc.first_body, first.statement_index))
            return
        points, closed = close_path(deduped)
        for p in sampled:
            self.model.bounds.extend_point(p.x, p.y)
        if closed and len(points) >= 3:
            kind = "polygon"
        elif len(points) >= 2:
            kind = "polyline"
        else:
            return
        offset = _mean(acc.offsets)
        routing.segments.append(PathSegment(
            kind=kind,
            points=points,
            path_segments=path_segments,
            depth=_mean(acc.depth_raw, abs),
            depth_raw=_mean(acc.depth_raw),
            offset=offset,
            orientation=_mean(acc.orientations),
            z=_mean(acc.z_values),
            control_code=round_half_up(offset) if offset is not None else None,
            source=acc.source,
            samples=sampled,
        ))

    def finalize_routing(self) -> None:
        self.finalize_path()
        routing, self.state.active_routing = self.state.active_routing, None
        if routing is None:
            return
        if routing.segments:
            self.state.ids.assign(routing)
            self.model.paf_routings.append(routing)
        else:
            self.model.unhandled.append(
                Unhandled(routing.command, list(routing.source), routing.body, routing.statement_index))

    def ensure_path(self, body: str) -> PathAccumulator:
        if self.state.path is None:
            self.state.path = PathAccumulator(first_body=body)
        return self.state.path

    # ---- handlers ----

    def on_wall(self, stmt: Statement) -> None:
        if self.model.wall is not None:
            self.unhandled(stmt)
            return
        n = stmt.numbers
        self.model.wall = Wall(n[0], n[1], _at(n, 2), _at(n, 3))

    def on_module_begin(self, stmt: Statement) -> None:
        n = stmt.numbers
        module = Module(n[0], n[1], n[2], n[3], n[4], _at(n, 5) or 0.0)
        self.model.modules.append(module)
        self.state.active_module = module
        self.state.last_structural = None

    def on_member(self, stmt: Statement, kind: str, orientation: str, module, role=None) -> None:
        rect = build_rect_from_element(
            stmt.numbers, module, kind=kind, orientation=orientation,
            offset=extract_placement_offset(stmt.body), role=role)
        if rect is None:
            self.unhandled(stmt)
            return
        rect.statement_index = stmt.index
        {"stud": self.model.studs, "blocking": self.model.blocking, "plate": self.model.plates}[kind].append(rect)
        self.model.bounds.extend_rect(rect.x, rect.y, rect.width, rect.height)
        self.state.last_structural = StructuralContext(kind, role, rect)

    def on_routing(self, stmt: Statement) -> None:
        self.finalize_routing()
        n = stmt.numbers
        layer = self.state.panel_layer
        self.state.active_routing = PafRouting(
            tool=_at(n, 0),
            face=_at(n, 1),
            passes=_at(n, 2),
            layer=layer.layer if layer else None,
            layer_index=layer.index if layer else None,
            layer_command=layer.command if layer else None,
            source=list(n),
            command=stmt.command,
            body=stmt.body,
            statement_index=stmt.index,
            statement_indices=[stmt.index],
        )

    def on_circle(self, stmt: Statement) -> None:
        routing = self.state.active_routing
        if routing is None:
            self.unhandled(stmt)
            return
        n = stmt.numbers
        radius = abs(n[2])
        depth_raw = _at(n, 3)
        orientation = _at(n, 4)
        seg = CircleSegment(
            position=Point(n[0], n[1]),
            radius=radius,
            depth=abs(depth_raw) if depth_raw is not None else None,
            depth_raw=depth_raw,
            orientation=orientation,
            feed=_at(n, 5),
            control_code=round_half_up(orientation) if orientation is not None else None,
            extras=list(n[6:]),
            source=list(n),
            statement_index=stmt.index,
        )
        routing.segments.append(seg)
        routing.statement_indices.append(stmt.index)
        self.model.bounds.extend_point(n[0] - radius, n[1] - radius)
        self.model.bounds.extend_point(n[0] + radius, n[1] + radius)

    def on_panel(self, stmt: Statement) -> None:
        numbers, material = extract_panel_parameters(stmt.body)
        if len(numbers) < 6:
            numbers = stmt.numbers
        if len(numbers) < 6:
            self.unhandled(stmt)
            return
        if material is None:
            material = extract_first_string_token(stmt.body)
        outer = stmt.info.kind is CommandKind.PANEL_OUTER
        layer = "pla" if outer else "pli"
        layer_index = stmt.info.layer_index or 1
        ox, oy = self.state.module_origin()
        panel = SheathingPanel(
            width=numbers[0],
            height=numbers[1],
            thickness=numbers[2],
            x=ox + numbers[3],
            y=oy + numbers[4],
            local_x=numbers[3],
            local_y=numbers[4],
            offset=_at(numbers, 6),
            rotation=_at(numbers, 7) or 0.0,
            material_index=numbers[5],
            material=material,
            face_direction=-1 if outer else 1,
            layer=layer,
            layer_index=layer_index,
            layer_command=stmt.command,
            source=list(numbers),
            statement_index=stmt.index,
        )
        self.model.sheathing.append(panel)
        self.model.bounds.extend_rect(panel.x, panel.y, panel.width, panel.height)
        self.state.active_panel = panel
        self.state.panel_layer = PanelLayer(layer, layer_index, stmt.command)

    def on_point(self, stmt: Statement) -> None:
        ctx = self.state.active_context
        n = stmt.numbers
        if ctx is ActiveContext.PANEL:
            panel = self.state.active_panel
            ox, oy = self.state.module_origin()
            thickness = _at(n, 2)
            offset = _at(n, 3)
            point = PanelPoint(
                x=ox + n[0],
                y=oy + n[1],
                thickness=thickness if thickness is not None else panel.thickness,
                offset=offset if offset is not None else panel.offset,
                extras=list(n[4:]),
            )
            panel.points.append(point)
            self.model.bounds.extend_point(point.x, point.y)
        elif ctx is ActiveContext.ROUTING:
            z = _at(n, 2)
            acc = self.ensure_path(stmt.body)
            acc.sample(derive_depth_value(z, _at(n, 5)), _at(n, 3), _at(n, 4), z)
            self.add_vertex(acc, stmt, PathCommand("move" if not acc.commands else "line", Point(n[0], n[1])))
        else:
            self.unhandled(stmt)

    def on_curve(self, stmt: Statement) -> None:
        if self.state.active_routing is None:
            self.unhandled(stmt)
            return
        tokens = split_tokens(stmt.body)
        flag = tokens[3] if len(tokens) > 3 else None
        if not flag:
            self.unhandled(stmt)
            return
        n = stmt.numbers
        acc = self.ensure_path(stmt.body)
        z = _at(n, 6)
        acc.sample(derive_depth_value(_at(n, 3), z), _at(n, 4), _at(n, 5), z)
        self.add_vertex(acc, stmt, PathCommand.arc(Point(n[0], n[1]), n[2], flag), arc_type=flag)

    def add_vertex(self, acc: PathAccumulator, stmt: Statement, cmd: PathCommand, arc_type=None) -> None:
        acc.commands.append(cmd)
        acc.source.append(SourceEntry(stmt.command, list(stmt.numbers), stmt.index, arc_type))
        self.state.active_routing.statement_indices.append(stmt.index)
        self.model.bounds.extend_point(cmd.point.x, cmd.point.y)

    def on_nail_row(self, stmt: Statement) -> None:
        n = stmt.numbers
        layer = self.state.panel_layer
        row = NailRow(
            start=Point(n[0], n[1]),
            end=Point(n[2], n[3]),
            spacing=_at(n, 4),
            gauge=_at(n, 5),
            layer=layer.layer if layer else "pli",
            layer_index=layer.index if layer else None,
            layer_command=layer.command if layer else None,
            source=list(n),
            command=stmt.command,
            body=stmt.body,
            statement_index=stmt.index,
        )
        self.state.ids.assign(row)
        self.model.nail_rows.append(row)
        self.model.bounds.extend_point(row.start.x, row.start.y)
        self.model.bounds.extend_point(row.end.x, row.end.y)

    def on_drill(self, stmt: Statement) -> None:
        n = stmt.numbers
        ctx = self.state.last_structural
        target = ctx.element if ctx else None
        x, z = resolve_boy_coordinates(n[0], n[1], self.state.active_module, target)
        op = BoyOperation(
            x=x,
            z=z,
            local_x=n[0],
            local_z=n[1],
            diameter=abs(n[2]),
            depth=n[3],
            target=target,
            target_kind=ctx.kind if ctx else None,
            target_role=ctx.role if ctx else None,
            source=list(n),
            command=stmt.command,
            body=stmt.body,
            statement_index=stmt.index,
        )
        self.state.ids.assign(op)
        self.model.boy_operations.append(op)
        r = op.diameter / 2
        self.model.bounds.extend_point(op.x - r, op.z)
        self.model.bounds.extend_point(op.x + r, op.z)


def parse_statement(index: int, text: str) -> Statement:
    command, body = split_command(text)
    return Statement(index, command, body, extract_numbers(body), classify(command))


def parse_wup(text: str, first_editor_id: int = 1) -> WupModel:
    """Parse WUP text into a WupModel.

    ``first_editor_id`` lets a re-parse continue the id counter of the model
    it replaces so ids are never handed out twice.
    """
    if not isinstance(text, str) or not text.strip():
        raise WupParseError("WUP input must be a non-empty string")

    statements = split_statements(text)
    model = WupModel(statements=list(statements), source_text=text)
    builder = _ModelBuilder(model, first_editor_id)
    for index, raw in enumerate(statements):
        builder.feed(parse_statement(index, raw))
    builder.finalize_routing()

    if not model.bounds.is_finite():
        raise WupParseError("No frame members detected in the WUP file")
    model.next_editor_id = builder.state.ids.next_id
    logger.debug(
        "parsed %d statements: %d studs, %d plates, %d blocking, %d panels, %d nail rows, "
        "%d routings, %d drillings, %d unhandled",
        len(statements), len(model.studs), len(model.plates), len(model.blocking),
        len(model.sheathing), len(model.nail_rows), len(model.paf_routings),
        len(model.boy_operations), len(model.unhandled),
    )
    return model


@dataclass
class ModelView:
    width: float
    height: float


def normalize_model(model: WupModel) -> ModelView:
    """Display extent: the wall size when declared, else the bounds."""
    width = model.wall.width if model.wall else model.bounds.width
    height = model.wall.height if model.wall else model.bounds.height
    if not (math.isfinite(width) and math.isfinite(height)):
        raise WupParseError("Invalid wall dimensions inferred from WUP file")
    return ModelView(width, height)
