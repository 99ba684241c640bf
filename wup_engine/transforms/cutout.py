"""
Routing control codes and tool footprints.

The control code of a routed path is a 4-digit number:

    ones       tool category (0 machine default, 1 cylindrical, 2 chamfer,
               3 horizontal groove, 4 vertical marking)
    tens       edge handling (0 contour, 1 overcut, 2 undercut)
    hundreds   radius compensation (0 auto, 1 left, 2 right, 3 none/centre)
    thousands  spindle rotation (0 default, 1 synchronous)

Left compensation puts the whole cutter outside the drawn contour, no
compensation puts half of it outside; the footprint of the cut grows
accordingly.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pyclipper

from ..geometry.arcs import Point

DEFAULT_TOOL_RADIUS = 8.0  # mm
SCALE = 1000.0  # scale to integer for Clipper

TOOL_CATEGORIES = {
    0: "Machine default",
    1: "Cylindrical trimmer",
    2: "Chamfer trimmer",
    3: "Horizontal groove trimmer",
    4: "Vertical marking trimmer",
}
EDGE_MODES = {0: "Standard contour", 1: "Overcut", 2: "Undercut"}
RADIUS_MODES = {0: "Machine default", 1: "Left compensation", 2: "Right compensation", 3: "No compensation"}
ROTATION_MODES = {0: "Machine default", 1: "Synchronous rotation"}
COMPENSATION_SIDES = {1: "left", 2: "right", 3: "center"}


def _label(table: Dict[int, str], digit: int) -> str:
    return table.get(digit, f"Reserved ({digit})")


@dataclass
class ControlCodeInfo:
    code: Optional[int]
    digits: Dict[str, int] = field(default_factory=lambda: {"thousands": 0, "hundreds": 0, "tens": 0, "ones": 0})

    @property
    def is_valid(self) -> bool:
        return self.code is not None

    @property
    def tool_category(self) -> str:
        if not self.is_valid:
            return "Not specified"
        return _label(TOOL_CATEGORIES, self.digits["ones"])

    @property
    def edge_mode(self) -> str:
        return _label(EDGE_MODES, self.digits["tens"])

    @property
    def radius_mode(self) -> str:
        return _label(RADIUS_MODES, self.digits["hundreds"])

    @property
    def rotation_mode(self) -> str:
        return _label(ROTATION_MODES, self.digits["thousands"])

    @property
    def compensation(self) -> str:
        return COMPENSATION_SIDES.get(self.digits["hundreds"], "auto")

    @property
    def adds_radius(self) -> bool:
        return self.compensation in ("left", "center")

    @property
    def has_overcut(self) -> bool:
        return self.digits["tens"] == 1

    @property
    def has_undercut(self) -> bool:
        return self.digits["tens"] == 2


def parse_control_code(raw) -> ControlCodeInfo:
    if raw is None or not math.isfinite(raw):
        return ControlCodeInfo(None)
    code = int(math.floor(raw + 0.5))
    a = abs(code)
    return ControlCodeInfo(code, {
        "ones": a % 10,
        "tens": a // 10 % 10,
        "hundreds": a // 100 % 10,
        "thousands": a // 1000 % 10,
    })


def extract_control_code(segment) -> Optional[int]:
    """Control code of a routing segment, falling back to its source lines."""
    if segment.control_code is not None:
        return segment.control_code
    if segment.kind != "circle":
        if segment.offset is not None:
            return int(math.floor(segment.offset + 0.5))
        codes = []
        for entry in segment.source:
            i = 4 if entry.command == "KB" else 3
            if len(entry.numbers) > i:
                codes.append(entry.numbers[i])
        if codes:
            return int(math.floor(sum(codes) / len(codes) + 0.5))
    elif len(segment.source) >= 5:
        return int(math.floor(segment.source[4] + 0.5))
    if segment.orientation is not None:
        return int(math.floor(segment.orientation + 0.5))
    return None


@dataclass
class FootprintAdjustment:
    expansion: float  # overall, both sides together
    mode: str
    applied: bool


def resolve_footprint_adjustment(info: ControlCodeInfo, tool_radius: float = DEFAULT_TOOL_RADIUS) -> FootprintAdjustment:
    if not info.is_valid:
        return FootprintAdjustment(0.0, "unknown", False)
    hundreds = info.digits["hundreds"]
    if hundreds == 1:
        return FootprintAdjustment(tool_radius * 4, "diameter", True)
    if hundreds == 2:
        return FootprintAdjustment(0.0, "internal", False)
    if hundreds == 3:
        return FootprintAdjustment(tool_radius * 2, "radius", True)
    return FootprintAdjustment(0.0, "auto", False)


@dataclass
class CutoutFootprint:
    base_width: float
    base_height: float
    expansion: float
    adjustment: FootprintAdjustment

    @property
    def width(self) -> float:
        return self.base_width + self.expansion

    @property
    def height(self) -> float:
        return self.base_height + self.expansion


def compute_cutout_footprint(points: Sequence[Point], info: ControlCodeInfo,
                             tool_radius: float = DEFAULT_TOOL_RADIUS) -> Optional[CutoutFootprint]:
    pts = [p for p in points if math.isfinite(p.x) and math.isfinite(p.y)]
    if not pts:
        return None
    xs = [p.x for p in pts]
    ys = [p.y for p in pts]
    adj = resolve_footprint_adjustment(info, tool_radius)
    return CutoutFootprint(max(xs) - min(xs), max(ys) - min(ys), adj.expansion, adj)


def _scale_path(path: List[Tuple[float, float]]):
    return [(int(round(x * SCALE)), int(round(y * SCALE))) for x, y in path]


def _unscale_path(path: List[Tuple[int, int]]):
    return [(x / SCALE, y / SCALE) for x, y in path]


def offset_outline(points: Sequence[Point], delta_mm: float, miter_limit: float = 4.0) -> List[Tuple[float, float]]:
    """Offset a closed outline outward by delta_mm; returns a closed polyline."""
    base = [(p.x, p.y) for p in points]
    if len(base) < 3:
        return []
    if delta_mm == 0:
        return base + [base[0]]
    co = pyclipper.PyclipperOffset(miter_limit=miter_limit, arc_tolerance=0.25 * SCALE / 1000.0)
    co.AddPath(_scale_path(base), pyclipper.JT_ROUND, pyclipper.ET_CLOSEDPOLYGON)
    solution = co.Execute(delta_mm * SCALE)
    if not solution:
        return []
    # choose largest polygon
    largest = max(solution, key=lambda p: abs(pyclipper.Area(p)))
    out = _unscale_path(largest)
    if out and out[0] != out[-1]:
        out.append(out[0])
    return out


def offset_segment_outline(segment, tool_radius: float = DEFAULT_TOOL_RADIUS) -> List[Tuple[float, float]]:
    """Outline actually removed by the cutter for a polygon segment, per its control code."""
    if segment.kind != "polygon":
        return []
    adj = resolve_footprint_adjustment(parse_control_code(extract_control_code(segment)), tool_radius)
    outline = segment.samples or segment.points
    pts = outline[:-1] if len(outline) > 1 and outline[0] == outline[-1] else outline
    return offset_outline(pts, adj.expansion / 2)


def format_millimetres(value, digits: int = 1) -> str:
    if value is None or not math.isfinite(value):
        return "-"
    s = f"{value:.{digits}f}"
    if "." in s and set(s.split(".")[1]) == {"0"}:
        s = s.split(".")[0]
    return f"{s} mm"
