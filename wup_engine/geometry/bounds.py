from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class Bounds:
    """Running 2-D axis-aligned extent in wall coordinates (mm)."""
    min_x: float = math.inf
    max_x: float = -math.inf
    min_y: float = math.inf
    max_y: float = -math.inf

    def extend_point(self, x, y) -> None:
        if x is None or y is None or not (math.isfinite(x) and math.isfinite(y)):
            return
        self.min_x = min(self.min_x, x)
        self.min_y = min(self.min_y, y)
        self.max_x = max(self.max_x, x)
        self.max_y = max(self.max_y, y)

    def extend_rect(self, x, y, width, height) -> None:
        self.extend_point(x, y)
        self.extend_point(x + width, y + height)

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.min_x, self.max_x, self.min_y, self.max_y)) \
            and self.min_x <= self.max_x and self.min_y <= self.max_y

    def contains(self, x, y, tol: float = 1e-6) -> bool:
        return (self.min_x - tol <= x <= self.max_x + tol
                and self.min_y - tol <= y <= self.max_y + tol)

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


def routing_extent_points(routing):
    """Every (x, y) a routing occupies: path samples and circle extents."""
    for seg in routing.segments:
        if seg.kind == "circle":
            r = seg.radius or 0.0
            yield seg.position.x - r, seg.position.y - r
            yield seg.position.x + r, seg.position.y + r
        else:
            for p in seg.samples or seg.points:
                yield p.x, p.y


def recalculate_bounds(model) -> Bounds:
    """Recompute bounds from the entities of an (edited) model; zeroed when empty."""
    b = Bounds()
    for rect in model.frame_members():
        b.extend_rect(rect.x, rect.y, rect.width, rect.height)
    for panel in model.sheathing:
        b.extend_rect(panel.x, panel.y, panel.width, panel.height)
        for p in panel.points:
            b.extend_point(p.x, p.y)
    for row in model.nail_rows:
        b.extend_point(row.start.x, row.start.y)
        b.extend_point(row.end.x, row.end.y)
    for routing in model.paf_routings:
        for x, y in routing_extent_points(routing):
            b.extend_point(x, y)
    for op in model.boy_operations:
        r = (op.diameter or 0.0) / 2
        b.extend_point(op.x - r, op.z)
        b.extend_point(op.x + r, op.z)
    if not b.is_finite():
        b = Bounds(0.0, 0.0, 0.0, 0.0)
    model.bounds = b
    return b
