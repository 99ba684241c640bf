"""
Circular arcs from chord + radius + direction flag.

A ``KB`` statement only gives the arc's end point, a radius and a flag
token; the start point is wherever the path currently is. Two circles of
that radius pass through both points, so the flag's rotational sense and
arc size (minor / major) pick one of them.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional

EPS = 1e-6
SWEEP_TOL = 1e-5
MIN_ARC_STEPS = 4
MAX_ARC_STEPS = 160
ARC_STEP_ANGLE = math.pi / 24


@dataclass
class Point:
    x: float
    y: float

    def copy(self) -> "Point":
        return Point(self.x, self.y)


@dataclass
class LineSegment:
    start: Point
    end: Point
    fallback: bool = False  # stands in for an arc with no solution
    type: str = "line"


@dataclass
class ArcSegment:
    start: Point
    end: Point
    center: Point
    radius: float
    start_angle: float
    end_angle: float
    signed_sweep: float
    clockwise: bool
    large_arc: bool
    raw_type: Optional[str] = None
    type: str = "arc"

    @property
    def sweep(self) -> float:
        return abs(self.signed_sweep)


def infer_arc_direction(token: Optional[str]) -> int:
    """+1 for counter-clockwise, -1 for clockwise."""
    if not token:
        return 1
    t = token.strip().lower()
    if not t:
        return 1
    if "cc" in t:
        return 1
    if "cw" in t:
        return -1
    return -1 if t.endswith("w") else 1


def is_large_arc(token: Optional[str]) -> bool:
    """Upper-case flag tokens request the major arc (sweep > 180 deg)."""
    if not token:
        return False
    t = token.strip()
    if not t:
        return False
    return t == t.upper()


def unsigned_sweep(start_angle: float, end_angle: float, direction: int) -> float:
    sweep = end_angle - start_angle if direction >= 0 else start_angle - end_angle
    while sweep < 0:
        sweep += 2 * math.pi
    return sweep


def signed_sweep(start_angle: float, end_angle: float, direction: int) -> float:
    sweep = end_angle - start_angle if direction >= 0 else start_angle - end_angle
    while sweep <= 0:
        sweep += 2 * math.pi
    return sweep if direction >= 0 else -sweep


def candidate_centers(start: Point, end: Point, radius: float) -> Optional[List[Point]]:
    """Both circle centres of ``radius`` through ``start`` and ``end``, or None."""
    dx, dy = end.x - start.x, end.y - start.y
    chord = math.hypot(dx, dy)
    if chord < EPS:
        return None
    half = chord / 2
    if radius < half - EPS:
        return None
    mx, my = (start.x + end.x) / 2, (start.y + end.y) / 2
    perp = math.atan2(dy, dx) + math.pi / 2
    h = math.sqrt(max(radius * radius - half * half, 0.0))
    ox, oy = h * math.cos(perp), h * math.sin(perp)
    return [Point(mx + ox, my + oy), Point(mx - ox, my - oy)]


def solve_arc(
    start: Point,
    end: Point,
    radius: float,
    clockwise: bool,
    large_arc: bool,
    raw_type: Optional[str] = None,
) -> Optional[ArcSegment]:
    """Solve the arc from ``start`` to ``end``.

    Returns None for a degenerate chord or a radius shorter than half the
    chord; callers substitute a straight segment. When neither centre
    matches the requested arc size the first centre with a non-zero sweep
    is taken anyway.
    """
    if radius is None or not math.isfinite(radius):
        return None
    radius = max(abs(radius), EPS)
    direction = -1 if clockwise else 1
    centers = candidate_centers(start, end, radius)
    if centers is None:
        return None

    candidates = []
    for c in centers:
        a0 = math.atan2(start.y - c.y, start.x - c.x)
        a1 = math.atan2(end.y - c.y, end.x - c.x)
        candidates.append((c, a0, a1, unsigned_sweep(a0, a1, direction)))

    chosen = None
    for cand in candidates:
        sweep = cand[3]
        if not math.isfinite(sweep) or sweep < SWEEP_TOL:
            continue
        half_turn = abs(sweep - math.pi) <= SWEEP_TOL
        is_large = sweep > math.pi + SWEEP_TOL
        if large_arc != is_large and not half_turn:
            continue
        chosen = cand
        break
    if chosen is None:
        # lenient: accept a geometrically valid arc of the wrong size
        for cand in candidates:
            if math.isfinite(cand[3]) and cand[3] > SWEEP_TOL:
                chosen = cand
                break
    if chosen is None:
        return None

    center, a0, a1, _ = chosen
    return ArcSegment(
        start=start.copy(),
        end=end.copy(),
        center=center,
        radius=radius,
        start_angle=a0,
        end_angle=a1,
        signed_sweep=signed_sweep(a0, a1, direction),
        clockwise=clockwise,
        large_arc=large_arc,
        raw_type=raw_type,
    )


def sample_arc(arc: ArcSegment) -> List[Point]:
    """Discretize an arc; the end samples are the exact arc endpoints."""
    sweep = arc.signed_sweep
    if not math.isfinite(sweep) or abs(sweep) < EPS or arc.radius <= 0:
        return [arc.start.copy(), arc.end.copy()]
    steps = math.ceil(abs(sweep) / ARC_STEP_ANGLE)
    steps = min(max(steps, MIN_ARC_STEPS), MAX_ARC_STEPS)
    delta = sweep / steps
    pts = []
    for i in range(steps + 1):
        ang = arc.start_angle + delta * i
        pts.append(Point(arc.center.x + arc.radius * math.cos(ang),
                         arc.center.y + arc.radius * math.sin(ang)))
    pts[0] = arc.start.copy()
    pts[-1] = arc.end.copy()
    return pts
