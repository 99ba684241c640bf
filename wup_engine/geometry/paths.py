from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from .arcs import ArcSegment, LineSegment, Point, infer_arc_direction, is_large_arc, sample_arc, solve_arc

CLOSE_TOL = 1e-6

Segment = Union[LineSegment, ArcSegment]


@dataclass
class PathCommand:
    kind: str  # "move" | "line" | "arc"
    point: Point
    radius: Optional[float] = None
    clockwise: bool = False
    large_arc: bool = False
    raw_type: Optional[str] = None

    @classmethod
    def arc(cls, point: Point, radius: float, token: Optional[str]) -> "PathCommand":
        return cls("arc", point, abs(radius), infer_arc_direction(token) < 0, is_large_arc(token), token)


def _finite(p: Optional[Point]) -> bool:
    return p is not None and math.isfinite(p.x) and math.isfinite(p.y)


def _same(a: Point, b: Point) -> bool:
    return abs(a.x - b.x) < CLOSE_TOL and abs(a.y - b.y) < CLOSE_TOL


def assemble_path(commands: Sequence[PathCommand]) -> Tuple[List[Point], List[Segment]]:
    """Sample a move/line/arc command run into points plus structured segments.

    An arc without a geometric solution becomes a straight segment flagged
    ``fallback``; it never aborts the path.
    """
    points: List[Point] = []
    segments: List[Segment] = []
    pen: Optional[Point] = None
    for cmd in commands:
        if cmd is None or not _finite(cmd.point):
            continue
        target = cmd.point
        if cmd.kind == "move" or pen is None:
            pen = target
            points.append(target.copy())
            continue
        if cmd.kind == "line":
            segments.append(LineSegment(pen.copy(), target.copy()))
            points.append(target.copy())
        elif cmd.kind == "arc":
            arc = solve_arc(pen, target, cmd.radius, cmd.clockwise, cmd.large_arc, cmd.raw_type)
            if arc is not None:
                segments.append(arc)
                points.extend(sample_arc(arc)[1:])
            else:
                segments.append(LineSegment(pen.copy(), target.copy(), fallback=True))
                points.append(target.copy())
        else:
            continue
        pen = target
    return points, segments


def dedupe_points(points: Sequence[Point]) -> List[Point]:
    """Drop consecutive points within CLOSE_TOL of each other."""
    out: List[Point] = []
    for p in points:
        if not _finite(p):
            continue
        if out and _same(out[-1], p):
            continue
        out.append(p)
    return out


def is_closed_loop(points: Sequence[Point]) -> bool:
    if len(points) < 2:
        return False
    return _same(points[0], points[-1])


def close_path(points: Sequence[Point]) -> Tuple[List[Point], bool]:
    """Normalize a deduped point run.

    Returns the vertex list without the repeated closing point and whether
    the path is closed. Three or more distinct points are force-closed.
    """
    pts = list(points)
    closed = is_closed_loop(pts)
    if closed:
        return [p.copy() for p in pts[:-1]], True
    if len(pts) >= 3:
        return [p.copy() for p in pts], True
    return [p.copy() for p in pts], False


def commands_from_source(entries) -> List[PathCommand]:
    """Rebuild path commands from ``PP``/``KB`` source entries."""
    cmds: List[PathCommand] = []
    for entry in entries:
        nums = entry.numbers
        if len(nums) < 2:
            continue
        pt = Point(nums[0], nums[1])
        if entry.command == "KB":
            if len(nums) < 3:
                continue
            cmds.append(PathCommand.arc(pt, nums[2], entry.arc_type))
        elif entry.command == "PP":
            cmds.append(PathCommand("line", pt))
    if cmds:
        cmds[0].kind = "move"
    return cmds


def rebuild_segment_geometry(segment) -> bool:
    """Regenerate ``points``/``path_segments`` of a path segment from its source lines."""
    cmds = commands_from_source(segment.source)
    if not cmds:
        segment.points, segment.path_segments = [], []
        return False
    sampled, path_segments = assemble_path(cmds)
    deduped = dedupe_points(sampled)
    if not deduped:
        segment.points, segment.path_segments = [], []
        return False
    if segment.kind == "polygon":
        segment.points, _ = close_path(deduped)
    else:
        segment.points = [p.copy() for p in deduped]
    segment.path_segments = path_segments
    segment.samples = sampled
    return True
